import base64
import io

import pytest
from PIL import Image


@pytest.mark.asyncio
async def test_health_check(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_root(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["api_v1"] == "/api/v1"


@pytest.mark.asyncio
async def test_compose_detect_white_region(client, make_png, b64):
    response = await client.post(
        "/api/v1/compose",
        json={
            "config": {"padding": 10, "vertical_alignment": "bottom"},
            "items": [{
                "data": {"sku": "B-7"},
                "binary": {
                    "bg": {"data": b64(make_png(500, 800, band=(0, 400)))},
                    "product": {"data": b64(make_png(100, 100, color=(200, 0, 0)))},
                },
            }],
        }
    )
    assert response.status_code == 200
    data = response.json()
    assert data["success_count"] == 1
    result = data["results"][0]
    assert result["data"] == {"sku": "B-7"}
    assert result["details"]["rect"] == [0, 400, 500, 400]

    composed = Image.open(io.BytesIO(base64.b64decode(result["binary"]["composed"]["data"])))
    assert composed.size == (500, 800)


@pytest.mark.asyncio
async def test_compose_reports_item_failures(client, make_png, b64):
    response = await client.post(
        "/api/v1/compose",
        json={
            "config": {"vertical_alignment": "top"},
            "items": [
                {"binary": {"bg": {"data": b64(make_png(100, 100, band=(0, 20)))}, "product": {"data": b64(make_png(10, 10))}}},
                {"binary": {"product": {"data": b64(make_png(10, 10))}}},
            ],
        }
    )
    assert response.status_code == 200
    data = response.json()
    assert data["failure_count"] == 2
    assert [r["error_type"] for r in data["results"]] == ["SelectionPreconditionError", "MissingInputImageError"]
    assert data["results"][0]["details"]["stage"] == "detect_region"


@pytest.mark.asyncio
async def test_compose_rejects_empty_batch(client):
    response = await client.post("/api/v1/compose", json={"items": []})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_compose_rejects_unknown_mode(client):
    response = await client.post(
        "/api/v1/compose",
        json={"config": {"mode": "scatter"}, "items": [{}]}
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_crop(client, make_png, b64):
    response = await client.post(
        "/api/v1/crop",
        json={
            "config": {"resize_option": "ignore", "target_width": 64, "target_height": 32},
            "items": [{
                "binary": {"data": {"data": b64(make_png(80, 80, band=(20, 40))), "file_name": "in.png"}},
            }],
        }
    )
    assert response.status_code == 200
    result = response.json()["results"][0]
    assert result["details"]["trimmed_size"] == [80, 20]
    assert result["details"]["output_size"] == [64, 32]
    assert result["binary"]["cropped"]["file_name"] == "in.png"


@pytest.mark.asyncio
async def test_metrics_endpoint(client):
    response = await client.get("/api/v1/metrics")
    assert response.status_code == 200
    assert "compose_items_total" in response.text
