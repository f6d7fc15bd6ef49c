import base64
import io
from typing import AsyncGenerator, Optional, Tuple

import pytest
from httpx import AsyncClient, ASGITransport
from PIL import Image

from imagecompose.engines.compositor.adapter import PillowRasterAdapter
from imagecompose.main import app


def encode_image(image: Image.Image, fmt: str = "PNG") -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    # Trigger lifespan events (startup/shutdown)
    async with app.router.lifespan_context(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac


@pytest.fixture
def adapter() -> PillowRasterAdapter:
    return PillowRasterAdapter()


@pytest.fixture
def make_image():
    """Build an in-memory PIL image, optionally with a filled row band."""

    def _make(
        width: int,
        height: int,
        color=(255, 255, 255),
        mode: str = "RGB",
        band: Optional[Tuple[int, int]] = None,
        band_color=(0, 0, 0),
    ) -> Image.Image:
        image = Image.new(mode, (width, height), color)
        if band is not None:
            start, stop = band
            image.paste(Image.new(mode, (width, stop - start), band_color), (0, start))
        return image

    return _make


@pytest.fixture
def make_png(make_image):
    """PNG bytes for an image built with make_image."""

    def _make(*args, **kwargs) -> bytes:
        return encode_image(make_image(*args, **kwargs))

    return _make


@pytest.fixture
def b64():
    def _encode(data: bytes) -> str:
        return base64.b64encode(data).decode("utf-8")

    return _encode
