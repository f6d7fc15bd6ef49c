import base64
import io

import pytest
from PIL import Image

from imagecompose.core.exceptions import (
    InsufficientAreaError,
    InvalidItemError,
    MissingInputImageError,
    SelectionPreconditionError,
)
from imagecompose.engines.compositor.schemas import (
    BinaryPayload,
    CompositionConfig,
    CompositionMode,
    CropConfig,
    HorizontalAlignment,
    OutputFormat,
    ResizeOption,
    VerticalAlignment,
    WorkItem,
)
from imagecompose.engines.compositor.services import CompositorService, CropService, read_binary

PRODUCT_COLOR = (30, 60, 200)


@pytest.fixture
def compositor(adapter):
    return CompositorService(adapter)


@pytest.fixture
def cropper(adapter):
    return CropService(adapter)


@pytest.fixture
def compose_item(make_png, b64):
    def _make(background: bytes, product: bytes, **extra) -> WorkItem:
        binary = {
            "bg": BinaryPayload(data=b64(background), mime_type="image/png", file_name="bg.png"),
            "product": BinaryPayload(data=b64(product), mime_type="image/png", file_name="product.png"),
        }
        binary.update(extra)
        return WorkItem(data={"sku": "A-1"}, binary=binary)

    return _make


def decode_output(result, prop) -> Image.Image:
    return Image.open(io.BytesIO(base64.b64decode(result.binary[prop].data)))


def close_to(pixel, expected, tolerance=8):
    return all(abs(a - b) <= tolerance for a, b in zip(pixel, expected))


# =============================================================================
# Compose: detect_white_region
# =============================================================================

def test_tall_product_on_white_background(compositor, compose_item, make_png):
    item = compose_item(make_png(1000, 1000), make_png(200, 800, color=PRODUCT_COLOR))
    config = CompositionConfig(
        padding=20,
        horizontal_alignment=HorizontalAlignment.CENTER,
        vertical_alignment=VerticalAlignment.CENTER,
    )

    result = compositor.compose_item(item, config)

    assert result.success
    assert result.details["rect"] == [0, 0, 1000, 1000]
    assert result.details["rotation_degrees"] == -90
    assert result.details["scaled_size"] == [960, 240]
    assert result.details["offset"] == [20, 380]

    output = decode_output(result, "composed")
    assert output.size == (1000, 1000)
    assert close_to(output.getpixel((500, 500)), PRODUCT_COLOR)
    assert output.getpixel((500, 100)) == (255, 255, 255)
    assert output.getpixel((10, 500)) == (255, 255, 255)


def test_bottom_band_selected_under_content(compositor, compose_item, make_png):
    background = make_png(500, 800, band=(0, 400))
    item = compose_item(background, make_png(100, 100, color=PRODUCT_COLOR))
    config = CompositionConfig(padding=10, vertical_alignment=VerticalAlignment.BOTTOM)

    result = compositor.compose_item(item, config)

    assert result.details["rect"] == [0, 400, 500, 400]
    assert result.details["rotation_degrees"] == 0
    # 380x380 at the bottom of the band, horizontally centred
    assert result.details["scaled_size"] == [380, 380]
    assert result.details["offset"] == [60, 410]

    output = decode_output(result, "composed")
    assert output.getpixel((250, 200)) == (0, 0, 0)
    assert close_to(output.getpixel((250, 600)), PRODUCT_COLOR)


def test_output_mirrors_input(compositor, compose_item, make_png, b64):
    extra = BinaryPayload(data=b64(b"keep me"), mime_type="text/plain")
    item = compose_item(make_png(300, 300), make_png(50, 50), notes=extra)

    result = compositor.compose_item(item, CompositionConfig())

    assert result.data == {"sku": "A-1"}
    assert set(result.binary) == {"bg", "product", "notes", "composed"}
    assert result.binary["notes"] == extra
    assert result.binary["composed"].mime_type == "image/png"
    assert result.binary["composed"].file_name.startswith("composed-")


def test_output_format_jpeg(compositor, compose_item, make_png):
    item = compose_item(make_png(300, 300), make_png(50, 50))
    config = CompositionConfig(output_format=OutputFormat.JPEG, output_property="out")

    result = compositor.compose_item(item, config)

    assert result.binary["out"].mime_type == "image/jpeg"
    assert result.binary["out"].file_name.endswith(".jpeg")
    assert decode_output(result, "out").format == "JPEG"


def test_manual_rotation_overrides_auto(compositor, compose_item, make_png):
    item = compose_item(make_png(400, 400), make_png(100, 400))
    config = CompositionConfig(manual_rotation_degrees=15, vertical_alignment=VerticalAlignment.CENTER)

    result = compositor.compose_item(item, config)

    assert result.details["rotation_degrees"] == 15


def test_missing_background_raises(compositor, make_png, b64):
    item = WorkItem(binary={"product": BinaryPayload(data=b64(make_png(10, 10)))})

    with pytest.raises(MissingInputImageError) as exc_info:
        compositor.compose_item(item, CompositionConfig())

    assert exc_info.value.details["property"] == "bg"


def test_preferred_band_missing_raises(compositor, compose_item, make_png):
    # Content touches the top edge, so there is no top band
    item = compose_item(make_png(200, 200, band=(0, 50)), make_png(10, 10))

    with pytest.raises(SelectionPreconditionError):
        compositor.compose_item(item, CompositionConfig(vertical_alignment=VerticalAlignment.TOP))


def test_band_too_thin_for_padding(compositor, compose_item, make_png):
    item = compose_item(make_png(500, 800, band=(0, 790)), make_png(10, 10))

    with pytest.raises(InsufficientAreaError):
        compositor.compose_item(item, CompositionConfig(padding=10, vertical_alignment=VerticalAlignment.BOTTOM))


def test_invalid_base64_raises(compositor):
    item = WorkItem(binary={
        "bg": BinaryPayload(data="!!not base64!!"),
        "product": BinaryPayload(data="!!not base64!!"),
    })

    with pytest.raises(InvalidItemError):
        compositor.compose_item(item, CompositionConfig())


def test_read_binary_missing_property_is_none():
    assert read_binary(WorkItem(), "bg") is None


# =============================================================================
# Compose: fill_entire_background
# =============================================================================

def test_fill_entire_background_centres_rotated_product(compositor, compose_item, make_png):
    item = compose_item(make_png(300, 300), make_png(100, 400, color=PRODUCT_COLOR))
    config = CompositionConfig(mode=CompositionMode.FILL_ENTIRE_BACKGROUND, padding=10)

    result = compositor.compose_item(item, config)

    assert result.details["mode"] == "fill_entire_background"
    assert result.details["rect"] == [0, 0, 300, 300]
    assert abs(result.details["rotation_degrees"]) == 45

    width, height = result.details["scaled_size"]
    assert width <= 280 and height <= 280
    assert result.details["offset"] == [(300 - width) // 2, (300 - height) // 2]

    output = decode_output(result, "composed")
    assert output.size == (300, 300)
    assert close_to(output.getpixel((150, 150)), PRODUCT_COLOR)
    # Trimmed rotation corners stay transparent, so the background shows
    assert output.getpixel((5, 5)) == (255, 255, 255)


def test_fill_entire_background_ignores_background_content(compositor, compose_item, make_png):
    item = compose_item(make_png(400, 200, band=(0, 100)), make_png(200, 100))
    config = CompositionConfig(mode=CompositionMode.FILL_ENTIRE_BACKGROUND, padding=10)

    result = compositor.compose_item(item, config)

    assert result.details["rotation_degrees"] == 0
    assert result.details["scaled_size"] == [360, 180]
    assert result.details["offset"] == [20, 10]


# =============================================================================
# Crop
# =============================================================================

@pytest.fixture
def crop_item(make_image, b64):
    def _make(fmt="PNG", mime_type="image/png", file_name="photo.png") -> WorkItem:
        image = make_image(100, 80)
        image.paste(Image.new("RGB", (30, 20), (10, 120, 200)), (40, 25))
        buffer = io.BytesIO()
        image.save(buffer, format=fmt)
        payload = BinaryPayload(data=b64(buffer.getvalue()), mime_type=mime_type, file_name=file_name)
        return WorkItem(data={"id": 7}, binary={"data": payload})

    return _make


def test_crop_trims_and_keeps_file_metadata(cropper, crop_item):
    result = cropper.crop_item(crop_item(), CropConfig())

    assert result.success
    assert result.details["original_size"] == [100, 80]
    assert result.details["trimmed_size"] == [30, 20]
    assert result.binary["cropped"].mime_type == "image/png"
    assert result.binary["cropped"].file_name == "photo.png"
    assert decode_output(result, "cropped").size == (30, 20)


def test_crop_keeps_source_format(cropper, crop_item):
    result = cropper.crop_item(crop_item("JPEG", "image/jpeg", "photo.jpg"), CropConfig())

    output = decode_output(result, "cropped")
    assert output.format == "JPEG"
    assert result.binary["cropped"].mime_type == "image/jpeg"


@pytest.mark.parametrize(
    "option,target,expected",
    [
        (ResizeOption.NONE, (500, 500), (30, 20)),
        (ResizeOption.IGNORE_ASPECT_RATIO, (50, 50), (50, 50)),
        (ResizeOption.MAXIMUM_AREA, (50, 50), (50, 50)),
        (ResizeOption.MINIMUM_AREA, (50, 50), (50, 50)),
        (ResizeOption.ONLY_IF_LARGER, (10, 10), (10, 7)),
        (ResizeOption.ONLY_IF_LARGER, (500, 500), (30, 20)),
        (ResizeOption.ONLY_IF_SMALLER, (500, 500), (500, 333)),
        (ResizeOption.ONLY_IF_SMALLER, (10, 10), (30, 20)),
    ]
)
def test_crop_resize_options(cropper, crop_item, option, target, expected):
    config = CropConfig(resize_option=option, target_width=target[0], target_height=target[1])

    result = cropper.crop_item(crop_item(), config)

    assert result.details["output_size"] == list(expected)


def test_crop_passes_through_items_without_binary(cropper):
    item = WorkItem(data={"id": 1})

    result = cropper.crop_item(item, CropConfig())

    assert result.success
    assert result.data == {"id": 1}
    assert result.binary == {}
