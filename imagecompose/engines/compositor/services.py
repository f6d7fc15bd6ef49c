"""
Compositor and Crop Services

CompositorService places a product image on a background:
- detect_white_region: pick the white band above/below the background
  content, auto-rotate very tall products, scale and align inside it
- fill_entire_background: search rotations for the largest footprint on
  the whole background and centre it

CropService trims uniform borders and optionally resizes (the simpler
sibling built from the same primitives).
"""

import base64
import binascii
import time
from typing import Dict, Optional, Tuple

from imagecompose.core.config import settings
from imagecompose.core.exceptions import InvalidItemError, MissingInputImageError
from imagecompose.core.logging import get_logger, with_logging
from imagecompose.core.metrics import record_rotation, track_stage_latency
from imagecompose.engines.compositor.adapter import PillowRasterAdapter, WHITE_OPAQUE
from imagecompose.engines.compositor.placement import (
    aspect_drift,
    center_on_canvas,
    plan_placement,
    resolve_rotation,
)
from imagecompose.engines.compositor.regions import detect_white_region
from imagecompose.engines.compositor.rotation import find_best_fit_rotation
from imagecompose.engines.compositor.schemas import (
    BinaryPayload,
    CompositionConfig,
    CompositionMode,
    CropConfig,
    ItemResult,
    PlacementResult,
    RasterImage,
    Rect,
    ResizeOption,
    WorkItem,
)

logger = get_logger(__name__)


def read_binary(item: WorkItem, property_name: str) -> Optional[bytes]:
    """Decoded bytes of a binary property, or None if the item lacks it."""
    payload = item.binary.get(property_name)
    if payload is None:
        return None

    try:
        data = base64.b64decode(payload.data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidItemError(
            f"Binary property '{property_name}' is not valid base64: {e}",
            details={"property": property_name}
        )

    if len(data) > settings.MAX_IMAGE_SIZE_BYTES:
        raise InvalidItemError(
            f"Binary property '{property_name}' exceeds {settings.MAX_IMAGE_SIZE_BYTES} bytes",
            details={"property": property_name, "size": len(data)}
        )
    return data


def require_binary(item: WorkItem, property_name: str) -> bytes:
    data = read_binary(item, property_name)
    if data is None:
        raise MissingInputImageError(property_name, stage="decode")
    return data


def _with_output(item: WorkItem, property_name: str, payload: BinaryPayload) -> Dict[str, BinaryPayload]:
    binary = dict(item.binary)
    binary[property_name] = payload
    return binary


class CompositorService:
    """Composites a product image onto a background image."""

    def __init__(self, adapter: PillowRasterAdapter):
        self.adapter = adapter

    # -------------------------------------------------------------------------
    # Planning
    # -------------------------------------------------------------------------

    def plan_detect_white_region(
        self,
        background: RasterImage,
        product: RasterImage,
        config: CompositionConfig
    ) -> Tuple[Rect, int, RasterImage, PlacementResult]:
        """Target rect, applied rotation, product to scale and its placement."""
        with track_stage_latency("detect_region"):
            rect = detect_white_region(
                self.adapter.rgb_array(background),
                config.vertical_alignment
            )

        angle = resolve_rotation(product.width, product.height, config.manual_rotation_degrees)
        if angle != 0:
            with track_stage_latency("rotate"):
                product = self.adapter.rotate(product, angle, fill=WHITE_OPAQUE)

        placement = plan_placement(
            rect,
            product.width,
            product.height,
            config.padding,
            horizontal=config.horizontal_alignment,
            vertical=config.vertical_alignment,
        )
        return rect, angle, product, placement

    def plan_fill_entire_background(
        self,
        background: RasterImage,
        product: RasterImage,
        config: CompositionConfig
    ) -> Tuple[Rect, int, RasterImage, PlacementResult]:
        rect = Rect(x=0, y=0, width=background.width, height=background.height)

        with track_stage_latency("rotation_search"):
            plan = find_best_fit_rotation(
                self.adapter,
                product,
                background.width,
                background.height,
                config.padding
            )

        placement = center_on_canvas(background.width, background.height, plan.width, plan.height)
        return rect, plan.angle_degrees, plan.image, placement

    # -------------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------------

    @with_logging("compose")
    def compose(
        self,
        background: RasterImage,
        product: RasterImage,
        config: CompositionConfig
    ) -> Tuple[RasterImage, Dict]:
        """
        Render the product onto the background.

        Returns:
            Tuple of (composed image with the background's size, geometry details)
        """
        if config.mode == CompositionMode.FILL_ENTIRE_BACKGROUND:
            rect, angle, prepared, placement = self.plan_fill_entire_background(background, product, config)
        else:
            rect, angle, prepared, placement = self.plan_detect_white_region(background, product, config)

        with track_stage_latency("render"):
            scaled = self.adapter.resize(prepared, placement.scaled_width, placement.scaled_height)
            composed = self.adapter.composite(background, scaled, placement.offset_x, placement.offset_y)

        record_rotation(config.mode.value, angle)

        details = {
            "mode": config.mode.value,
            "rect": [rect.x, rect.y, rect.width, rect.height],
            "rotation_degrees": angle,
            "scaled_size": [placement.scaled_width, placement.scaled_height],
            "offset": [placement.offset_x, placement.offset_y],
        }
        logger.info(
            "product_placed",
            aspect_drift=round(aspect_drift(prepared.width, prepared.height, placement), 4),
            **details
        )
        return composed, details

    def compose_item(self, item: WorkItem, config: CompositionConfig) -> ItemResult:
        """Compose one item and attach the encoded result under the output property."""
        background_bytes = require_binary(item, config.background_property)
        product_bytes = require_binary(item, config.product_property)

        with track_stage_latency("decode"):
            background = self.adapter.decode(background_bytes)
            product = self.adapter.decode(product_bytes)

        composed, details = self.compose(background, product, config)

        with track_stage_latency("encode"):
            encoded = self.adapter.encode(composed, config.output_format.value)

        output = BinaryPayload(
            data=base64.b64encode(encoded).decode("utf-8"),
            mime_type=config.output_format.mime_type,
            file_name=f"composed-{int(time.time() * 1000)}.{config.output_format.value}",
        )
        return ItemResult(
            data=dict(item.data),
            binary=_with_output(item, config.output_property, output),
            success=True,
            details=details,
        )


class CropService:
    """Trims uniform borders and resizes, keeping the source format."""

    def __init__(self, adapter: PillowRasterAdapter):
        self.adapter = adapter

    def resize(self, image: RasterImage, config: CropConfig) -> RasterImage:
        option = config.resize_option
        width, height = config.target_width, config.target_height

        if option == ResizeOption.IGNORE_ASPECT_RATIO:
            return self.adapter.resize(image, width, height)
        if option == ResizeOption.MAXIMUM_AREA:
            return self.adapter.resize_letterbox(image, width, height)
        if option == ResizeOption.MINIMUM_AREA:
            return self.adapter.resize_cover(image, width, height)
        if option == ResizeOption.ONLY_IF_LARGER and (image.width > width or image.height > height):
            return self.adapter.resize_inside(image, width, height)
        if option == ResizeOption.ONLY_IF_SMALLER and (image.width < width or image.height < height):
            return self.adapter.resize_inside(image, width, height)
        return image

    @with_logging("crop")
    def crop_item(self, item: WorkItem, config: CropConfig) -> ItemResult:
        """Crop one item; items without the binary property pass through untouched."""
        source = item.binary.get(config.binary_property)
        data = read_binary(item, config.binary_property)
        if data is None:
            logger.info("crop_item_passthrough", property=config.binary_property)
            return ItemResult(data=dict(item.data), binary=dict(item.binary), success=True)

        with track_stage_latency("decode"):
            image = self.adapter.decode(data)

        with track_stage_latency("trim"):
            trimmed = self.adapter.trim(image)

        with track_stage_latency("resize"):
            resized = self.resize(trimmed, config)

        with track_stage_latency("encode"):
            encoded = self.adapter.encode(resized, image.format or "png")

        output = BinaryPayload(
            data=base64.b64encode(encoded).decode("utf-8"),
            mime_type=source.mime_type,
            file_name=source.file_name,
        )
        return ItemResult(
            data=dict(item.data),
            binary=_with_output(item, config.output_property, output),
            success=True,
            details={
                "original_size": [image.width, image.height],
                "trimmed_size": [trimmed.width, trimmed.height],
                "output_size": [resized.width, resized.height],
            },
        )
