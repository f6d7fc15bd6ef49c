"""
Placement Planning

Pure geometry: rotation rule, proportional scale and top-left offset of a
product inside a target rectangle. No image data is touched here.
"""

import math
from typing import Tuple, Union

from imagecompose.core.exceptions import InsufficientAreaError
from imagecompose.engines.compositor.schemas import (
    HorizontalAlignment,
    PlacementResult,
    Rect,
    VerticalAlignment,
)

# Products taller than this (height / width) are laid on their side
AUTO_ROTATE_ASPECT_RATIO = 1.8
AUTO_ROTATE_DEGREES = -90

Alignment = Union[HorizontalAlignment, VerticalAlignment]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def resolve_rotation(width: int, height: int, manual_degrees: int = 0) -> int:
    """
    Rotation to apply before measuring the product.

    A non-zero manual angle always wins; otherwise very tall products are
    turned by -90 degrees and everything else is left as is.
    """
    if manual_degrees != 0:
        return manual_degrees
    if height / width > AUTO_ROTATE_ASPECT_RATIO:
        return AUTO_ROTATE_DEGREES
    return 0


def available_space(width: int, height: int, padding: int) -> Tuple[int, int]:
    return width - 2 * padding, height - 2 * padding


def fit_scale(
    product_width: int,
    product_height: int,
    avail_width: int,
    avail_height: int
) -> Tuple[int, int]:
    """Largest proportional size of the product inside the available box."""
    scale = min(avail_width / product_width, avail_height / product_height)
    scaled_width = max(1, round_half_up(product_width * scale))
    scaled_height = max(1, round_half_up(product_height * scale))
    return scaled_width, scaled_height


def align_offset(origin: int, extent: int, size: int, padding: int, alignment: Alignment) -> int:
    """Offset along one axis: start/top, center, end/bottom."""
    if alignment.value == "center":
        return origin + (extent - size) // 2
    if alignment.value in ("end", "bottom"):
        return origin + extent - size - padding
    return origin + padding


def plan_placement(
    rect: Rect,
    product_width: int,
    product_height: int,
    padding: int,
    horizontal: HorizontalAlignment = HorizontalAlignment.CENTER,
    vertical: VerticalAlignment = VerticalAlignment.CENTER
) -> PlacementResult:
    """
    Scale the product to fill `rect` minus padding and align it.

    Args:
        rect: Target rectangle on the background
        product_width: Product width after any rotation
        product_height: Product height after any rotation
        padding: Margin kept on every side of the rectangle
        horizontal: Horizontal alignment inside the rectangle
        vertical: Vertical alignment inside the rectangle

    Returns:
        PlacementResult with scaled size and top-left offset

    Raises:
        InsufficientAreaError: rectangle minus padding has no room left
    """
    avail_width, avail_height = available_space(rect.width, rect.height, padding)
    if avail_width <= 0 or avail_height <= 0:
        raise InsufficientAreaError(
            stage="plan_placement",
            details={
                "rect": [rect.x, rect.y, rect.width, rect.height],
                "padding": padding,
            }
        )

    scaled_width, scaled_height = fit_scale(product_width, product_height, avail_width, avail_height)

    return PlacementResult(
        scaled_width=scaled_width,
        scaled_height=scaled_height,
        offset_x=align_offset(rect.x, rect.width, scaled_width, padding, horizontal),
        offset_y=align_offset(rect.y, rect.height, scaled_height, padding, vertical),
    )


def center_on_canvas(
    canvas_width: int,
    canvas_height: int,
    width: int,
    height: int
) -> PlacementResult:
    """Centre an already-scaled product on the whole canvas."""
    return PlacementResult(
        scaled_width=width,
        scaled_height=height,
        offset_x=(canvas_width - width) // 2,
        offset_y=(canvas_height - height) // 2,
    )


def aspect_drift(product_width: int, product_height: int, placement: PlacementResult) -> float:
    """Relative aspect-ratio change introduced by integer rounding."""
    original = product_width / product_height
    scaled = placement.scaled_width / placement.scaled_height
    return abs(scaled - original) / original
