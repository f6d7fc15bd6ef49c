"""
Best-Fit Rotation Search

Used by fill_entire_background mode: try every angle on a fixed grid,
trim the transparent corners each rotation exposes, and keep the angle
whose scaled footprint covers the most of the padded background.
"""

from typing import Optional, Sequence

from imagecompose.core.exceptions import InsufficientAreaError
from imagecompose.core.logging import get_logger
from imagecompose.engines.compositor.adapter import PillowRasterAdapter, WHITE_TRANSPARENT
from imagecompose.engines.compositor.placement import available_space, fit_scale
from imagecompose.engines.compositor.schemas import RasterImage, RotationPlan

logger = get_logger(__name__)

ROTATION_STEP_DEGREES = 5
CANDIDATE_ANGLES = tuple(range(-90, 91, ROTATION_STEP_DEGREES))


def find_best_fit_rotation(
    adapter: PillowRasterAdapter,
    product: RasterImage,
    background_width: int,
    background_height: int,
    padding: int,
    angles: Sequence[int] = CANDIDATE_ANGLES
) -> RotationPlan:
    """
    Search `angles` (in order) for the largest scaled product footprint.

    Angle 0 measures the untouched original. Other angles rotate with a
    transparent fill and trim it away before measuring. The first angle
    reaching the best area wins.

    Raises:
        InsufficientAreaError: the background minus padding has no room left
    """
    avail_width, avail_height = available_space(background_width, background_height, padding)
    if avail_width <= 0 or avail_height <= 0:
        raise InsufficientAreaError(
            stage="rotation_search",
            details={
                "background": [background_width, background_height],
                "padding": padding,
            }
        )

    best: Optional[RotationPlan] = None

    for angle in angles:
        if angle == 0:
            candidate = product
        else:
            rotated = adapter.rotate(product, angle, fill=WHITE_TRANSPARENT)
            candidate = adapter.trim(rotated)

        width, height = fit_scale(candidate.width, candidate.height, avail_width, avail_height)
        if best is None or width * height > best.area:
            best = RotationPlan(angle_degrees=angle, width=width, height=height, image=candidate)

    logger.debug(
        "rotation_search_completed",
        angles_tried=len(angles),
        best_angle=best.angle_degrees,
        footprint=(best.width, best.height)
    )
    return best
