"""
White Region Detection

Row projection over a background image: find the rows that contain
non-white content and offer the white bands above and below it as
placement candidates.
"""

from typing import List, Optional, Tuple

import numpy as np

from imagecompose.core.exceptions import SelectionPreconditionError
from imagecompose.core.logging import get_logger
from imagecompose.engines.compositor.schemas import Rect, VerticalAlignment

logger = get_logger(__name__)

# A pixel is white when every RGB channel is strictly above this value
WHITE_THRESHOLD = 240


def find_content_rows(rgb: np.ndarray, threshold: int = WHITE_THRESHOLD) -> Optional[Tuple[int, int]]:
    """
    Return (min_y, max_y) of rows containing at least one non-white pixel.

    Args:
        rgb: (height, width, 3) array of channel values
        threshold: brightness above which all three channels count as white

    Returns:
        Inclusive row bounds, or None when the image is entirely white.
    """
    foreground = ~np.all(rgb[:, :, :3] > threshold, axis=2)
    rows = np.flatnonzero(foreground.any(axis=1))
    if rows.size == 0:
        return None
    return int(rows[0]), int(rows[-1])


def candidate_rects(
    width: int,
    height: int,
    content_rows: Optional[Tuple[int, int]]
) -> List[Rect]:
    """
    Full-width white bands above and below the content rows.

    Order is top band first, then bottom band. When neither exists the
    whole canvas is the only candidate.
    """
    rects: List[Rect] = []

    if content_rows is not None:
        min_y, max_y = content_rows
        if min_y > 0:
            rects.append(Rect(x=0, y=0, width=width, height=min_y))
        if max_y < height - 1:
            rects.append(Rect(x=0, y=max_y + 1, width=width, height=height - max_y - 1))

    rects = [r for r in rects if not r.is_degenerate]
    if not rects:
        rects.append(Rect(x=0, y=0, width=width, height=height))

    return rects


def find_candidate(rects: List[Rect], preference: VerticalAlignment) -> Optional[Rect]:
    """Pick a candidate by vertical preference, or None if it does not exist."""
    if preference == VerticalAlignment.TOP:
        return next((r for r in rects if r.y == 0), None)
    if preference == VerticalAlignment.BOTTOM:
        return next((r for r in rects if r.y != 0), None)

    # max() keeps the first of equal areas, so the top band wins ties
    return max(rects, key=lambda r: r.area)


def select_rect(rects: List[Rect], preference: VerticalAlignment) -> Rect:
    """
    Select the placement rectangle by preference.

    Raises:
        SelectionPreconditionError: the preferred top/bottom band does not exist
    """
    rect = find_candidate(rects, preference)
    if rect is None:
        raise SelectionPreconditionError(preference.value, stage="detect_region")
    return rect


def detect_white_region(
    rgb: np.ndarray,
    preference: VerticalAlignment,
    threshold: int = WHITE_THRESHOLD
) -> Rect:
    """
    Detect candidates on a background and select one by preference.

    The whole-canvas fallback is returned for every preference.
    """
    height, width = rgb.shape[:2]
    whole_canvas = Rect(x=0, y=0, width=width, height=height)

    content_rows = find_content_rows(rgb, threshold)
    rects = candidate_rects(width, height, content_rows)
    if rects == [whole_canvas]:
        rect = whole_canvas
    else:
        rect = select_rect(rects, preference)

    logger.debug(
        "white_region_selected",
        content_rows=content_rows,
        candidates=len(rects),
        preference=preference.value,
        rect=(rect.x, rect.y, rect.width, rect.height)
    )
    return rect
