"""
Redaction mask geometry and painting.

A matching region is grown by a horizontal and vertical offset on every
side, so glyph extents the detector under-estimates are still covered,
and the result is filled with a solid colour directly in the page buffer.
"""

import numpy as np

from .models import BLACK, MaskRect, Region


def compute_mask(region: Region, x_offset: int, y_offset: int) -> MaskRect:
    """
    Compute the padded mask rectangle for a region.

    The corner is shifted by (-x_offset, -y_offset) and clamped to the
    page origin; the size grows by twice each offset.

    Args:
        region: Detected word region in pixel coordinates
        x_offset: Horizontal padding in pixels
        y_offset: Vertical padding in pixels

    Returns:
        MaskRect with a non-negative corner
    """
    if x_offset < 0 or y_offset < 0:
        raise ValueError(
            f"Mask offsets must be non-negative, got ({x_offset}, {y_offset})"
        )

    return MaskRect(
        x=max(0, region.x - x_offset),
        y=max(0, region.y - y_offset),
        width=region.width + 2 * x_offset,
        height=region.height + 2 * y_offset,
    )


def clip_to_buffer(
    rect: MaskRect,
    shape: tuple[int, ...]
) -> tuple[int, int, int, int]:
    """
    Intersect a mask with the buffer bounds.

    Returns:
        (x0, y0, x1, y1) in pixels; x1 <= x0 or y1 <= y0 means empty
    """
    img_height, img_width = shape[:2]

    x0 = min(max(0, rect.x), img_width)
    y0 = min(max(0, rect.y), img_height)
    x1 = min(img_width, max(0, rect.x1))
    y1 = min(img_height, max(0, rect.y1))

    return (x0, y0, x1, y1)


def paint_mask(
    image: np.ndarray,
    rect: MaskRect,
    color: tuple[int, int, int] = BLACK
) -> bool:
    """
    Fill a mask rectangle in place.

    The rectangle is clipped to the buffer and written with a single
    slice assignment, so the buffer never holds a partly painted mask.
    Painting the same rectangle again leaves the buffer unchanged.

    Args:
        image: Page buffer (H x W x 3, uint8), modified in place
        rect: Mask rectangle to fill
        color: Fill colour in the buffer's channel order

    Returns:
        True if any pixel was covered, False if the mask lies outside the buffer
    """
    x0, y0, x1, y1 = clip_to_buffer(rect, image.shape)

    if x1 <= x0 or y1 <= y0:
        return False

    image[y0:y1, x0:x1] = color
    return True
