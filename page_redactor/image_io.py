"""
Image helpers for page export and region crops.
"""

import os
import tempfile

import cv2
import numpy as np
from pathlib import Path
from typing import Optional, Tuple
from PIL import Image

from .exceptions import PageProcessingError


def page_filename(page_index: int) -> str:
    """
    Generate the output filename for a page.

    Args:
        page_index: Page index as enumerated by the document (0-indexed)

    Returns:
        Filename string
    """
    return f"redacted-{page_index}.png"


def crop_region(
    image: np.ndarray,
    bbox: Tuple[int, int, int, int],
    padding: int = 0
) -> Optional[np.ndarray]:
    """
    Crop a region from an image.

    Args:
        image: Source image as numpy array
        bbox: (x0, y0, x1, y1) in pixel coordinates
        padding: Extra pixels to include around the bbox

    Returns:
        Cropped image region, or None if bbox is empty after clamping
    """
    img_height, img_width = image.shape[:2]
    x0, y0, x1, y1 = bbox

    x0 = max(0, x0 - padding)
    y0 = max(0, y0 - padding)
    x1 = min(img_width, x1 + padding)
    y1 = min(img_height, y1 + padding)

    if x1 <= x0 or y1 <= y0:
        return None

    return image[y0:y1, x0:x1].copy()


def to_pil(image: np.ndarray) -> Image.Image:
    """Convert an OpenCV buffer (BGR or grayscale) to a PIL image."""
    if len(image.shape) == 3 and image.shape[2] == 3:
        image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
    return Image.fromarray(image)


# Pages are written under this prefix/suffix first, then renamed into place
PARTIAL_PREFIX = ".redacted-"
PARTIAL_SUFFIX = ".png.part"


def save_page_image(
    image: np.ndarray,
    output_path: Path,
    page_index: Optional[int] = None
) -> Path:
    """
    Save a page buffer to disk as PNG.

    The image is written to a temporary file in the same directory and
    renamed over ``output_path``, so the final name only ever holds a
    complete image.

    Args:
        image: Page buffer (BGR)
        output_path: Path to save to
        page_index: Page being saved, attached to any error

    Returns:
        The path written

    Raises:
        PageProcessingError: If the image cannot be written
    """
    output_path = Path(output_path)
    tmp_path = None

    try:
        # Create the temporary file next to the target so the rename stays on one filesystem
        fd, tmp_name = tempfile.mkstemp(
            prefix=PARTIAL_PREFIX, suffix=PARTIAL_SUFFIX, dir=str(output_path.parent)
        )
        tmp_path = Path(tmp_name)
        with os.fdopen(fd, "wb") as f:
            to_pil(image).save(f, format="PNG")

        # Atomic on POSIX and Windows
        os.replace(tmp_path, output_path)
    except (OSError, ValueError) as e:
        if tmp_path is not None:
            tmp_path.unlink(missing_ok=True)
        raise PageProcessingError(
            f"Failed to write {output_path}: {e}", page_index=page_index
        ) from e

    return output_path


def remove_partial_images(output_dir: Path) -> list[Path]:
    """
    Delete temporary page files left by writers that were interrupted.

    Args:
        output_dir: Directory the pages were written to

    Returns:
        The paths removed
    """
    removed = []
    for path in Path(output_dir).glob(f"{PARTIAL_PREFIX}*{PARTIAL_SUFFIX}"):
        path.unlink(missing_ok=True)
        removed.append(path)
    return removed
