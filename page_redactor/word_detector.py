"""
OpenCV-based word region detection.

Finds word-sized blobs of ink in a rendered page using image processing:
1. Convert to grayscale
2. Threshold for dark pixels
3. Dilate horizontally so glyphs of one word merge
4. Find contours and keep their bounding boxes
"""

import cv2
import numpy as np

from .models import Region
from .ocr import TextDetector


def detect_dark_regions(
    image: np.ndarray,
    threshold: int = 128
) -> np.ndarray:
    """
    Create a binary mask of ink in the image.

    Args:
        image: Input image (BGR or grayscale)
        threshold: Pixel values below this are considered ink (0-255)

    Returns:
        Binary mask where white (255) indicates ink
    """
    # Convert to grayscale if needed
    if len(image.shape) == 3:
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    else:
        gray = image

    # Ink is darker than the threshold; invert so it becomes white
    _, mask = cv2.threshold(gray, threshold, 255, cv2.THRESH_BINARY_INV)
    return mask


def merge_glyphs(
    mask: np.ndarray,
    kernel_width: int = 9,
    kernel_height: int = 3
) -> np.ndarray:
    """
    Dilate an ink mask so that letters of the same word touch.

    The kernel is wider than tall: inter-letter gaps close while the gap
    between lines stays open.
    """
    # Single pass; more iterations would bridge neighbouring words
    kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (kernel_width, kernel_height))
    return cv2.dilate(mask, kernel, iterations=1)


def find_word_boxes(
    mask: np.ndarray,
    min_area: int = 20
) -> list[tuple[int, int, int, int]]:
    """
    Find bounding boxes of word blobs.

    Args:
        mask: Binary mask of merged glyphs
        min_area: Minimum bounding box area in pixels (drops specks)

    Returns:
        List of bounding boxes as (x, y, width, height)
    """
    # Outer contours only, holes inside letters are not words
    contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

    boxes = []
    for contour in contours:
        x, y, w, h = cv2.boundingRect(contour)
        # Skip specks
        if w * h < min_area:
            continue
        boxes.append((x, y, w, h))

    # Reading order: top to bottom, then left to right
    boxes.sort(key=lambda b: (b[1], b[0]))
    return boxes


class ContourWordDetector(TextDetector):
    """Word detector that needs no layout model, only OpenCV."""

    def __init__(
        self,
        threshold: int = 128,
        kernel_width: int = 9,
        kernel_height: int = 3,
        min_area: int = 20
    ):
        self.threshold = threshold
        self.kernel_width = kernel_width
        self.kernel_height = kernel_height
        self.min_area = min_area

    def detect(self, image: np.ndarray) -> list[Region]:
        # Binary ink mask, then glue letters into word blobs
        mask = detect_dark_regions(image, self.threshold)
        mask = merge_glyphs(mask, self.kernel_width, self.kernel_height)

        return [
            Region(x=x, y=y, width=w, height=h)
            for x, y, w, h in find_word_boxes(mask, self.min_area)
        ]
