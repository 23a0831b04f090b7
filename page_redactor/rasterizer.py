"""
PyMuPDF page rendering.

Pages are rendered to numpy arrays in BGR order for OpenCV, scaled down so
that neither side exceeds the configured maximum.
"""

import logging
from pathlib import Path

import cv2
import fitz
import numpy as np

from .exceptions import ConfigurationError, PageProcessingError


logger = logging.getLogger(__name__)


def open_document(pdf_path: Path) -> fitz.Document:
    """
    Open a PDF for rendering.

    Raises:
        ConfigurationError: If the file is missing or not a readable PDF
    """
    pdf_path = Path(pdf_path)
    if not pdf_path.is_file():
        raise ConfigurationError(f"PDF not found: {pdf_path}")

    try:
        return fitz.open(str(pdf_path))
    except (fitz.FileDataError, RuntimeError) as e:
        raise ConfigurationError(f"Cannot open PDF {pdf_path}: {e}") from e


def fit_zoom(
    page_width: float,
    page_height: float,
    max_width: int,
    max_height: int,
    upscale: bool = False
) -> float:
    """
    Zoom factor that fits a page inside max_width x max_height.

    Each cap is applied independently; the smaller resulting scale wins
    so the aspect ratio is preserved. Pages already inside both caps
    render at their natural size unless ``upscale`` is set.
    """
    if page_width <= 0 or page_height <= 0:
        raise ValueError(f"Page has no area: {page_width}x{page_height}")
    zoom = min(max_width / page_width, max_height / page_height)
    if not upscale:
        zoom = min(1.0, zoom)
    return zoom


class PdfRasterizer:
    """Renders document pages to 3-channel pixel buffers within the size caps."""

    def __init__(self, max_width: int = 2000, max_height: int = 2000, upscale: bool = False):
        if max_width <= 0 or max_height <= 0:
            raise ValueError(
                f"Render caps must be positive, got {max_width}x{max_height}"
            )
        self.max_width = max_width
        self.max_height = max_height
        self.upscale = upscale

    def render(self, page: fitz.Page) -> np.ndarray:
        """
        Render a PyMuPDF page to a numpy array (BGR format for OpenCV).

        Args:
            page: PyMuPDF page object

        Returns:
            H x W x 3 uint8 array, writable
        """
        try:
            rect = page.rect
            zoom = fit_zoom(
                rect.width, rect.height, self.max_width, self.max_height, upscale=self.upscale
            )
            # Render without alpha so the buffer is always RGB
            pix = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False)
        except (RuntimeError, ValueError) as e:
            raise PageProcessingError(
                f"Failed to render page {page.number}: {e}", page_index=page.number
            ) from e

        # Convert to numpy array
        img = np.frombuffer(pix.samples, dtype=np.uint8).reshape(
            pix.height, pix.width, pix.n
        )

        # Convert to BGR for OpenCV
        if pix.n == 1:
            img = cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)
        elif pix.n == 4:
            img = cv2.cvtColor(img, cv2.COLOR_RGBA2BGR)
        else:
            img = cv2.cvtColor(img, cv2.COLOR_RGB2BGR)

        # Rounding may overshoot a cap by a pixel
        img = img[:self.max_height, :self.max_width]

        logger.debug(
            f"Rendered page {page.number} at zoom {zoom:.3f} -> {img.shape[1]}x{img.shape[0]}"
        )
        return np.ascontiguousarray(img)
