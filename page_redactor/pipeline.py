"""
Per-page redaction pipeline.

Sequences rasterization, word detection, per-region recognition,
pattern matching and mask painting for one page, then exports the
redacted page image.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import fitz
import numpy as np

from .exceptions import PageProcessingError, RedactorError
from .image_io import page_filename, save_page_image
from .mask_painter import compute_mask, paint_mask
from .matcher import RedactionPattern
from .models import PageOutcome, RecognitionStrategy, RedactionParams, Region
from .ocr import TextDetector, TextRecognizer
from .rasterizer import PdfRasterizer


logger = logging.getLogger(__name__)


@dataclass
class PageContext:
    """
    Everything a page needs besides the page itself.

    Shared read-only across pages; nothing in it changes while a run is
    in progress, so it can be sent to worker processes as-is.
    """
    pattern: RedactionPattern
    detector: TextDetector
    recognizer: TextRecognizer
    params: RedactionParams = field(default_factory=RedactionParams)
    rasterizer: Optional[PdfRasterizer] = None

    def __post_init__(self):
        if self.rasterizer is None:
            self.rasterizer = PdfRasterizer(
                self.params.max_width, self.params.max_height, upscale=self.params.upscale
            )


def _redact_region(
    image: np.ndarray,
    region: Region,
    candidates: list[str],
    ctx: PageContext
) -> bool:
    """Paint a region if any candidate matches. Returns True if painted."""
    if not ctx.pattern.matches_any(candidates):
        return False

    rect = compute_mask(region, ctx.params.x_offset, ctx.params.y_offset)
    paint_mask(image, rect, ctx.params.fill_color)
    logger.debug(f"Redacted region {region.bbox} as {rect}")
    return True


def redact_page_image(image: np.ndarray, ctx: PageContext) -> int:
    """
    Detect, recognize and redact matching words of one page buffer.

    Detection runs once over the whole page. Recognition reads from an
    untouched copy of the page, so masks painted for earlier regions
    never change what later regions read.

    Args:
        image: Rendered page (BGR), modified in place
        ctx: Pattern, OCR services and parameters

    Returns:
        Number of regions painted
    """
    # Pristine copy for detection and recognition
    source = image.copy()
    regions = ctx.detector.detect(source)

    redacted = 0

    if ctx.params.strategy is RecognitionStrategy.PAGE_BATCHED:
        # One recognizer call for every region of the page
        candidate_lists = ctx.recognizer.recognize_batch(source, regions)
        if len(candidate_lists) != len(regions):
            raise PageProcessingError(
                f"Recognizer returned {len(candidate_lists)} results for {len(regions)} regions"
            )
        for region, candidates in zip(regions, candidate_lists):
            if _redact_region(image, region, candidates, ctx):
                redacted += 1
    else:
        # One recognizer call per region
        for region in regions:
            candidates = ctx.recognizer.recognize(source, region)
            if _redact_region(image, region, candidates, ctx):
                redacted += 1

    return redacted


def process_page(
    page: fitz.Page,
    page_index: int,
    ctx: PageContext,
    output_dir: Path
) -> PageOutcome:
    """
    Redact a single page and write it as ``redacted-<page_index>.png``.

    Args:
        page: PyMuPDF page object
        page_index: Page index (0-indexed, as enumerated by the document)
        ctx: Shared run context
        output_dir: Directory for the page image

    Returns:
        PageOutcome with the number of redacted regions

    Raises:
        PageProcessingError: If any stage fails
    """
    try:
        # Render page to image
        image = ctx.rasterizer.render(page)

        # Mask matching words in place
        redacted = redact_page_image(image, ctx)

        # Export as PNG
        output_path = save_page_image(
            image, Path(output_dir) / page_filename(page_index), page_index
        )
    except RedactorError as e:
        if isinstance(e, PageProcessingError) and e.page_index is None:
            e.page_index = page_index
        raise
    except Exception as e:
        raise PageProcessingError(
            f"Error processing page {page_index}: {e}", page_index=page_index
        ) from e

    # Drop the buffer before the next page is rendered
    del image

    logger.info(
        f"Written image for page {page_index} ({redacted} regions redacted)",
        extra={"censored_word_count": redacted, "page": page_index},
    )

    return PageOutcome(
        page_index=page_index,
        redacted_count=redacted,
        output_path=output_path,
    )
