"""
Page Redactor CLI

Renders each page of a PDF, finds words matching a regular expression
with OCR, paints over them and writes one PNG per page.

Usage:
    page-redact --pdf-path scan.pdf --output-folder ./out/ --redact-pattern '\\d{3}-\\d{2}-\\d{4}'
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import click

from .batch import get_processing_stats, redact_document
from .exceptions import RedactorError
from .logging_config import configure_logging
from .matcher import RedactionPattern
from .models import ErrorPolicy, RecognitionStrategy, RedactionParams
from .ocr import TesseractDetector, TesseractRecognizer, TextDetector, TextRecognizer, ensure_tesseract
from .output_writer import write_summary
from .pipeline import PageContext
from .word_detector import ContourWordDetector


logger = logging.getLogger(__name__)


def build_ocr_engines(params: RedactionParams) -> tuple[TextDetector, TextRecognizer]:
    """
    Create the detector and recognizer for a run.

    Raises:
        InitializationError: If Tesseract or its language data is missing
    """
    ensure_tesseract(params.lang, params.tesseract_cmd)

    recognizer = TesseractRecognizer(
        lang=params.lang,
        min_confidence=params.min_confidence,
    )

    if params.detector == "contours":
        detector = ContourWordDetector()
    else:
        detector = TesseractDetector(lang=params.lang)

    return detector, recognizer


@click.command()
@click.option(
    "--pdf-path", "-p",
    required=True,
    type=click.Path(path_type=Path),
    help="Path to the original PDF file"
)
@click.option(
    "--output-folder", "-o",
    required=True,
    type=click.Path(file_okay=False, path_type=Path),
    help="Output folder for redacted pictures (created if missing)"
)
@click.option(
    "--redact-pattern", "-r",
    required=True,
    help="Regular expression; words whose recognized text matches are redacted"
)
@click.option(
    "--from-page",
    default=1,
    type=click.IntRange(min=1),
    help="Only run from this page (1-indexed). Default: 1"
)
@click.option(
    "--x-offset",
    default=2,
    type=click.IntRange(min=0),
    help="Horizontal mask padding in pixels. Default: 2"
)
@click.option(
    "--y-offset",
    default=2,
    type=click.IntRange(min=0),
    help="Vertical mask padding in pixels. Default: 2"
)
@click.option(
    "--max-width",
    default=2000,
    type=click.IntRange(min=1),
    help="Maximum rendered page width in pixels. Default: 2000"
)
@click.option(
    "--max-height",
    default=2000,
    type=click.IntRange(min=1),
    help="Maximum rendered page height in pixels. Default: 2000"
)
@click.option(
    "--upscale",
    is_flag=True,
    help="Enlarge pages smaller than the maximum size (may help OCR on small pages)"
)
@click.option(
    "--detector",
    default="tesseract",
    type=click.Choice(["tesseract", "contours"]),
    help="Word detector: Tesseract layout analysis or OpenCV contours. Default: tesseract"
)
@click.option(
    "--lang",
    default="eng",
    help="Tesseract language(s), e.g. 'eng' or 'eng+deu'. Default: eng"
)
@click.option(
    "--min-confidence",
    default=30.0,
    type=click.FloatRange(0, 100),
    help="Minimum Tesseract word confidence for recognized text. Default: 30"
)
@click.option(
    "--tesseract-cmd",
    default=None,
    envvar="TESSERACT_CMD",
    help="Path to the tesseract executable"
)
@click.option(
    "--batch-recognition",
    is_flag=True,
    help="Recognize all regions of a page in one pass instead of one region at a time"
)
@click.option(
    "--on-error",
    default="abort",
    type=click.Choice([p.value for p in ErrorPolicy]),
    help="abort: stop at the first failing page; skip: record it and continue. Default: abort"
)
@click.option(
    "--workers", "-w",
    default=1,
    type=click.IntRange(min=1),
    help="Number of parallel worker processes. Default: 1"
)
@click.option(
    "--summary",
    is_flag=True,
    help="Also write summary.json with per-page outcomes"
)
@click.option(
    "--log-json",
    is_flag=True,
    help="Emit log records as JSON lines"
)
@click.option(
    "--progress/--no-progress",
    default=False,
    help="Show a progress bar"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose output"
)
def main(
    pdf_path: Path,
    output_folder: Path,
    redact_pattern: str,
    from_page: int,
    x_offset: int,
    y_offset: int,
    max_width: int,
    max_height: int,
    upscale: bool,
    detector: str,
    lang: str,
    min_confidence: float,
    tesseract_cmd: Optional[str],
    batch_recognition: bool,
    on_error: str,
    workers: int,
    summary: bool,
    log_json: bool,
    progress: bool,
    verbose: bool,
):
    """
    Redact words matching a pattern from every page of a PDF.

    Writes redacted-<index>.png per page to the output folder, where
    <index> is the 0-indexed page number.
    """
    configure_logging(verbose=verbose, json_output=log_json)

    params = RedactionParams(
        x_offset=x_offset,
        y_offset=y_offset,
        max_width=max_width,
        max_height=max_height,
        upscale=upscale,
        from_page=from_page,
        strategy=(
            RecognitionStrategy.PAGE_BATCHED if batch_recognition
            else RecognitionStrategy.PER_REGION
        ),
        error_policy=ErrorPolicy(on_error),
        detector=detector,
        lang=lang,
        min_confidence=min_confidence,
        tesseract_cmd=tesseract_cmd,
        workers=workers,
    )

    start_time = datetime.now()

    try:
        # Pattern first: a bad expression must stop the run before any page is touched
        pattern = RedactionPattern(redact_pattern)
        page_detector, recognizer = build_ocr_engines(params)

        ctx = PageContext(
            pattern=pattern,
            detector=page_detector,
            recognizer=recognizer,
            params=params,
        )
        result = redact_document(pdf_path, ctx, output_folder, show_progress=progress)

        if summary:
            write_summary(result, params, pattern.expression, output_folder / "summary.json")
    except KeyboardInterrupt:
        click.echo(click.style("Processing interrupted by user", fg="yellow"), err=True)
        sys.exit(130)
    except (RedactorError, OSError) as e:
        logger.debug("Run aborted", exc_info=True)
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)

    stats = get_processing_stats(result)
    logger.info(
        f"Processed {stats['processed_pages']} page(s), "
        f"{stats['total_redactions']} region(s) redacted in {datetime.now() - start_time}"
    )

    if stats["failed_pages"]:
        click.echo(
            click.style(
                f"Failed pages (skipped): {stats['failed_page_indices']}", fg="yellow"
            ),
            err=True,
        )


if __name__ == "__main__":
    main()
