"""
Document-level orchestration.

Iterates the pages of one PDF from the configured starting page, runs
the page pipeline on each and collects their outcomes. Pages run
sequentially by default, or in a multiprocessing Pool; each page owns
its own buffer, so only the read-only context is shared.
"""

import logging
import multiprocessing
from pathlib import Path
from typing import Optional

from tqdm import tqdm

from .exceptions import ConfigurationError, PageProcessingError
from .image_io import remove_partial_images
from .models import ErrorPolicy, PageOutcome, RunResult
from .ocr import set_tesseract_cmd
from .pipeline import PageContext, process_page
from .rasterizer import open_document


logger = logging.getLogger(__name__)


def page_indices(total_pages: int, from_page: int) -> list[int]:
    """
    0-indexed pages to process, starting at a 1-indexed page number.

    Raises:
        ConfigurationError: If from_page is below 1
    """
    if from_page < 1:
        raise ConfigurationError(f"Starting page must be 1 or greater, got {from_page}")
    return list(range(from_page - 1, total_pages))


def _run_page(
    pdf_path: Path,
    page_index: int,
    ctx: PageContext,
    output_dir: Path,
    doc=None
) -> PageOutcome:
    """
    Process one page, applying the context's error policy.

    Opens the document itself when no open document is given (worker
    processes cannot share a PyMuPDF document).
    """
    own_doc = doc is None

    try:
        if own_doc:
            # The file may have changed since the parent opened it
            try:
                doc = open_document(pdf_path)
            except ConfigurationError as e:
                raise PageProcessingError(
                    f"Cannot reopen document for page {page_index}: {e}",
                    page_index=page_index
                ) from e

        return process_page(doc[page_index], page_index, ctx, output_dir)
    except PageProcessingError as e:
        if ctx.params.error_policy is not ErrorPolicy.SKIP:
            raise
        logger.error(f"Skipping page {page_index}: {e}")
        return PageOutcome(page_index=page_index, error=str(e))
    finally:
        if own_doc and doc is not None:
            doc.close()


def _init_worker(tesseract_cmd: Optional[str]) -> None:
    """
    Per-process setup for pool workers.

    Workers started without fork do not inherit the parent's Tesseract path.
    """
    if tesseract_cmd:
        set_tesseract_cmd(tesseract_cmd)


def _run_page_wrapper(args: tuple) -> PageOutcome:
    """
    Wrapper for multiprocessing - unpacks arguments.
    """
    pdf_path, page_index, ctx, output_dir = args
    return _run_page(pdf_path, page_index, ctx, output_dir)


def redact_document(
    pdf_path: Path,
    ctx: PageContext,
    output_dir: Path,
    show_progress: bool = False
) -> RunResult:
    """
    Redact every page of a PDF from ``ctx.params.from_page`` onwards.

    Args:
        pdf_path: Path to the PDF file
        ctx: Pattern, OCR services and parameters shared by all pages
        output_dir: Directory for page images (created with parents)
        show_progress: Display a tqdm progress bar

    Returns:
        RunResult with one outcome per processed page, in page order

    Raises:
        ConfigurationError: If the PDF cannot be opened or from_page is invalid
        PageProcessingError: On the first failing page, unless the
            error policy is SKIP
    """
    pdf_path = Path(pdf_path)
    output_dir = Path(output_dir)
    params = ctx.params

    doc = open_document(pdf_path)
    try:
        total_pages = len(doc)
        indices = page_indices(total_pages, params.from_page)

        output_dir.mkdir(parents=True, exist_ok=True)
        logger.info(
            f"Redacting {len(indices)} of {total_pages} pages from {pdf_path} "
            f"matching {ctx.pattern.expression!r}"
        )

        result = RunResult(pdf_path=pdf_path, total_pages=total_pages)

        if params.workers <= 1 or len(indices) <= 1:
            for page_index in tqdm(indices, desc="Redacting pages", unit="page", disable=not show_progress):
                result.pages.append(_run_page(pdf_path, page_index, ctx, output_dir, doc=doc))
        else:
            args_list = [(pdf_path, i, ctx, output_dir) for i in indices]
            try:
                with multiprocessing.Pool(
                    params.workers,
                    initializer=_init_worker,
                    initargs=(params.tesseract_cmd,)
                ) as pool:
                    # imap keeps page order and stops at the first raised error
                    result.pages = list(tqdm(
                        pool.imap(_run_page_wrapper, args_list),
                        total=len(indices),
                        desc="Redacting pages",
                        unit="page",
                        disable=not show_progress
                    ))
            except PageProcessingError:
                # Leaving the pool terminates workers that may be mid-write
                removed = remove_partial_images(output_dir)
                if removed:
                    logger.debug(f"Removed {len(removed)} partially written page(s)")
                raise
    finally:
        doc.close()

    if result.failed_pages:
        logger.warning(
            f"{len(result.failed_pages)} page(s) failed: "
            f"{[p.page_index for p in result.failed_pages]}"
        )

    return result


def get_processing_stats(result: RunResult) -> dict:
    """
    Get statistics about the run.

    Args:
        result: Completed run result

    Returns:
        Dictionary with processing statistics
    """
    return {
        "total_pages": result.total_pages,
        "processed_pages": len(result.pages),
        "successful_pages": len(result.pages) - len(result.failed_pages),
        "failed_pages": len(result.failed_pages),
        "total_redactions": result.total_redactions,
        "failed_page_indices": [p.page_index for p in result.failed_pages],
    }
