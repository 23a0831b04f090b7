"""Shared fixtures: small PDFs and scripted OCR services."""

from __future__ import annotations

from pathlib import Path

import fitz  # PyMuPDF
import numpy as np
import pytest

from page_redactor.matcher import RedactionPattern
from page_redactor.models import RedactionParams, Region
from page_redactor.ocr import TextDetector, TextRecognizer
from page_redactor.pipeline import PageContext


SSN_PATTERN = r"\d{3}-\d{2}-\d{4}"


class ScriptedDetector(TextDetector):
    """Returns the same regions for every page."""

    def __init__(self, regions: list[Region]) -> None:
        self.regions = list(regions)
        self.calls = 0

    def detect(self, image: np.ndarray) -> list[Region]:
        self.calls += 1
        return list(self.regions)


class ScriptedRecognizer(TextRecognizer):
    """Returns scripted candidates per region; unknown regions read nothing."""

    def __init__(self, candidates: dict[Region, list[str]] | None = None) -> None:
        self.candidates = candidates or {}
        self.calls: list[Region] = []
        self.batch_calls = 0

    def recognize(self, image: np.ndarray, region: Region) -> list[str]:
        self.calls.append(region)
        return list(self.candidates.get(region, []))

    def recognize_batch(self, image: np.ndarray, regions: list[Region]) -> list[list[str]]:
        self.batch_calls += 1
        return [list(self.candidates.get(r, [])) for r in regions]


class FailingDetector(TextDetector):
    """Raises on the n-th page it sees (1-indexed), detects nothing otherwise."""

    def __init__(self, fail_on_call: int) -> None:
        self.fail_on_call = fail_on_call
        self.calls = 0

    def detect(self, image: np.ndarray) -> list[Region]:
        self.calls += 1
        if self.calls == self.fail_on_call:
            raise RuntimeError("detection model crashed")
        return []


class HeightFailingDetector(TextDetector):
    """Raises on pages rendered at the given pixel height.

    Keyed on the page itself rather than a call count, so it behaves the
    same in every worker process.
    """

    def __init__(self, fail_height: int) -> None:
        self.fail_height = fail_height

    def detect(self, image: np.ndarray) -> list[Region]:
        if image.shape[0] == self.fail_height:
            raise RuntimeError("detection model crashed")
        return []


def create_test_pdf(path: Path, pages: int = 1, width: float = 400, height: float = 200,
                    heights: list[float] | None = None) -> Path:
    """Create a PDF with blank white pages, one text line each.

    ``heights`` gives each page its own height and overrides ``pages``.
    """
    heights = heights or [height] * pages
    doc = fitz.open()
    for i, page_height in enumerate(heights):
        page = doc.new_page(width=width, height=page_height)
        page.insert_text((10, 20), f"Page {i + 1}", fontsize=8)
    doc.save(str(path))
    doc.close()
    return path


def make_context(detector: TextDetector, recognizer: TextRecognizer,
                 pattern: str = SSN_PATTERN, **params) -> PageContext:
    params.setdefault("max_width", 400)
    params.setdefault("max_height", 400)
    return PageContext(
        pattern=RedactionPattern(pattern),
        detector=detector,
        recognizer=recognizer,
        params=RedactionParams(**params),
    )


@pytest.fixture
def blank_image() -> np.ndarray:
    """A white 100x200 BGR page buffer."""
    return np.full((100, 200, 3), 255, dtype=np.uint8)
