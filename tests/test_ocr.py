"""Tests for the OCR services, the contour detector and page rendering."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import cv2
import fitz  # PyMuPDF
import numpy as np
import pytest
import pytesseract

from conftest import create_test_pdf
from page_redactor import ocr
from page_redactor.exceptions import ConfigurationError, InitializationError, PageProcessingError
from page_redactor.logging_config import StructuredFormatter
from page_redactor.models import Region
from page_redactor.ocr import TesseractDetector, TesseractRecognizer, ensure_tesseract
from page_redactor.rasterizer import PdfRasterizer, fit_zoom, open_document
from page_redactor.word_detector import ContourWordDetector


def _tesseract_data(rows: list[dict]) -> dict:
    """Build an image_to_data DICT from a list of row dicts."""
    keys = ["level", "block_num", "par_num", "line_num", "word_num",
            "left", "top", "width", "height", "conf", "text"]
    defaults = {"level": 5, "block_num": 1, "par_num": 1, "line_num": 1, "word_num": 1,
                "left": 0, "top": 0, "width": 10, "height": 10, "conf": 90.0, "text": ""}
    return {k: [row.get(k, defaults[k]) for row in rows] for k in keys}


# ------------------------------------------------------------------
# Tesseract services
# ------------------------------------------------------------------


class TestTesseractDetector:
    def test_keeps_word_boxes_only(self, monkeypatch: pytest.MonkeyPatch, blank_image: np.ndarray) -> None:
        data = _tesseract_data([
            {"level": 1, "width": 200, "height": 100, "conf": -1, "text": ""},
            {"level": 4, "left": 5, "top": 5, "width": 100, "height": 12, "conf": -1, "text": ""},
            {"left": 5, "top": 5, "width": 30, "height": 12, "text": "Name:"},
            {"left": 40, "top": 5, "width": 60, "height": 12, "conf": 12.5, "text": "123-45-6789"},
            {"left": 110, "top": 5, "width": 20, "height": 12, "text": "  "},
        ])
        monkeypatch.setattr(pytesseract, "image_to_data", lambda *a, **kw: data)

        regions = TesseractDetector().detect(blank_image)

        assert regions == [
            Region(x=5, y=5, width=30, height=12),
            Region(x=40, y=5, width=60, height=12),
        ]

    def test_tesseract_error_becomes_page_error(self, monkeypatch: pytest.MonkeyPatch,
                                                blank_image: np.ndarray) -> None:
        def boom(*args, **kwargs):
            raise pytesseract.TesseractError(1, "bad image")

        monkeypatch.setattr(pytesseract, "image_to_data", boom)

        with pytest.raises(PageProcessingError, match="Tesseract failed"):
            TesseractDetector().detect(blank_image)


class TestTesseractRecognizer:
    def test_one_candidate_per_line(self, monkeypatch: pytest.MonkeyPatch, blank_image: np.ndarray) -> None:
        data = _tesseract_data([
            {"text": "SSN:", "line_num": 1},
            {"text": "123-45-6789", "line_num": 1},
            {"text": "blurry", "line_num": 2, "conf": 5.0},
            {"text": "second", "line_num": 3},
        ])
        calls = []

        def fake(image, **kwargs):
            calls.append((image.size, kwargs["config"]))
            return data

        monkeypatch.setattr(pytesseract, "image_to_data", fake)

        candidates = TesseractRecognizer(padding=4).recognize(blank_image, Region(x=10, y=10, width=20, height=10))

        assert candidates == ["SSN: 123-45-6789", "second"]
        assert calls == [((28, 18), "--psm 7")]

    def test_low_confidence_yields_nothing(self, monkeypatch: pytest.MonkeyPatch, blank_image: np.ndarray) -> None:
        data = _tesseract_data([{"text": "maybe", "conf": "10"}])
        monkeypatch.setattr(pytesseract, "image_to_data", lambda *a, **kw: data)

        recognizer = TesseractRecognizer(min_confidence=30)
        assert recognizer.recognize(blank_image, Region(x=0, y=0, width=10, height=10)) == []

    def test_region_outside_image_yields_nothing(self, blank_image: np.ndarray) -> None:
        recognizer = TesseractRecognizer()
        assert recognizer.recognize(blank_image, Region(x=500, y=500, width=10, height=10)) == []

    def test_default_batch_loops_over_regions(self, monkeypatch: pytest.MonkeyPatch,
                                              blank_image: np.ndarray) -> None:
        data = _tesseract_data([{"text": "word"}])
        monkeypatch.setattr(pytesseract, "image_to_data", lambda *a, **kw: data)

        regions = [Region(x=0, y=0, width=10, height=10), Region(x=20, y=0, width=10, height=10)]
        assert TesseractRecognizer().recognize_batch(blank_image, regions) == [["word"], ["word"]]

    def test_does_not_touch_tesseract_cmd(self, monkeypatch: pytest.MonkeyPatch,
                                          blank_image: np.ndarray) -> None:
        monkeypatch.setattr(pytesseract.pytesseract, "tesseract_cmd", "/usr/local/bin/tesseract")
        monkeypatch.setattr(pytesseract, "image_to_data", lambda *a, **kw: _tesseract_data([]))

        TesseractDetector().detect(blank_image)
        TesseractRecognizer().recognize(blank_image, Region(x=0, y=0, width=10, height=10))

        assert pytesseract.pytesseract.tesseract_cmd == "/usr/local/bin/tesseract"


class TestEnsureTesseract:
    def test_missing_binary(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def missing():
            raise pytesseract.TesseractNotFoundError()

        monkeypatch.setattr(pytesseract, "get_tesseract_version", missing)

        with pytest.raises(InitializationError, match="not available"):
            ensure_tesseract("eng")

    def test_missing_language(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(pytesseract, "get_tesseract_version", lambda: "5.3.0")
        monkeypatch.setattr(pytesseract, "get_languages", lambda config="": ["eng", "osd"])

        with pytest.raises(InitializationError, match="deu"):
            ensure_tesseract("eng+deu")

    def test_available(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(pytesseract, "get_tesseract_version", lambda: "5.3.0")
        monkeypatch.setattr(pytesseract, "get_languages", lambda config="": ["eng", "osd"])

        assert ensure_tesseract("eng") == "5.3.0"

    def test_explicit_cmd_is_set_for_the_process(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(pytesseract.pytesseract, "tesseract_cmd", "tesseract")
        monkeypatch.setattr(pytesseract, "get_tesseract_version", lambda: "5.3.0")
        monkeypatch.setattr(pytesseract, "get_languages", lambda config="": ["eng"])

        ensure_tesseract("eng", "/opt/tesseract/bin/tesseract")

        assert pytesseract.pytesseract.tesseract_cmd == "/opt/tesseract/bin/tesseract"

    def test_word_level_constant(self) -> None:
        assert ocr.WORD_LEVEL == 5


# ------------------------------------------------------------------
# ContourWordDetector
# ------------------------------------------------------------------


class TestContourWordDetector:
    def test_separate_words(self, blank_image: np.ndarray) -> None:
        cv2.rectangle(blank_image, (20, 30), (60, 45), (0, 0, 0), thickness=-1)
        cv2.rectangle(blank_image, (120, 30), (170, 45), (0, 0, 0), thickness=-1)

        regions = ContourWordDetector().detect(blank_image)

        assert len(regions) == 2
        first, second = regions
        assert first.x <= 20 and first.x1 >= 61 and first.y <= 30 and first.y1 >= 46
        assert second.x <= 120 and second.x1 >= 171

    def test_close_glyphs_merge_into_one_word(self, blank_image: np.ndarray) -> None:
        for x in (20, 30, 40):
            cv2.rectangle(blank_image, (x, 30), (x + 6, 45), (0, 0, 0), thickness=-1)

        regions = ContourWordDetector().detect(blank_image)

        assert len(regions) == 1
        assert regions[0].x <= 20 and regions[0].x1 >= 47

    def test_reading_order(self, blank_image: np.ndarray) -> None:
        cv2.rectangle(blank_image, (120, 10), (150, 20), (0, 0, 0), thickness=-1)
        cv2.rectangle(blank_image, (20, 60), (50, 70), (0, 0, 0), thickness=-1)
        cv2.rectangle(blank_image, (20, 10), (50, 20), (0, 0, 0), thickness=-1)

        xs_ys = [(r.x < 100, r.y < 40) for r in ContourWordDetector().detect(blank_image)]

        assert xs_ys == [(True, True), (False, True), (True, False)]

    def test_blank_page_has_no_words(self, blank_image: np.ndarray) -> None:
        assert ContourWordDetector().detect(blank_image) == []

    def test_specks_are_ignored(self, blank_image: np.ndarray) -> None:
        blank_image[50, 50] = 0
        assert ContourWordDetector(min_area=100).detect(blank_image) == []


# ------------------------------------------------------------------
# Rasterizer
# ------------------------------------------------------------------


class TestRasterizer:
    def test_fit_zoom_uses_tighter_cap(self) -> None:
        assert fit_zoom(1000, 500, 400, 400) == 0.4
        assert fit_zoom(612, 792, 500, 300) == pytest.approx(300 / 792)

    def test_fit_zoom_never_enlarges_by_default(self) -> None:
        assert fit_zoom(200, 100, 400, 400) == 1.0
        assert fit_zoom(612, 792, 2000, 2000) == 1.0

    def test_fit_zoom_upscale(self) -> None:
        assert fit_zoom(200, 100, 400, 400, upscale=True) == 2.0
        assert fit_zoom(612, 792, 2000, 2000, upscale=True) == pytest.approx(2000 / 792)

    def test_render_respects_caps(self, tmp_path: Path) -> None:
        pdf_path = create_test_pdf(tmp_path / "letter.pdf", width=612, height=792)
        doc = fitz.open(str(pdf_path))
        try:
            image = PdfRasterizer(max_width=500, max_height=300).render(doc[0])
        finally:
            doc.close()

        assert image.dtype == np.uint8
        assert image.ndim == 3 and image.shape[2] == 3
        assert image.shape[0] <= 300 and image.shape[1] <= 500
        assert image.flags.writeable

    @pytest.mark.parametrize("upscale, shape", [(False, (100, 200, 3)), (True, (200, 400, 3))])
    def test_render_size(self, tmp_path: Path, upscale: bool, shape: tuple) -> None:
        pdf_path = create_test_pdf(tmp_path / "doc.pdf", width=200, height=100)
        doc = fitz.open(str(pdf_path))
        try:
            image = PdfRasterizer(max_width=400, max_height=400, upscale=upscale).render(doc[0])
        finally:
            doc.close()

        assert image.shape == shape

    def test_invalid_caps(self) -> None:
        with pytest.raises(ValueError):
            PdfRasterizer(max_width=0)

    def test_open_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            open_document(tmp_path / "missing.pdf")

    def test_open_garbage(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.pdf"
        bad.write_bytes(b"this is not a pdf")
        with pytest.raises(ConfigurationError):
            open_document(bad)


class TestStructuredFormatter:
    def test_includes_extra_fields(self) -> None:
        record = logging.makeLogRecord({
            "name": "page_redactor.pipeline",
            "levelname": "INFO",
            "msg": "Written image for a page",
            "censored_word_count": 3,
            "page": 7,
        })

        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "Written image for a page"
        assert data["censored_word_count"] == 3
        assert data["page"] == 7
        assert "args" not in data
