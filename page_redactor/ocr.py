"""
Text detection and recognition services.

The pipeline only depends on the two abstract interfaces below; any
object providing ``detect(image)`` and ``recognize(image, region)`` can
stand in for the Tesseract-backed implementations.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np
import pytesseract
from pytesseract import TesseractError, TesseractNotFoundError

from .exceptions import InitializationError, PageProcessingError
from .image_io import crop_region, to_pil
from .models import Region


logger = logging.getLogger(__name__)

# Tesseract image_to_data level for individual words
WORD_LEVEL = 5


class TextDetector(ABC):
    """Finds word regions in a page buffer. Returns geometry only."""

    @abstractmethod
    def detect(self, image: np.ndarray) -> list[Region]:
        ...


class TextRecognizer(ABC):
    """Reads the text of word regions."""

    @abstractmethod
    def recognize(self, image: np.ndarray, region: Region) -> list[str]:
        """
        Recognize one region.

        Returns:
            Zero or more candidate strings; empty when nothing was read
            with enough confidence
        """
        ...

    def recognize_batch(
        self,
        image: np.ndarray,
        regions: list[Region]
    ) -> list[list[str]]:
        """Recognize several regions, one candidate list per region."""
        return [self.recognize(image, region) for region in regions]


def set_tesseract_cmd(tesseract_cmd: str) -> None:
    """Point pytesseract at an explicit tesseract executable for this process."""
    pytesseract.pytesseract.tesseract_cmd = tesseract_cmd


def ensure_tesseract(lang: str = "eng", tesseract_cmd: Optional[str] = None) -> str:
    """
    Check that the Tesseract binary and language data are usable.

    Args:
        lang: Tesseract language spec, e.g. "eng" or "eng+deu"
        tesseract_cmd: Explicit path to the tesseract executable

    Returns:
        The Tesseract version string

    Raises:
        InitializationError: If the binary or a language is missing
    """
    if tesseract_cmd:
        set_tesseract_cmd(tesseract_cmd)

    try:
        version = str(pytesseract.get_tesseract_version())
        available = set(pytesseract.get_languages(config=""))
    except (TesseractNotFoundError, TesseractError, OSError) as e:
        raise InitializationError(f"Tesseract is not available: {e}") from e

    missing = [code for code in lang.split("+") if code not in available]
    if missing:
        raise InitializationError(
            f"Tesseract language data not installed: {', '.join(missing)}"
        )

    logger.info(f"Using Tesseract {version} ({lang})")
    return version


class _TesseractService:
    """Shared settings for the Tesseract-backed services."""

    def __init__(self, lang: str = "eng"):
        self.lang = lang

    def _image_to_data(self, image: np.ndarray, config: str) -> dict:
        # The executable path is process state, set once by set_tesseract_cmd
        try:
            return pytesseract.image_to_data(
                to_pil(image),
                lang=self.lang,
                config=config,
                output_type=pytesseract.Output.DICT,
            )
        except (TesseractError, TesseractNotFoundError) as e:
            raise PageProcessingError(f"Tesseract failed: {e}") from e


class TesseractDetector(_TesseractService, TextDetector):
    """Word boxes from a full-page Tesseract layout pass."""

    def __init__(self, lang: str = "eng", psm: int = 3):
        super().__init__(lang)
        self.psm = psm

    def detect(self, image: np.ndarray) -> list[Region]:
        data = self._image_to_data(image, f"--psm {self.psm}")

        regions = []
        for i in range(len(data["text"])):
            if data["level"][i] != WORD_LEVEL or not str(data["text"][i]).strip():
                continue
            width, height = int(data["width"][i]), int(data["height"][i])
            if width <= 0 or height <= 0:
                continue
            regions.append(Region(
                x=int(data["left"][i]),
                y=int(data["top"][i]),
                width=width,
                height=height,
            ))

        logger.debug(f"Detected {len(regions)} word regions")
        return regions


class TesseractRecognizer(_TesseractService, TextRecognizer):
    """
    Reads one region at a time from a crop of the page.

    Each recognized text line in the crop becomes one candidate; words
    below ``min_confidence`` are dropped.
    """

    def __init__(
        self,
        lang: str = "eng",
        psm: int = 7,
        min_confidence: float = 30.0,
        padding: int = 4
    ):
        super().__init__(lang)
        self.psm = psm
        self.min_confidence = min_confidence
        self.padding = padding

    def recognize(self, image: np.ndarray, region: Region) -> list[str]:
        crop = crop_region(image, region.bbox, padding=self.padding)
        if crop is None:
            return []

        data = self._image_to_data(crop, f"--psm {self.psm}")

        lines: dict[tuple[int, int, int], list[str]] = {}
        for i in range(len(data["text"])):
            text = str(data["text"][i]).strip()
            if not text or float(data["conf"][i]) < self.min_confidence:
                continue
            key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
            lines.setdefault(key, []).append(text)

        return [" ".join(words) for words in lines.values()]
