"""
Data models for page redaction.

Defines dataclasses for word regions, mask rectangles, per-page outcomes
and the run parameters shared by every page.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional


# Fill colour for redaction masks, in BGR channel order (OpenCV buffers).
BLACK: tuple[int, int, int] = (0, 0, 0)


class RecognitionStrategy(Enum):
    """How recognition calls are grouped for one page."""
    PER_REGION = "per-region"
    PAGE_BATCHED = "page-batched"


class ErrorPolicy(Enum):
    """What the batch driver does when a page fails."""
    ABORT = "abort"
    SKIP = "skip"


@dataclass(frozen=True)
class Region:
    """
    A detected word region.

    Coordinates are in page image pixels, origin top-left.
    """
    x: int
    y: int
    width: int
    height: int

    @classmethod
    def from_quad(cls, points: Iterable[tuple[float, float]]) -> "Region":
        """Reduce a quadrilateral (or any polygon) to its bounding rectangle."""
        points = list(points)
        if not points:
            raise ValueError("Cannot build a region from an empty point list")
        xs = [p[0] for p in points]
        ys = [p[1] for p in points]
        # Grow outwards so fractional corners stay covered
        x0, y0 = math.floor(min(xs)), math.floor(min(ys))
        x1, y1 = math.ceil(max(xs)), math.ceil(max(ys))
        return cls(x=x0, y=y0, width=x1 - x0, height=y1 - y0)

    @property
    def x1(self) -> int:
        return self.x + self.width

    @property
    def y1(self) -> int:
        return self.y + self.height

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def bbox(self) -> tuple[int, int, int, int]:
        return (self.x, self.y, self.x1, self.y1)


@dataclass(frozen=True)
class MaskRect:
    """The padded rectangle painted over a matching region."""
    x: int
    y: int
    width: int
    height: int

    @property
    def x1(self) -> int:
        return self.x + self.width

    @property
    def y1(self) -> int:
        return self.y + self.height


@dataclass
class PageOutcome:
    """Result of processing a single page."""
    page_index: int  # 0-indexed, as enumerated by the document
    redacted_count: int = 0
    output_path: Optional[Path] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class RunResult:
    """Results from redacting one document."""
    pdf_path: Path
    total_pages: int = 0
    pages: list[PageOutcome] = field(default_factory=list)

    @property
    def total_redactions(self) -> int:
        return sum(p.redacted_count for p in self.pages)

    @property
    def failed_pages(self) -> list[PageOutcome]:
        return [p for p in self.pages if not p.succeeded]

    @property
    def written_files(self) -> list[Path]:
        return [p.output_path for p in self.pages if p.output_path is not None]


@dataclass
class RedactionParams:
    """Parameters for a redaction run."""
    x_offset: int = 2  # Horizontal mask padding in pixels
    y_offset: int = 2  # Vertical mask padding in pixels
    max_width: int = 2000  # Render cap for page width in pixels
    max_height: int = 2000  # Render cap for page height in pixels
    upscale: bool = False  # Enlarge pages smaller than the caps
    fill_color: tuple[int, int, int] = BLACK
    from_page: int = 1  # 1-indexed, inclusive
    strategy: RecognitionStrategy = RecognitionStrategy.PER_REGION
    error_policy: ErrorPolicy = ErrorPolicy.ABORT
    detector: str = "tesseract"  # "tesseract" or "contours"
    lang: str = "eng"
    min_confidence: float = 30.0  # Tesseract word confidence floor (0-100)
    tesseract_cmd: Optional[str] = None
    workers: int = 1
