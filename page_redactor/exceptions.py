"""Exception hierarchy for the page redactor.

Separates configuration problems found before any page is touched,
OCR backend initialization failures, and failures while processing a
specific page.
"""

from typing import Optional


class RedactorError(Exception):
    """Base exception for all redactor errors."""

    pass


class ConfigurationError(RedactorError):
    """Raised for invalid patterns, unreadable paths or bad page offsets."""

    pass


class InitializationError(RedactorError):
    """Raised when the OCR backend or its language data cannot be loaded."""

    pass


class PageProcessingError(RedactorError):
    """Raised when rasterizing, detecting, recognizing or exporting a page fails."""

    def __init__(self, message: str, page_index: Optional[int] = None):
        super().__init__(message)
        self.page_index = page_index

    def __reduce__(self):
        # Keep page_index when sent back from a worker process
        return (type(self), (str(self), self.page_index))
