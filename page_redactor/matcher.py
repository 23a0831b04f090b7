"""
Single-pattern matching of recognized text.
"""

import re
from typing import Iterable

from .exceptions import ConfigurationError


class RedactionPattern:
    """
    A compiled redaction pattern.

    Compiled once per run and shared read-only by every page, so it is
    safe to use from several worker processes.
    """

    def __init__(self, expression: str):
        try:
            self._regex = re.compile(expression)
        except re.error as e:
            raise ConfigurationError(
                f"Invalid redaction pattern {expression!r}: {e}"
            ) from e

    @property
    def expression(self) -> str:
        return self._regex.pattern

    def matches(self, text: str) -> bool:
        """True if the pattern occurs anywhere in ``text``."""
        return self._regex.search(text) is not None

    def matches_any(self, candidates: Iterable[str]) -> bool:
        """
        True if at least one candidate string matches.

        An empty candidate list never matches.
        """
        return any(self.matches(c) for c in candidates)

    def __repr__(self) -> str:
        return f"RedactionPattern({self.expression!r})"
