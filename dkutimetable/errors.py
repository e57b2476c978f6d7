"""
Exception types raised by the parser and the fetch layer.

Only structural problems raise. Cell-level anomalies (empty cells,
placeholders, legend misses) are skipped silently by the parser.
"""

from __future__ import annotations


class TimetableError(Exception):
    """Base class for all errors raised by dkutimetable."""


class ParseError(TimetableError):
    """A page could not be parsed at all."""


class MissingAnchorError(ParseError):
    """
    A required structural anchor is missing from the markup.

    Callers must not cache or serve a partial result for such a page.
    """

    def __init__(self, anchor: str, detail: str = "") -> None:
        self.anchor = anchor
        message = f"{anchor} not found"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class FetchError(TimetableError):
    """Upstream page could not be downloaded."""
