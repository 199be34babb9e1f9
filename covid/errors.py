"""
Error types
===========

Everything the data core raises derives from `CovidDataError` so callers can
catch one type. The concrete types also derive from the builtin they refine
(ValueError / LookupError), the same way the query parser's `ParseError`
extends ValueError.
"""

from __future__ import annotations
from typing import Optional


class CovidDataError(Exception):
    pass


class FormatInvalid(CovidDataError, ValueError):
    """A CSV header did not match the expected feed layout."""


class CellParseError(CovidDataError, ValueError):
    """A numeric or date cell could not be parsed."""

    def __init__(self, message: str, *, row: int, column: int, region: str) -> None:
        super().__init__(f"{message} (row={row} col={column} region={region!r})")
        self.row = row
        self.column = column
        self.region = region


class SeriesNotFound(CovidDataError, LookupError):
    """No series matched a (country, province) lookup.

    `series` holds the invalid sentinel Series so callers that prefer a
    value over an exception can still use it.
    """

    def __init__(self, country: str, province: str, series: Optional[object] = None) -> None:
        super().__init__(f"series: not found country={country!r} province={province!r}")
        self.country = country
        self.province = province
        self.series = series


class LengthMismatch(CovidDataError, ValueError):
    """Two series that must share a day count do not."""
