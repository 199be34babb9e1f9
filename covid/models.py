"""
Data model (Series)
===================

Each region in the case-count feeds (a country, or a province within a
country) is held as one `Series`: cumulative deaths/confirmed counts, one entry
per calendar day from `starts_at`, plus the day-over-day deltas derived from
them.

Unlike an immutable row record, a Series is built up incrementally while CSV
feeds are merged (time-series rows, then daily snapshot corrections), so the
dataclass is mutable. Published snapshots are never edited in place: the
merge engine works on deep copies (see `SeriesSlice.copy`).

A Series without `starts_at` is the "invalid" sentinel returned by lookups
that miss, instead of None.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import List, Optional, Union
import logging
import math

import pandas as pd

from .errors import LengthMismatch

logger = logging.getLogger(__name__)

# Index 0 of every time-series feed
EPOCH = datetime(2020, 1, 22, tzinfo=timezone.utc)

# Country-level rows that would double count provinces already in Global.
# "US" was once excluded here too; US country rows are currently included.
GLOBAL_EXCLUDED = frozenset({"", "China", "Australia", "Canada"})

# Windows longer than this report the absolute cumulative count
FULL_HISTORY_DAYS = 60

DateLike = Union[date, datetime]


class Datum(Enum):
    """Which cumulative count a query reads."""
    DEATHS = "deaths"
    CONFIRMED = "confirmed"

    @classmethod
    def parse(cls, value: str) -> "Datum":
        v = value.strip().lower()
        for d in cls:
            if d.value == v:
                return d
        raise ValueError(f"datum must be: deaths | confirmed (got {value!r})")


@dataclass(frozen=True)
class Option:
    """A (display name, lookup key) pair for a select in the view."""
    name: str
    value: str


def as_utc(when: DateLike) -> datetime:
    """Return `when` as an aware UTC datetime (dates become midnight UTC)."""
    if isinstance(when, datetime):
        if when.tzinfo is None:
            return when.replace(tzinfo=timezone.utc)
        return when.astimezone(timezone.utc)
    return datetime(when.year, when.month, when.day, tzinfo=timezone.utc)


def format_count(i: int) -> str:
    """Format a count for display: 9999, 12.35k, 1.20m."""
    if i < 10000:
        return f"{i}"
    if i < 1000000:
        return f"{i / 1000:.2f}k"
    return f"{i / 1000000:.2f}m"


def daily_deltas(totals: List[int]) -> List[int]:
    """Day-over-day increases; day 0 keeps its total."""
    out: List[int] = []
    prev = 0
    for t in totals:
        out.append(t - prev)
        prev = t
    return out


def _later(a: Optional[datetime], b: Optional[datetime]) -> Optional[datetime]:
    if b is None:
        return a
    if a is None or b > a:
        return b
    return a


@dataclass
class Series:
    """Data for one country, or one province within a country."""
    country: str = ""
    # blank for country-level series; both blank for Global
    province: str = ""
    # UTC midnight of index 0; None marks the invalid sentinel
    starts_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deaths: List[int] = field(default_factory=list)
    confirmed: List[int] = field(default_factory=list)
    deaths_daily: List[int] = field(default_factory=list)
    confirmed_daily: List[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.starts_at is not None:
            self.starts_at = as_utc(self.starts_at)

    # ---------------- Identity ----------------
    def valid(self) -> bool:
        return self.starts_at is not None

    @staticmethod
    def key(v: str) -> str:
        """Convert a value into one suitable for use in urls."""
        return v.lower().replace(" ", "-")

    def match(self, country: str, province: str) -> bool:
        """Case-insensitive match on country and province."""
        return self.key(self.country) == self.key(country) and self.key(self.province) == self.key(province)

    def is_global(self) -> bool:
        return self.country == "" and self.province == ""

    def add_to_global(self) -> bool:
        """True if this series is folded into the Global aggregate.

        Every province is included. Country rows are excluded where the
        country's provinces already carry its counts.
        """
        if self.province != "":
            return True
        return self.country not in GLOBAL_EXCLUDED

    def title(self) -> str:
        if self.is_global():
            return "Global"
        if self.province == "":
            return self.country
        return f"{self.province} ({self.country})"

    def copy(self) -> "Series":
        return Series(
            country=self.country,
            province=self.province,
            starts_at=self.starts_at,
            updated_at=self.updated_at,
            deaths=self.deaths[:],
            confirmed=self.confirmed[:],
            deaths_daily=self.deaths_daily[:],
            confirmed_daily=self.confirmed_daily[:],
        )

    # ---------------- Accumulation ----------------
    def merge(self, other: "Series") -> None:
        """Add the counts of `other` to ours.

        Also used to seed an empty series: on first call the lists are
        zero-filled to the size of `other`. Daily deltas are then recomputed
        over the index range `other` covers.
        """
        if len(self.deaths) == 0 and len(self.confirmed) == 0:
            self.deaths = [0] * len(other.deaths)
            self.confirmed = [0] * len(other.confirmed)
            self.deaths_daily = [0] * len(other.deaths)
            self.confirmed_daily = [0] * len(other.confirmed)
        elif len(other.deaths) > len(self.deaths) or len(other.confirmed) > len(self.confirmed):
            raise LengthMismatch(
                f"series: cannot merge {len(other.deaths)} days of {other.title()} "
                f"into {len(self.deaths)} days of {self.title()}"
            )

        for i, d in enumerate(other.deaths):
            self.deaths[i] += d
        for i, c in enumerate(other.confirmed):
            self.confirmed[i] += c

        _fit(self.deaths_daily, len(self.deaths))
        _fit(self.confirmed_daily, len(self.confirmed))
        for i in range(len(other.deaths)):
            self.deaths_daily[i] = self.deaths[i] - (self.deaths[i - 1] if i > 0 else 0)
        for i in range(len(other.confirmed)):
            self.confirmed_daily[i] = self.confirmed[i] - (self.confirmed[i - 1] if i > 0 else 0)

        self.updated_at = _later(self.updated_at, other.updated_at)

    def merge_final_day(self, other: "Series") -> None:
        """Add only the last day of `other` to ours."""
        if len(other.confirmed) < 2 or len(other.deaths) < 2:
            return
        if len(other.confirmed) != len(self.confirmed) or len(other.deaths) != len(self.deaths):
            raise LengthMismatch(f"series: mismatch in days length for:{self.country}")

        i = len(self.confirmed) - 1
        self.confirmed[i] += other.confirmed[i]
        self.deaths[i] += other.deaths[i]
        self.deaths_daily[i] += other.deaths_daily[i]
        self.confirmed_daily[i] += other.confirmed_daily[i]
        self.updated_at = _later(self.updated_at, other.updated_at)

    def add_day_data(self, day_index: int, updated: Optional[datetime], confirmed: int, deaths: int) -> None:
        """Set the cumulative counts for `day_index`, adding the day if needed.

        Repeating the call for the same day overwrites, so same-day refreshes
        correct rather than double count. The daily lists are regenerated so all
        four lists keep one length.
        """
        self.updated_at = updated
        if day_index > len(self.deaths) - 1:
            if day_index > len(self.deaths):
                logger.warning("series: %s day %d is past end %d, appending",
                               self.title(), day_index, len(self.deaths))
            self.deaths.append(deaths)
            self.confirmed.append(confirmed)
        else:
            self.deaths[day_index] = deaths
            self.confirmed[day_index] = confirmed
        self.update_daily()

    def update_daily(self) -> None:
        """Regenerate both daily lists from the cumulative totals."""
        self.deaths_daily = daily_deltas(self.deaths)
        self.confirmed_daily = daily_deltas(self.confirmed)

    def daily_data(self, start: int, totals: List[int]) -> List[int]:
        """Daily increases of `totals` from index `start` on."""
        out: List[int] = []
        for i in range(max(start, 0), len(totals)):
            out.append(totals[i] - totals[i - 1] if i > 0 else totals[i])
        return out

    # ---------------- Queries ----------------
    def values(self, datum: Datum) -> List[int]:
        if datum is Datum.DEATHS:
            return self.deaths
        if datum is Datum.CONFIRMED:
            return self.confirmed
        raise ValueError(f"unknown datum {datum!r}")

    def fetch_date(self, datum: Datum, when: DateLike) -> int:
        """Cumulative value of `datum` on `when`, or 0 outside the series."""
        if self.starts_at is None:
            return 0
        i = math.floor((as_utc(when) - self.starts_at).total_seconds() / 86400)
        data = self.values(datum)
        if i < 0 or i > len(data) - 1:
            return 0
        return data[i]

    def total_deaths(self) -> int:
        return _window_total(self.deaths)

    def total_confirmed(self) -> int:
        return _window_total(self.confirmed)

    def days(self, days: int) -> "Series":
        """This series restricted to the trailing `days` days.

        Returns self when the window covers everything. Otherwise the window
        is a new Series holding copies of the trailing values, so later edits
        to either side are not shared.
        """
        if days >= len(self.deaths):
            return self
        i = len(self.deaths) - days
        return Series(
            country=self.country,
            province=self.province,
            starts_at=self.starts_at + timedelta(days=i) if self.starts_at is not None else None,
            updated_at=self.updated_at,
            deaths=self.deaths[i:],
            confirmed=self.confirmed[i:],
            deaths_daily=self.deaths_daily[i:],
            confirmed_daily=self.confirmed_daily[i:],
        )

    def dates(self) -> List[str]:
        """Date labels ("Jan 2") for every sample in the series."""
        if self.starts_at is None:
            return []
        out: List[str] = []
        for i in range(len(self.deaths)):
            d = self.starts_at + timedelta(days=i)
            out.append(f"{d.strftime('%b')} {d.day}")
        return out

    # ---------------- Display ----------------
    format = staticmethod(format_count)

    def deaths_display(self) -> str:
        return format_count(self.total_deaths())

    def confirmed_display(self) -> str:
        return format_count(self.total_confirmed())

    def deaths_today(self) -> str:
        return format_count(self.deaths_daily[-1] if self.deaths_daily else 0)

    def confirmed_today(self) -> str:
        return format_count(self.confirmed_daily[-1] if self.confirmed_daily else 0)

    def updated_at_display(self) -> str:
        if self.updated_at is None:
            return ""
        return f"Data last updated at {self.updated_at.strftime('%Y-%m-%d %H:%M %Z')}"

    def to_frame(self) -> pd.DataFrame:
        """Daily table indexed by date (columns: totals and daily deltas)."""
        df = pd.DataFrame({
            "deaths": pd.Series(self.deaths, dtype="Int64"),
            "confirmed": pd.Series(self.confirmed, dtype="Int64"),
            "deaths_daily": pd.Series(self.deaths_daily, dtype="Int64"),
            "confirmed_daily": pd.Series(self.confirmed_daily, dtype="Int64"),
        })
        if self.starts_at is not None:
            df.index = pd.date_range(self.starts_at, periods=len(df), freq="D", name="date")
        return df


def _window_total(values: List[int]) -> int:
    """Absolute count for short or full-history lists, else the window increase."""
    if not values:
        return 0
    if len(values) < 2 or len(values) > FULL_HISTORY_DAYS:
        return values[-1]
    return values[-1] - values[0]


def _fit(values: List[int], n: int) -> None:
    # pad or truncate in place so index i is addressable for i < n
    if len(values) < n:
        values.extend([0] * (n - len(values)))
    elif len(values) > n:
        del values[n:]
