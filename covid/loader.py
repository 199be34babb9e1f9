"""
CSV merge engine (feeds -> SeriesSlice)
=======================================

This module reads the published case-count CSV feeds and folds them into a
`SeriesSlice`. Three layouts are understood:

- time series: one row per region, one column per day from 1/22/20
  (separate files for deaths and confirmed)
- daily country snapshot: one row per country, cumulative totals "as of today"
- daily state snapshot: one row per US state / province, same contract

Key ideas:
- Every merge works on a deep copy of the slice it is given. A failed merge
  raises and the caller still holds its untouched input, so a published
  snapshot is never half updated.
- The header is checked first; a mismatch fails the whole pass.
- Rows are processed strictly in order: later rows may reference series
  created by earlier ones.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Sequence, Tuple
import io
import logging
import math

import pandas as pd

from .collection import SeriesSlice
from .errors import CellParseError, FormatInvalid
from .models import EPOCH, DateLike, Datum, Series, as_utc

logger = logging.getLogger(__name__)

Records = Sequence[Sequence[str]]

TIME_SERIES_HEADER = ("Province/State", "Country/Region", "Lat", "Long", "1/22/20")
DAILY_COUNTRY_HEADER = ("Country_Region", "Last_Update", "Lat", "Long_", "Confirmed", "Deaths",
                        "Recovered", "Active")
DAILY_STATE_HEADER = ("FIPS", "Province_State", "Country_Region", "Last_Update", "Lat", "Long_",
                      "Confirmed", "Deaths", "Recovered", "Active")

# The same territory is also published as a US state
VIRGIN_ISLANDS_DUPLICATES = frozenset({"Virgin Islands, U.S.", "Virgin Islands, U.S"})

# Last_Update is published in either of these layouts, sometimes within one file
UPDATED_AT_FORMATS = ("%Y-%m-%d %H:%M:%S", "%m/%d/%Y %H:%M")


class DataKind(Enum):
    """Which feed a CSV holds."""
    DEATHS = "deaths"
    CONFIRMED = "confirmed"
    TODAY_STATE = "today_state"
    TODAY_COUNTRY = "today_country"


# ---------------- Reading ----------------
def read_records(text: str) -> List[List[str]]:
    """Parse CSV text into rows of strings (blank cells stay "").

    Rows wider than the header are accepted when the extra cells are blank
    (a trailing comma); any other over-wide row fails the read.
    """
    try:
        width = pd.read_csv(io.StringIO(text), header=None, dtype=str, nrows=1).shape[1]
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as e:
        raise FormatInvalid(f"load: error reading csv: {e}") from e

    def trim(line: List[str]) -> List[str]:
        cells = list(line)
        while len(cells) > width and str(cells[-1]).strip() == "":
            cells.pop()
        if len(cells) > width:
            raise FormatInvalid(f"load: error reading csv: expected {width} fields, saw {len(line)}: {line}")
        return cells

    try:
        df = pd.read_csv(io.StringIO(text), header=None, dtype=str, keep_default_na=False,
                         engine="python", on_bad_lines=trim)
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as e:
        raise FormatInvalid(f"load: error reading csv: {e}") from e
    return df.fillna("").values.tolist()


def read_records_file(path: str) -> List[List[str]]:
    with open(path, "r", encoding="utf-8") as f:
        return read_records(f.read())


def _check_header(records: Records, expected: Tuple[str, ...], name: str) -> None:
    if not records:
        raise FormatInvalid(f"load: error loading file - {name} csv is empty")
    header = [str(c) for c in records[0][:len(expected)]]
    if tuple(header) != expected:
        raise FormatInvalid(
            f"load: error loading file - {name} csv data format invalid: "
            f"expected {list(expected)} got {header}"
        )


def _cell(row: Sequence[str], col: int, row_no: int, region: str) -> str:
    if col >= len(row):
        raise CellParseError("load: row too short", row=row_no, column=col + 1, region=region)
    return str(row[col]).strip()


def _parse_int(row: Sequence[str], col: int, row_no: int, region: str, what: str) -> int:
    cell = _cell(row, col, row_no, region)
    try:
        return int(cell)
    except ValueError as e:
        raise CellParseError(f"load: error reading {what} {cell!r}", row=row_no, column=col + 1,
                             region=region) from e


def _parse_updated(row: Sequence[str], col: int, row_no: int, region: str,
                   allow_blank: bool = False) -> Optional[datetime]:
    cell = _cell(row, col, row_no, region)
    if cell == "" and allow_blank:
        return None
    for fmt in UPDATED_AT_FORMATS:
        try:
            return datetime.strptime(cell, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    raise CellParseError(f"load: error reading updated at {cell!r}", row=row_no, column=col + 1,
                         region=region)


def day_index(now: Optional[DateLike] = None) -> int:
    """Whole days between the feed epoch and `now` (UTC)."""
    now = as_utc(now) if now is not None else datetime.now(timezone.utc)
    return math.floor((now - EPOCH).total_seconds() / 86400)


# ---------------- Merging ----------------
def merge_csv(slice: SeriesSlice, records: Records, kind: DataKind,
              now: Optional[DateLike] = None) -> SeriesSlice:
    """Merge one feed into a copy of `slice` and return the copy.

    `now` is only read by the daily snapshot feeds; it fixes the day the
    snapshot is attributed to.
    """
    if kind is DataKind.DEATHS:
        return merge_time_series_csv(slice, records, Datum.DEATHS)
    if kind is DataKind.CONFIRMED:
        return merge_time_series_csv(slice, records, Datum.CONFIRMED)
    if kind is DataKind.TODAY_COUNTRY:
        return merge_daily_country_csv(slice, records, now=now)
    if kind is DataKind.TODAY_STATE:
        return merge_daily_state_csv(slice, records, now=now)
    raise ValueError(f"unknown data kind {kind!r}")


def merge_time_series_csv(slice: SeriesSlice, records: Records, datum: Datum) -> SeriesSlice:
    """Merge a wide time-series feed; each row replaces the `datum` list of its region."""
    _check_header(records, TIME_SERIES_HEADER, "time series")
    out = slice.copy()

    for row_no, row in enumerate(records[1:], start=2):
        province = _cell(row, 0, row_no, "")
        country = _cell(row, 1, row_no, province)

        # US county rows are no longer published and are zeroed out
        if country == "US" and ", " in province:
            continue
        if province in VIRGIN_ISLANDS_DUPLICATES:
            continue

        series = out.find_series(country, province)
        if not series.valid():
            series = Series(country=country, province=province, starts_at=EPOCH)
            out.append(series)

        values: List[int] = []
        for col in range(4, len(row)):
            cell = str(row[col]).strip()
            if cell == "":
                # usually a clerical error such as a trailing comma
                logger.warning("load: missing data for series:%s row:%d col:%d", country, row_no, col + 1)
                continue
            try:
                values.append(int(cell))
            except ValueError as e:
                raise CellParseError(f"load: csv day data invalid {cell!r}", row=row_no, column=col + 1,
                                     region=country) from e

        if datum is Datum.DEATHS:
            series.deaths = values
        elif datum is Datum.CONFIRMED:
            series.confirmed = values
        else:
            raise ValueError(f"unknown datum {datum!r}")
        series.update_daily()

    logger.info("load: merged %s time series, %d series", datum.value, len(out))
    return out


def merge_daily_country_csv(slice: SeriesSlice, records: Records,
                            now: Optional[DateLike] = None) -> SeriesSlice:
    """Apply today's per-country totals to existing country series."""
    logger.info("load: merge daily country csv")
    _check_header(records, DAILY_COUNTRY_HEADER, "daily country")
    index = _daily_index(now)
    out = slice.copy()

    for row_no, row in enumerate(records[1:], start=2):
        country = _cell(row, 0, row_no, "")
        # no new series for snapshots: partial data would join the region set
        series = out.find_series(country, "")
        if not series.valid():
            logger.warning("load: warning reading daily series:%s error:series not found", country)

        updated = _parse_updated(row, 1, row_no, country)
        confirmed = _parse_int(row, 4, row_no, country, "confirmed")
        deaths = _parse_int(row, 5, row_no, country, "deaths")
        if not series.valid():
            continue

        series.add_day_data(index, updated, confirmed, deaths)
    return out


def merge_daily_state_csv(slice: SeriesSlice, records: Records,
                          now: Optional[DateLike] = None) -> SeriesSlice:
    """Apply today's per-state totals to existing province series."""
    logger.info("load: merge daily state csv")
    _check_header(records, DAILY_STATE_HEADER, "daily state")
    index = _daily_index(now)
    out = slice.copy()

    for row_no, row in enumerate(records[1:], start=2):
        province = _cell(row, 1, row_no, "")
        country = _cell(row, 2, row_no, province)
        if province in VIRGIN_ISLANDS_DUPLICATES:
            continue

        series = out.find_series(country, province)
        if not series.valid():
            logger.warning("load: warning reading daily state series:%s error:series not found", province)

        updated = _parse_updated(row, 3, row_no, province, allow_blank=True)
        confirmed = _parse_int(row, 6, row_no, province, "confirmed")
        deaths = _parse_int(row, 7, row_no, province, "deaths")
        if not series.valid():
            continue

        series.add_day_data(index, updated, confirmed, deaths)
    return out


def _daily_index(now: Optional[DateLike]) -> int:
    index = day_index(now)
    if index < 0:
        raise FormatInvalid(f"load: day index out of bounds: {index}")
    return index


# ---------------- Aggregates ----------------
def _carried(values: List[int], n: int) -> List[int]:
    # a member that stops early holds its last cumulative value
    last = values[-1] if values else 0
    return values + [last] * (n - len(values))


def _aggregate(country: str, province: str, members: List[Series]) -> Series:
    """Sum of `members`, sized to the longest of them.

    Members with fewer days (regions a daily snapshot did not reach) count
    with their last cumulative value on the missing days, so the sum never
    drops on the latest day.
    """
    starts = [m.starts_at for m in members if m.starts_at is not None]
    total = Series(country=country, province=province, starts_at=min(starts) if starts else EPOCH)
    n_deaths = max((len(m.deaths) for m in members), default=0)
    n_confirmed = max((len(m.confirmed) for m in members), default=0)
    total.deaths = [0] * n_deaths
    total.confirmed = [0] * n_confirmed
    total.update_daily()
    for m in members:
        padded = Series(country=m.country, province=m.province, starts_at=m.starts_at,
                        updated_at=m.updated_at,
                        deaths=_carried(m.deaths, n_deaths),
                        confirmed=_carried(m.confirmed, n_confirmed))
        padded.update_daily()
        total.merge(padded)
    total.update_daily()
    return total


def add_country_totals(slice: SeriesSlice) -> SeriesSlice:
    """Add a country-level series for countries published only by province."""
    out = slice.copy()
    has_country_row = {Series.key(s.country) for s in out if s.province == "" and s.country != ""}
    pending: List[str] = []
    for s in out:
        if s.province != "" and Series.key(s.country) not in has_country_row and s.country not in pending:
            pending.append(s.country)

    for country in pending:
        provinces = [s for s in out if s.country == country and s.province != ""]
        out.append(_aggregate(country, "", provinces))
    if pending:
        logger.info("load: added country totals for %d countries", len(pending))
    return out


def add_global_series(slice: SeriesSlice) -> SeriesSlice:
    """Return a copy of `slice` led by a freshly summed Global series."""
    out = SeriesSlice(s for s in slice.copy() if not s.is_global())
    members = [s for s in out if s.add_to_global()]
    out.insert(0, _aggregate("", "", members))
    return out


# ---------------- Full pass ----------------
@dataclass
class FeedSet:
    """CSV text of every feed used in one refresh; the daily feeds are optional."""
    deaths: str
    confirmed: str
    daily_country: Optional[str] = None
    daily_state: Optional[str] = None

    @classmethod
    def from_paths(cls, deaths: str, confirmed: str, daily_country: Optional[str] = None,
                   daily_state: Optional[str] = None) -> "FeedSet":
        def read(p: Optional[str]) -> Optional[str]:
            if p is None:
                return None
            with open(p, "r", encoding="utf-8") as f:
                return f.read()
        return cls(deaths=read(deaths), confirmed=read(confirmed),
                   daily_country=read(daily_country), daily_state=read(daily_state))


def build_slice(feeds: FeedSet, base: Optional[SeriesSlice] = None,
                now: Optional[DateLike] = None) -> SeriesSlice:
    """Run one full merge pass and return the new slice.

    `now` is captured once so both daily feeds land on the same day even if
    the pass crosses UTC midnight. Country totals and Global are summed after
    the daily feeds so they include today's values.
    """
    now = as_utc(now) if now is not None else datetime.now(timezone.utc)
    out = base if base is not None else SeriesSlice()

    out = merge_csv(out, read_records(feeds.deaths), DataKind.DEATHS)
    out = merge_csv(out, read_records(feeds.confirmed), DataKind.CONFIRMED)
    if feeds.daily_country is not None:
        out = merge_csv(out, read_records(feeds.daily_country), DataKind.TODAY_COUNTRY, now=now)
    if feeds.daily_state is not None:
        out = merge_csv(out, read_records(feeds.daily_state), DataKind.TODAY_STATE, now=now)
    out = add_country_totals(out)
    out = add_global_series(out)

    logger.info("load: built %d series (day index %d)", len(out), day_index(now))
    return out
