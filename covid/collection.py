"""
Series collection (SeriesSlice)
===============================

A `SeriesSlice` is the ordered list of every region's Series. It is what the
snapshot store publishes and what queries run against:

- lookups by (country, province), case-insensitive
- ranking (deaths descending, then country name)
- option lists for the country / province / period selects

Uniqueness of (country, province) is kept by the merge engine's
find-or-create logic, not by this class.
"""

from __future__ import annotations
from typing import List
import logging

import pandas as pd

from .dsa import merge_sort, top_k
from .errors import SeriesNotFound
from .models import Datum, DateLike, Option, Series

logger = logging.getLogger(__name__)

# Provinces of these countries are outlying territories, not a breakdown
PROVINCE_OPTION_EXCLUDED = frozenset({"United Kingdom", "France"})

PERIODS = (112, 56, 28, 14, 7, 3, 2)


def less(a: Series, b: Series) -> bool:
    """Ranking order: deaths descending, or country ascending when neither has deaths."""
    if a.total_deaths() > 0 or b.total_deaths() > 0:
        return a.total_deaths() > b.total_deaths()
    return a.country < b.country


def period_options() -> List[Option]:
    """Options for the period filter; value is a day count, 0 meaning all."""
    options = [Option(name="All Time", value="0")]
    for p in PERIODS:
        options.append(Option(name=f"{p} Days", value=str(p)))
    return options


class SeriesSlice(list):
    """An ordered collection of Series."""

    def copy(self) -> "SeriesSlice":
        """Deep copy: new Series objects with their own lists."""
        return SeriesSlice(s.copy() for s in self)

    def find_series(self, country: str, province: str) -> Series:
        """The first matching series, or an invalid sentinel Series."""
        for s in self:
            if s.match(country, province):
                return s
        return Series()

    def fetch_series(self, country: str, province: str) -> Series:
        """The first matching series; raises SeriesNotFound on a miss."""
        s = self.find_series(country, province)
        if not s.valid():
            raise SeriesNotFound(country, province, series=s)
        return s

    def fetch_date(self, country: str, province: str, datum: Datum, when: DateLike) -> int:
        """Cumulative value for one region on one date.

        A missing region raises SeriesNotFound; a date outside the series
        returns 0.
        """
        return self.fetch_series(country, province).fetch_date(datum, when)

    def print_series(self, country: str, province: str) -> None:
        try:
            s = self.fetch_series(country, province)
        except SeriesNotFound as e:
            logger.error("series: %s %s", country, e)
            raise
        logger.info("series:%s,%s %s %s", s.country, s.province, s.confirmed, s.deaths)

    # ---------------- Ranking ----------------
    def ranked(self) -> "SeriesSlice":
        return SeriesSlice(merge_sort(self, less))

    def top(self, k: int) -> "SeriesSlice":
        """The k series with the most deaths (Global excluded)."""
        regions = [s for s in self if not s.is_global()]
        return SeriesSlice(top_k(regions, k, key=lambda s: s.total_deaths()))

    # ---------------- Options ----------------
    def country_options(self) -> List[Option]:
        """Options for the country select, led by Global."""
        options = [Option(name="Global", value="")]
        for s in self:
            if s.province == "" and s.country != "":
                name = s.country
                if s.total_deaths() > 0:
                    name = f"{s.country} ({s.total_deaths()} Deaths)"
                options.append(Option(name=name, value=s.key(s.country)))
        return options

    def province_options(self, country: str) -> List[Option]:
        """Options for the province select of one country, led by All Areas."""
        options = [Option(name="All Areas", value="")]
        if country in PROVINCE_OPTION_EXCLUDED:
            return options
        for s in self:
            if s.country == country and s.province != "":
                name = s.province
                if s.total_deaths() > 0:
                    name = f"{s.province} ({s.total_deaths()} Deaths)"
                options.append(Option(name=name, value=s.key(s.province)))
        return options

    def to_frame(self) -> pd.DataFrame:
        """Long-format table: one row per (region, date)."""
        frames = []
        for s in self:
            if not s.valid():
                continue
            df = s.to_frame().reset_index()
            df.insert(0, "province", s.province)
            df.insert(0, "country", s.country)
            frames.append(df)
        if not frames:
            return pd.DataFrame(columns=["country", "province", "date", "deaths", "confirmed",
                                         "deaths_daily", "confirmed_daily"])
        return pd.concat(frames, ignore_index=True)
