"""
Snapshot store (covid)
======================

The store holds the one published `SeriesSlice` that queries read.

1) A writer builds a complete new slice off to the side (no lock held while
   CSV feeds are parsed and merged)
2) `publish` takes the exclusive lock only to swap the reference
3) Readers take the shared lock for the duration of one query, so they see
   either the old slice or the new one in full

A failed build raises before `publish` is reached, which leaves the previous
snapshot live (stale but available). Scheduling, fetching and retries belong
to the caller.
"""

from __future__ import annotations
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, List, Optional
import logging
import threading

from .collection import SeriesSlice, period_options
from .loader import FeedSet, build_slice
from .models import DateLike, Datum, Option, Series, as_utc

logger = logging.getLogger(__name__)


class RWLock:
    """Reader/writer lock: many readers or one writer.

    Waiting writers block new readers so a publish is not starved.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class SnapshotStore:
    """Holds the currently published SeriesSlice.

    Inject one store into both the refresh path and the query path; tests
    can use their own instance.
    """

    def __init__(self, initial: Optional[SeriesSlice] = None) -> None:
        self._lock = RWLock()
        self._data: SeriesSlice = initial if initial is not None else SeriesSlice()
        self.published_at: Optional[datetime] = None

    def get(self) -> SeriesSlice:
        """The current slice. Treat it as read-only."""
        with self._lock.read_locked():
            return self._data

    def publish(self, data: SeriesSlice) -> None:
        """Replace the published slice in one swap."""
        with self._lock.write_locked():
            self._data = data
            self.published_at = datetime.now(timezone.utc)
        logger.info("store: published %d series", len(data))

    @contextmanager
    def read(self) -> Iterator[SeriesSlice]:
        """Hold the shared lock while using the current slice."""
        with self._lock.read_locked():
            yield self._data

    # ---------------- Queries ----------------
    def fetch_series(self, country: str, province: str) -> Series:
        with self.read() as data:
            return data.fetch_series(country, province)

    def fetch_date(self, country: str, province: str, datum: Datum, when: DateLike) -> int:
        with self.read() as data:
            return data.fetch_date(country, province, datum, when)

    def country_options(self) -> List[Option]:
        with self.read() as data:
            return data.country_options()

    def province_options(self, country: str) -> List[Option]:
        with self.read() as data:
            return data.province_options(country)

    def period_options(self) -> List[Option]:
        return period_options()

    def ranked(self) -> SeriesSlice:
        with self.read() as data:
            return data.ranked()

    def top(self, k: int) -> SeriesSlice:
        with self.read() as data:
            return data.top(k)

    def __len__(self) -> int:
        with self.read() as data:
            return len(data)


def refresh(store: SnapshotStore, feeds: FeedSet, now: Optional[DateLike] = None) -> SeriesSlice:
    """Rebuild the dataset from `feeds` and publish it.

    The build starts from an empty slice and runs without any lock. Any
    error propagates and the store keeps its previous snapshot.
    """
    now = as_utc(now) if now is not None else datetime.now(timezone.utc)
    try:
        data = build_slice(feeds, now=now)
    except Exception:
        logger.exception("store: refresh failed, keeping previous snapshot (%d series)", len(store))
        raise
    store.publish(data)
    return data
