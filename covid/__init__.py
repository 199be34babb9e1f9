"""
covid package
=============

In-memory engine for case-count time series built from published CSV feeds.

- The data model (Series) is in `covid/models.py`.
- The collection and its queries (SeriesSlice) are in `covid/collection.py`.
- Feed parsing and merging is in `covid/loader.py`.
- The published snapshot (SnapshotStore) is in `covid/engine.py`.
- The CLI entry point is in `covid/cli.py`.
"""

__version__ = '0.1.0'
