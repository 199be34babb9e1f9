"""
Sorting utilities
=================

Small, explicit sorting primitives used to rank series:

- Merge sort driven by a `less(a, b)` comparator (stable, O(n log n)).
  Ranking regions needs a two-mode ordering (deaths descending, or country
  name ascending when neither side has deaths), which is not expressible
  as a single sort key.
- Top-k selection with a bounded heap (O(n log k)).
"""

from __future__ import annotations
from typing import Callable, List, Sequence, TypeVar
import heapq

T = TypeVar("T")

Less = Callable[[T, T], bool]


def merge_sort(arr: Sequence[T], less: Less) -> List[T]:
    """Stable merge sort; returns a new list."""
    if len(arr) <= 1:
        return list(arr)
    mid = len(arr) // 2
    left = merge_sort(arr[:mid], less)
    right = merge_sort(arr[mid:], less)
    return _merge(left, right, less)


def _merge(left: List[T], right: List[T], less: Less) -> List[T]:
    out: List[T] = []
    # i and j are pointers into each sorted list
    i = j = 0
    while i < len(left) and j < len(right):
        # only take from the right when strictly less, to keep equal items in order
        if less(right[j], left[i]):
            out.append(right[j]); j += 1
        else:
            out.append(left[i]); i += 1
    out.extend(left[i:])
    out.extend(right[j:])
    return out


def top_k(arr: Sequence[T], k: int, key: Callable[[T], int]) -> List[T]:
    """The k items with the largest key, largest first.

    Ties keep input order.
    """
    if k <= 0:
        return []
    heap: List[tuple] = []
    for pos, item in enumerate(arr):
        v = key(item)
        # -pos so that on equal values the earlier item ranks higher
        entry = (v, -pos)
        if len(heap) < k:
            heapq.heappush(heap, entry)
        elif entry > heap[0]:
            heapq.heapreplace(heap, entry)
    heap.sort(reverse=True)
    return [arr[-neg_pos] for _, neg_pos in heap]
