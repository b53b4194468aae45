"""
Feature History

Fixed-capacity, time-ordered ring buffer of FeatureVector.

- O(1) append with FIFO eviction by arrival order (never by value)
- Strictly increasing timestamps: out-of-order or duplicate entries are rejected
- O(log n) nearest-timestamp lookup for momentum
"""

from typing import Any, Iterator, List, Optional, Tuple

import numpy as np
import pandas as pd

from ..models import FeatureVector


class FeatureHistory:
    """
    Ring buffer of feature vectors indexed by arrival order

    Index 0 is the oldest retained entry, index -1 the newest.
    """

    def __init__(self, capacity: int = 3600):
        """
        Args:
            capacity: Maximum number of retained vectors (default: 3600, one hour at 1 Hz)
        """
        if not isinstance(capacity, int) or capacity <= 0:
            raise ValueError(f"capacity must be a positive integer, got {capacity!r}")

        self._capacity = capacity
        self._items: List[Optional[FeatureVector]] = [None] * capacity
        self._timestamps = np.zeros(capacity, dtype=np.float64)
        self._start = 0
        self._size = 0

        self.evicted = 0
        self.rejected = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def last_timestamp(self) -> Optional[float]:
        if self._size == 0:
            return None
        return float(self._timestamps[self._physical(self._size - 1)])

    def __len__(self) -> int:
        return self._size

    def _physical(self, index: int) -> int:
        return (self._start + index) % self._capacity

    def accepts(self, timestamp: float) -> bool:
        """True if an entry with this timestamp would keep the history strictly ordered"""
        last = self.last_timestamp
        return last is None or timestamp > last

    def append(self, vector: FeatureVector) -> bool:
        """
        Append a vector, evicting the oldest one when full

        Returns:
            False if the vector was rejected for a non-increasing timestamp
        """
        if not self.accepts(vector.timestamp):
            self.rejected += 1
            return False

        if self._size < self._capacity:
            slot = self._physical(self._size)
            self._size += 1
        else:
            slot = self._start
            self._start = (self._start + 1) % self._capacity
            self.evicted += 1

        self._items[slot] = vector
        self._timestamps[slot] = vector.timestamp
        return True

    def __getitem__(self, index: int) -> FeatureVector:
        if index < 0:
            index += self._size
        if index < 0 or index >= self._size:
            raise IndexError(f"history index out of range (size {self._size})")
        return self._items[self._physical(index)]

    def __iter__(self) -> Iterator[FeatureVector]:
        for i in range(self._size):
            yield self._items[self._physical(i)]

    @property
    def latest(self) -> Optional[FeatureVector]:
        return self[-1] if self._size else None

    @property
    def oldest(self) -> Optional[FeatureVector]:
        return self[0] if self._size else None

    def _timestamp_at(self, index: int) -> float:
        return float(self._timestamps[self._physical(index)])

    def closest(self, target: float) -> Optional[Tuple[FeatureVector, float]]:
        """
        Entry whose timestamp is closest to `target`

        Binary search over the ordered timestamps. On a tie the older entry wins.

        Returns:
            (vector, absolute time difference) or None when empty
        """
        if self._size == 0:
            return None

        lo, hi = 0, self._size
        while lo < hi:
            mid = (lo + hi) // 2
            if self._timestamp_at(mid) < target:
                lo = mid + 1
            else:
                hi = mid

        best_index = None
        best_diff = float("inf")
        for candidate in (lo - 1, lo):
            if 0 <= candidate < self._size:
                diff = abs(self._timestamp_at(candidate) - target)
                if diff < best_diff:
                    best_index, best_diff = candidate, diff

        return self[best_index], best_diff

    def recent(self, count: int = 100) -> List[FeatureVector]:
        """Most recent vectors, newest first"""
        count = max(0, min(count, self._size))
        return [self[self._size - 1 - i] for i in range(count)]

    def series(self, feature_name: str, count: int = 300) -> List[Tuple[float, Any]]:
        """(timestamp, value) pairs of one feature over the last `count` vectors, oldest first"""
        count = max(0, min(count, self._size))
        points = []
        for i in range(self._size - count, self._size):
            vector = self[i]
            value = getattr(vector, feature_name, None)
            if value is not None:
                points.append((vector.timestamp, value))
        return points

    def to_frame(self) -> pd.DataFrame:
        """All retained vectors as a DataFrame indexed by timestamp"""
        rows = [vector.to_dict() for vector in self]
        if not rows:
            return pd.DataFrame(columns=[f for f in FeatureVector.__dataclass_fields__]).set_index("timestamp")
        return pd.DataFrame(rows).set_index("timestamp")

    def clear(self) -> None:
        self._items = [None] * self._capacity
        self._start = 0
        self._size = 0


__all__ = ["FeatureHistory"]
