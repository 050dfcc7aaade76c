"""In-memory deduplication of aggregation keys shared by all workers."""

from __future__ import annotations

from collections import Counter
from threading import Lock
from types import MappingProxyType
from typing import Mapping


class DeduplicationStore:
    """Accumulate unique keys with an occurrence count.

    Insertion is safe from any number of threads. Nothing is ever evicted;
    the store lives for exactly one run.
    """

    def __init__(self) -> None:
        self._counts: Counter[str] = Counter()
        self._lock = Lock()

    def insert(self, key: str) -> bool:
        """Count one occurrence of ``key``; return True if it was new."""

        with self._lock:
            is_new = key not in self._counts
            self._counts[key] += 1
        return is_new

    def items(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._counts)

    def counts(self) -> Mapping[str, int]:
        with self._lock:
            return MappingProxyType(dict(self._counts))

    def __len__(self) -> int:
        with self._lock:
            return len(self._counts)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._counts


__all__ = ["DeduplicationStore"]
