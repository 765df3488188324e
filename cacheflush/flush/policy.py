"""Flush policies ordering the young and hot populations."""
from __future__ import annotations
from enum import Enum
from functools import cmp_to_key
from typing import Iterable

from .classifier import FileRecord


def _cmp(a: float, b: float) -> int:
    return (a > b) - (a < b)


class FlushPolicy(str, Enum):
    OLDEST_FIRST = "oldest-first"
    LEAST_ACCESSED = "least-accessed"
    LARGEST_FIRST = "largest-first"

    def compare(self, a: FileRecord, b: FileRecord) -> int:
        """Negative when ``a`` should be evicted before ``b``."""
        if self is FlushPolicy.OLDEST_FIRST:
            return _cmp(a.mtime, b.mtime)
        if self is FlushPolicy.LEAST_ACCESSED:
            return _cmp(a.atime, b.atime)
        return _cmp(b.size, a.size)

    def order(self, records: Iterable[FileRecord]) -> list[FileRecord]:
        # sorted() is stable, so ties keep their walk order.
        return sorted(records, key=cmp_to_key(self.compare))
