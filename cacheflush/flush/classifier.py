"""File records and the evictable / young / hot classification cascade."""
from __future__ import annotations
import os
from dataclasses import dataclass
from enum import Enum


class Population(str, Enum):
    EVICTABLE = "evictable"
    YOUNG = "young"
    HOT = "hot"


@dataclass(frozen=True)
class FileRecord:
    path: str
    name: str
    size: int
    mtime: float
    atime: float

    @classmethod
    def from_stat(cls, path: str, st: os.stat_result) -> "FileRecord":
        return cls(
            path=path,
            name=os.path.basename(path),
            size=max(0, st.st_size),
            mtime=st.st_mtime,
            atime=st.st_atime,
        )


@dataclass(frozen=True)
class Thresholds:
    """Classification thresholds in seconds. 0 disables a clause."""

    minimum_age: int = 0
    current_access: int = 0
    force: bool = False


def classify(record: FileRecord, thresholds: Thresholds, now: float) -> Population:
    """First match wins: force, then recently accessed (hot), then newly modified (young).

    Hot is tested before young so a file being actively read is kept even
    when it is also new. Both window boundaries are inclusive.
    """
    if thresholds.force:
        return Population.EVICTABLE
    if thresholds.current_access > 0 and now - record.atime <= thresholds.current_access:
        return Population.HOT
    if thresholds.minimum_age > 0 and now - record.mtime <= thresholds.minimum_age:
        return Population.YOUNG
    return Population.EVICTABLE
