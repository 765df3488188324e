"""Free-space probe."""
from __future__ import annotations
import os

from ..errors import ProbeFailed


def free_bytes(path: str) -> int:
    """Bytes available to unprivileged writers on the filesystem hosting ``path``.

    Uses statvfs() so the answer is O(1) regardless of volume size. Callers
    re-probe between moves; nothing is cached here.
    """
    if not os.path.isdir(path):
        raise ProbeFailed(path, "not an accessible directory")
    try:
        stat = os.statvfs(path)
    except OSError as e:
        raise ProbeFailed(path, str(e)) from e
    return stat.f_bavail * stat.f_frsize
