"""Cache-drive directory walker."""
from __future__ import annotations
import logging
import os
from typing import Iterator, Sequence

from ..errors import WalkError

logger = logging.getLogger("cacheflush.walker")


def is_overridden(path: str, overrides: Sequence[str]) -> bool:
    """Case-sensitive substring match of any override against the full path."""
    return any(override and override in path for override in overrides)


def walk_files(root: str, overrides: Sequence[str] = ()) -> Iterator[tuple[str, os.stat_result]]:
    """Yield ``(path, stat)`` for every regular file beneath ``root``.

    Symlinks are neither followed nor yielded. Paths containing an override
    substring are skipped; a directory matching one is not descended at all.
    Errors below the root are logged and skipped, an unreadable root raises
    WalkError. Yield order is unspecified.
    """
    try:
        root_entries = list(os.scandir(root))
    except OSError as e:
        raise WalkError(root, str(e)) from e

    pending: list[list[os.DirEntry[str]]] = [root_entries]
    while pending:
        for entry in pending.pop():
            try:
                if entry.is_symlink():
                    continue
                if is_overridden(entry.path, overrides):
                    logger.debug("walk.skip path=%s reason=override", entry.path)
                    continue
                if entry.is_dir(follow_symlinks=False):
                    with os.scandir(entry.path) as it:
                        pending.append(list(it))
                elif entry.is_file(follow_symlinks=False):
                    yield entry.path, entry.stat(follow_symlinks=False)
            except OSError as e:
                logger.error("Encountered error walking %s: %s", entry.path, e)
