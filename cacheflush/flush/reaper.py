"""Removes empty directories left behind under a cache root."""
from __future__ import annotations
import logging
import os

logger = logging.getLogger("cacheflush.reaper")


def reap_empty_dirs(root: str, dry_run: bool = False) -> int:
    """Post-order removal of empty directories beneath ``root`` (never ``root`` itself).

    Errors are logged, not raised. Returns the number of directories removed
    (or, with ``dry_run``, that would have been removed).
    """
    removed = 0
    would_remove: set[str] = set()

    def _log_walk_error(err: OSError) -> None:
        logger.error("Encountered error scanning %s: %s", err.filename, err)

    for dirpath, dirnames, filenames in os.walk(root, topdown=False, onerror=_log_walk_error):
        if os.path.normpath(dirpath) == os.path.normpath(root):
            continue
        try:
            remaining = [
                name for name in os.listdir(dirpath)
                if os.path.join(dirpath, name) not in would_remove
            ]
        except OSError as e:
            logger.error("Encountered error scanning %s: %s", dirpath, e)
            continue
        if remaining:
            continue
        if dry_run:
            logger.debug("Skipping removal, would have removed empty dir: %s", dirpath)
            would_remove.add(dirpath)
            removed += 1
            continue
        try:
            os.rmdir(dirpath)
        except OSError as e:
            logger.error("Failed to remove empty dir %s: %s", dirpath, e)
            continue
        logger.debug("Removed empty dir: %s", dirpath)
        removed += 1

    if removed:
        logger.info("%s %d empty directories under %s",
                    "Would remove" if dry_run else "Removed", removed, root)
    return removed
