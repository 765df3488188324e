"""Safe move from a cache drive to the backing pool: copy, fsync, chown/chmod, unlink."""
from __future__ import annotations
import logging
import os
import shutil
from enum import Enum

from ..errors import CacheFlushError, DestinationExists, IOFailure
from .classifier import FileRecord
from .context import RunContext

logger = logging.getLogger("cacheflush.mover")

FILE_MODE = 0o775
DIR_UMASK = 0o002


class MoveStatus(str, Enum):
    MOVED = "moved"
    SKIPPED = "skipped"
    FAILED = "failed"


def destination_for(path: str, cache_root: str, backing_pool: str) -> str:
    # Textual replacement of every occurrence; roots must not overlap.
    return path.replace(cache_root, backing_pool)


class SafeMover:
    def __init__(self, context: RunContext, cache_root: str):
        self._ctx = context
        self._cache_root = cache_root

    def move(self, record: FileRecord) -> MoveStatus:
        """Move one file, containing any per-file error. Never raises CacheFlushError."""
        destination = destination_for(record.path, self._cache_root, self._ctx.backing_pool)
        if self._ctx.skip_move:
            logger.debug("Skipping move operation, would have moved: %s to %s",
                         record.path, destination)
            return MoveStatus.SKIPPED
        try:
            self.transfer(record.path, destination)
        except CacheFlushError as e:
            logger.error("move.fail path=%s error=%s", record.path, e)
            return MoveStatus.FAILED
        return MoveStatus.MOVED

    def transfer(self, source: str, destination: str) -> None:
        """Copy ``source`` to ``destination`` then unlink ``source``.

        Raises DestinationExists or IOFailure. The source is only removed
        once the copy is synced and its ownership and mode are set; a
        partial destination is left behind on failure.
        """
        self._ensure_parent(os.path.dirname(destination))
        if os.path.lexists(destination):
            raise DestinationExists(source, destination)

        logger.debug("Moving file %s to %s...", source, destination)
        try:
            src = open(source, "rb")
        except OSError as e:
            raise IOFailure("open", source, e) from e
        with src:
            try:
                dst = open(destination, "xb")
            except FileExistsError:
                raise DestinationExists(source, destination) from None
            except OSError as e:
                raise IOFailure("open", destination, e) from e
            with dst:
                try:
                    shutil.copyfileobj(src, dst)
                    dst.flush()
                except OSError as e:
                    raise IOFailure("copy", destination, e) from e
                try:
                    os.fsync(dst.fileno())
                except OSError as e:
                    raise IOFailure("sync", destination, e) from e

        self._step("chown", destination, os.chown, destination,
                   self._ctx.owner_uid, self._ctx.owner_gid)
        self._step("chmod", destination, os.chmod, destination, FILE_MODE)
        self._step("stat", source, os.stat, source)
        self._step("unlink", source, os.remove, source)
        logger.info("move.ok path=%s destination=%s", source, destination)

    def _step(self, name: str, path: str, fn, *args) -> None:
        try:
            fn(*args)
        except OSError as e:
            raise IOFailure(name, path, e) from e

    def _ensure_parent(self, directory: str) -> None:
        if os.path.isdir(directory):
            return
        missing: list[str] = []
        current = directory
        while current and not os.path.exists(current):
            missing.append(current)
            parent = os.path.dirname(current)
            if parent == current:
                break
            current = parent

        old_umask = os.umask(DIR_UMASK)
        try:
            for path in reversed(missing):
                try:
                    os.mkdir(path, 0o777)
                except FileExistsError:
                    continue
                os.chown(path, self._ctx.owner_uid, self._ctx.owner_gid)
        except OSError as e:
            raise IOFailure("mkdir", directory, e) from e
        finally:
            os.umask(old_umask)
