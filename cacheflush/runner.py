"""CacheFlushRun — processes every configured cache drive in order."""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from .errors import ProbeFailed, WalkError
from .flush.context import RunContext
from .flush.planner import DriveFlusher, DriveSummary
from .flush.probe import free_bytes
from .flush.units import format_gb
from .notify.sink import Notifier, NullNotifier

logger = logging.getLogger("cacheflush.runner")


@dataclass
class RunSummary:
    drives: list[DriveSummary] = field(default_factory=list)
    failed_drives: list[str] = field(default_factory=list)

    @property
    def moved(self) -> int:
        return sum(d.moved for d in self.drives)


class CacheFlushRun:
    def __init__(self, context: RunContext, cache_drives: list[str],
                 notifier: Optional[Notifier] = None,
                 probe: Callable[[str], int] = free_bytes,
                 clock: Optional[Callable[[], float]] = None):
        self._ctx = context
        self._drives = list(cache_drives)
        self._notifier: Notifier = notifier or NullNotifier()
        self._probe = probe
        self._clock = clock

    def run(self) -> RunSummary:
        logger.info("============= New CacheFlush Execution =============")
        if self._ctx.skip_move:
            logger.info("SkipMove enabled, no files will be moved")
        if self._ctx.force:
            logger.info("Force enabled, all non-override files will be flushed")
        self._notifier.notify("Starting cacheflush...")

        summary = RunSummary()
        for drive in self._drives:
            logger.info("Processing cacheDrive: %s", drive)
            self._notifier.notify(f"Processing cacheDrive: {drive}")
            flusher = DriveFlusher(self._ctx, drive, probe=self._probe, clock=self._clock)
            try:
                result = flusher.run()
            except (ProbeFailed, WalkError) as e:
                logger.error("Aborting drive %s: %s", drive, e)
                self._notifier.notify(f"Failed processing drive: {drive}\n{e}")
                summary.failed_drives.append(drive)
                continue
            summary.drives.append(result)
            self._notifier.notify(self._drive_message(result))

        if summary.failed_drives:
            failed = ", ".join(summary.failed_drives)
            logger.warning("Cacheflush completed with failed drives: %s (moved %d files across %d drives)",
                           failed, summary.moved, len(summary.drives))
            self._notifier.notify(f"Cacheflush completed with failed drives: {failed}")
        else:
            logger.info("Cacheflush completed, moved %d files across %d drives",
                        summary.moved, len(summary.drives))
            self._notifier.notify("Cacheflush completed successfully")
        return summary

    @staticmethod
    def _drive_message(result: DriveSummary) -> str:
        lines = [f"Done processing drive: {result.root}"]
        lines += [f"{p.value} files: {n}" for p, n in result.populations.items()]
        lines += [
            f"Moved files: {result.moved}",
            f"Free Space Before: {format_gb(result.starting_free)}",
            f"Free Space After: {format_gb(result.final_free)}",
        ]
        if result.shortfall:
            lines.append(f"Short of target by: {format_gb(result.shortfall)}")
        return "\n".join(lines)
