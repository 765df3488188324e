"""Three-phase eviction of one cache drive."""
from __future__ import annotations
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Protocol

from .classifier import FileRecord, Population, classify
from .context import RunContext
from .mover import MoveStatus, SafeMover
from .probe import free_bytes
from .reaper import reap_empty_dirs
from .units import format_gb
from .walker import walk_files

logger = logging.getLogger("cacheflush.planner")


class _Mover(Protocol):
    def move(self, record: FileRecord) -> MoveStatus: ...


@dataclass
class DriveContext:
    root: str
    starting_free: int
    current_free: int
    required_free: int
    moved_count: int = 0


@dataclass
class DriveSummary:
    root: str
    starting_free: int
    final_free: int
    required_free: int
    populations: dict[Population, int] = field(default_factory=dict)
    moved: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def shortfall(self) -> int:
        return max(0, self.required_free - self.final_free)


class DriveFlusher:
    def __init__(
        self,
        context: RunContext,
        root: str,
        *,
        probe: Callable[[str], int] = free_bytes,
        mover: _Mover | None = None,
        clock: Callable[[], float] | None = None,
    ):
        self._ctx = context
        self._root = root
        self._probe = probe
        self._mover: _Mover = mover or SafeMover(context, root)
        self._clock = clock or time.time

    def collect(self) -> dict[Population, list[FileRecord]]:
        """Walk and classify the drive; young and hot come back in policy order."""
        now = self._clock()
        populations: dict[Population, list[FileRecord]] = {p: [] for p in Population}
        for path, st in walk_files(self._root, self._ctx.overrides):
            record = FileRecord.from_stat(path, st)
            population = classify(record, self._ctx.thresholds, now)
            logger.debug("classify path=%s population=%s", record.path, population.value)
            populations[population].append(record)
        for population in (Population.YOUNG, Population.HOT):
            populations[population] = self._ctx.policy.order(populations[population])
        return populations

    def run(self) -> DriveSummary:
        """Flush the drive. Raises ProbeFailed or WalkError when the drive can't be processed."""
        starting_free = self._probe(self._root)
        drive = DriveContext(
            root=self._root,
            starting_free=starting_free,
            current_free=starting_free,
            required_free=self._ctx.required_free,
        )
        logger.info("Starting disk free space: %s", format_gb(starting_free))

        populations = self.collect()
        summary = DriveSummary(
            root=self._root,
            starting_free=starting_free,
            final_free=starting_free,
            required_free=drive.required_free,
            populations={p: len(records) for p, records in populations.items()},
        )
        for population in Population:
            logger.info("%s files: %d", population.value, summary.populations[population])

        for record in populations[Population.EVICTABLE]:
            self._evict(record, drive, summary)
        for population in (Population.YOUNG, Population.HOT):
            self._drain(population, populations[population], drive, summary)

        if self._ctx.clear_empty_dirs:
            reap_empty_dirs(self._root, dry_run=self._ctx.skip_move)

        drive.current_free = self._probe(self._root)
        summary.final_free = drive.current_free
        logger.info(
            "Done processing drive %s, moved %d files (skipped %d, failed %d), "
            "free space before: %s, free space after: %s",
            self._root, summary.moved, summary.skipped, summary.failed,
            format_gb(summary.starting_free), format_gb(summary.final_free),
        )
        if summary.shortfall:
            logger.warning(
                "Drive %s is %s short of the free space target of %s",
                self._root, format_gb(summary.shortfall), format_gb(summary.required_free),
            )
        return summary

    def _drain(self, population: Population, records: list[FileRecord],
               drive: DriveContext, summary: DriveSummary) -> None:
        for record in records:
            drive.current_free = self._probe(self._root)
            if drive.current_free >= drive.required_free:
                logger.debug(
                    "Disk free space of %s meets target of %s, skipping further movement of %s files",
                    format_gb(drive.current_free), format_gb(drive.required_free), population.value,
                )
                return
            logger.debug(
                "Disk free space of %s is lower than target of %s, moving additional %s file",
                format_gb(drive.current_free), format_gb(drive.required_free), population.value,
            )
            self._evict(record, drive, summary)

    def _evict(self, record: FileRecord, drive: DriveContext, summary: DriveSummary) -> None:
        status = self._mover.move(record)
        if status is MoveStatus.MOVED:
            drive.moved_count += 1
            summary.moved += 1
        elif status is MoveStatus.SKIPPED:
            summary.skipped += 1
        else:
            summary.failed += 1
