"""Immutable per-run parameters shared by walker, classifier, planner and mover."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .classifier import Thresholds
from .policy import FlushPolicy
from .units import seconds, to_bytes

if TYPE_CHECKING:
    from ..config import Settings


@dataclass(frozen=True)
class RunContext:
    backing_pool: str
    policy: FlushPolicy
    thresholds: Thresholds = field(default_factory=Thresholds)
    required_free: int = 0
    overrides: tuple[str, ...] = ()
    owner_uid: int = -1
    owner_gid: int = -1
    clear_empty_dirs: bool = False
    skip_move: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "RunContext":
        return cls(
            backing_pool=settings.backing_pool,
            policy=settings.flush_policy,
            thresholds=Thresholds(
                minimum_age=seconds(settings.minimum_age),
                current_access=seconds(settings.current_access_threshold),
                force=settings.force,
            ),
            required_free=to_bytes(settings.force_free_space),
            overrides=tuple(settings.override_directories),
            owner_uid=settings.owner_uid,
            owner_gid=settings.owner_gid,
            clear_empty_dirs=settings.clear_empty_dirs,
            skip_move=settings.skip_move,
        )

    @property
    def force(self) -> bool:
        return self.thresholds.force
