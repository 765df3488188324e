"""Error kinds raised across cacheflush."""
from __future__ import annotations


class CacheFlushError(Exception):
    pass


class ConfigInvalid(CacheFlushError):
    """Missing required field, unknown policy or a declared path that doesn't exist."""


class ProbeFailed(CacheFlushError):
    def __init__(self, path: str, reason: str):
        super().__init__(f"Free-space probe failed for {path}: {reason}")
        self.path = path


class WalkError(CacheFlushError):
    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed to walk {path}: {reason}")
        self.path = path


class DestinationExists(CacheFlushError):
    def __init__(self, source: str, destination: str):
        super().__init__(f"Failed to move {source} to {destination}, file already exists")
        self.source = source
        self.destination = destination


class IOFailure(CacheFlushError):
    """A filesystem step of a move failed. ``step`` names which one."""

    def __init__(self, step: str, path: str, cause: OSError):
        super().__init__(f"{step} failed for {path}: {cause}")
        self.step = step
        self.path = path
        self.cause = cause


class NotificationFailed(CacheFlushError):
    pass
