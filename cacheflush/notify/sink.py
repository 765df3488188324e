"""Notification sinks for run progress."""
from __future__ import annotations
from typing import TYPE_CHECKING, Protocol

from .pushover import PushoverNotifier

if TYPE_CHECKING:
    from ..config import Settings


class Notifier(Protocol):
    def notify(self, text: str) -> None: ...


class NullNotifier:
    def notify(self, text: str) -> None:
        pass


def build_notifier(settings: Settings) -> Notifier:
    if settings.pushover_enabled:
        return PushoverNotifier(settings.pushover_app_key, settings.pushover_user_key)
    return NullNotifier()
