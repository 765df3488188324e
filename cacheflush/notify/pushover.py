"""Pushover notification sink."""
from __future__ import annotations
import httpx
import logging
from typing import Optional

from ..errors import NotificationFailed

logger = logging.getLogger("cacheflush.notify")

PUSHOVER_API_URL = "https://api.pushover.net/1/messages.json"


class PushoverNotifier:
    def __init__(self, app_key: str, user_key: str, timeout: int = 10,
                 client: Optional[httpx.Client] = None):
        self._app_key = app_key
        self._user_key = user_key
        self._timeout = timeout
        self._client = client

    def notify(self, text: str) -> None:
        """Send ``text``; failures are logged and never interrupt the run."""
        try:
            self.send(text)
        except NotificationFailed as e:
            logger.error("notify.fail error=%s", e)

    def send(self, text: str) -> None:
        logger.info("Sending pushover notification, message: %s", text)
        client = self._client or httpx.Client(timeout=self._timeout)
        try:
            resp = client.post(
                PUSHOVER_API_URL,
                data={
                    "token": self._app_key,
                    "user": self._user_key,
                    "message": text,
                },
            )
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise NotificationFailed(f"Failed to send pushover message: {e}") from e
        finally:
            if self._client is None:
                client.close()
        logger.debug("Pushover response: %s", resp.text)
