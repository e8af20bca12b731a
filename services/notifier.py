"""Booking notification side-channel.

After a booking is written the workflow POSTs `{courseId, userId, status}` to
the notification function. This call must never make a booking look failed:
every error is logged and dropped here.
"""
from __future__ import annotations

import logging
from typing import Optional

import httpx
from flask import current_app

logger = logging.getLogger(__name__)


class Notifier:
    def __init__(
        self,
        url: str,
        token: str = "",
        timeout: float = 10.0,
        enabled: bool = True,
        client: Optional[httpx.Client] = None,
    ):
        self.url = url
        self.token = token
        self.timeout = timeout
        self.enabled = enabled
        self._client = client

    @classmethod
    def from_config(cls, config) -> "Notifier":
        return cls(
            url=config["NOTIFY_URL"],
            token=config.get("FUNCTIONS_TOKEN", ""),
            timeout=config.get("NOTIFY_TIMEOUT", 10.0),
            enabled=config.get("NOTIFY_ENABLED", True),
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def notify(self, course_id: int, user_id: int, status: str) -> bool:
        """Returns True when the endpoint accepted the notification."""
        if not self.enabled or not self.url:
            logger.debug("Notification disabled, skipping course=%s user=%s", course_id, user_id)
            return False

        payload = {"courseId": course_id, "userId": user_id, "status": status}
        try:
            if self._client is not None:
                res = self._client.post(self.url, json=payload, headers=self._headers(), timeout=self.timeout)
            else:
                res = httpx.post(self.url, json=payload, headers=self._headers(), timeout=self.timeout)
        except Exception as e:
            # the booking is already committed at this point
            logger.warning("Error sending notification for course=%s user=%s: %s", course_id, user_id, e)
            return False

        if res.is_success:
            return True

        try:
            detail = res.json()
        except ValueError:
            detail = res.text
        logger.warning("Notification error (%s): %s", res.status_code, detail)
        return False


def get_notifier() -> Notifier:
    notifier = current_app.extensions.get("notifier")
    if notifier is None:
        notifier = Notifier.from_config(current_app.config)
        current_app.extensions["notifier"] = notifier
    return notifier
