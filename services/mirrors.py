"""Read-side mirrors of courses and bookings.

A mirror is a disposable copy of a query result. On open it loads the full
collection and subscribes to the change feed; any matching change marks it
stale and the owner calls refresh(), which refetches everything and swaps the
snapshot wholesale. close() always releases the subscription.

Fetches run in the owner's thread. A result that lands after close(), or
after a newer refresh has started, is dropped.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from services import queries
from services.change_feed import ChangeEvent, ChangeFeed, Subscription

logger = logging.getLogger(__name__)


class Mirror:
    def __init__(
        self,
        feed: ChangeFeed,
        table: str,
        fetch: Callable[[], list[Any]],
        match: Optional[dict[str, Any]] = None,
        name: str = "mirror",
    ):
        self.feed = feed
        self.table = table
        self.match = match
        self.name = name
        self._fetch = fetch

        self._lock = threading.Lock()
        self._changed = threading.Event()
        self._subscription: Optional[Subscription] = None
        self._alive = False
        self._generation = 0
        self.snapshot: list[Any] = []
        self.version = 0

    # --- lifecycle -----------------------------------------------------

    def open(self) -> "Mirror":
        with self._lock:
            self._alive = True
        self._subscription = self.feed.subscribe(self.table, self._on_change, self.match)
        try:
            self.refresh()
        except Exception:
            self.close()
            raise
        return self

    def close(self) -> None:
        with self._lock:
            self._alive = False
            self._generation += 1
        sub, self._subscription = self._subscription, None
        if sub is not None:
            sub.unsubscribe()
        # wake up anyone blocked in wait_for_change()
        self._changed.set()

    def __enter__(self) -> "Mirror":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def alive(self) -> bool:
        return self._alive

    # --- change handling -------------------------------------------------

    def _on_change(self, change: ChangeEvent) -> None:
        logger.debug("%s: %s on %s, marking stale", self.name, change.op, change.table)
        self._changed.set()

    @property
    def stale(self) -> bool:
        return self._changed.is_set()

    def wait_for_change(self, timeout: Optional[float] = None) -> bool:
        """Block until a matching change arrives. False on timeout."""
        return self._changed.wait(timeout)

    def refresh(self) -> bool:
        """Refetch the whole collection. Returns False if the result was discarded."""
        with self._lock:
            if not self._alive:
                return False
            self._generation += 1
            token = self._generation
            self._changed.clear()

        rows = self._fetch()

        with self._lock:
            if not self._alive or token != self._generation:
                logger.debug("%s: dropping late fetch result", self.name)
                return False
            self.snapshot = list(rows)
            self.version += 1
        return True


def catalogue_mirror(feed: ChangeFeed) -> Mirror:
    return Mirror(
        feed,
        "courses",
        lambda: [c.to_dict() for c in queries.list_courses()],
        name="courses",
    )


def user_bookings_mirror(feed: ChangeFeed, user_id: int) -> Mirror:
    return Mirror(
        feed,
        "bookings",
        lambda: [b.to_dict(with_course=True) for b in queries.list_user_bookings(user_id)],
        match={"user_id": user_id},
        name=f"user-bookings-{user_id}",
    )


def course_bookings_mirror(feed: ChangeFeed, course_id: int) -> Mirror:
    return Mirror(
        feed,
        "bookings",
        lambda: [b.to_dict(with_profile=True) for b in queries.list_course_bookings(course_id)],
        match={"course_id": course_id},
        name=f"bookings-{course_id}",
    )
