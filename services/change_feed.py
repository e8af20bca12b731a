"""In-process change feed.

Subscribers register for a table (optionally filtered on column values) and
are told *that* something matching changed, never what changed: the event
carries the key columns of the touched row, and mirrors refetch.

Changes are collected per SQLAlchemy session while it flushes and are only
published once the transaction commits. A rollback drops them.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from flask import current_app, has_app_context
from sqlalchemy import event
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"

# Columns copied into an event so subscribers can filter on them.
KEY_COLUMNS: dict[str, tuple[str, ...]] = {
    "courses": ("id",),
    "bookings": ("id", "course_id", "user_id", "status"),
    "profiles": ("id",),
}

_PENDING_KEY = "change_feed.pending"


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    op: str
    row: dict[str, Any] = field(default_factory=dict)

    def matches(self, table: str, match: Optional[dict[str, Any]]) -> bool:
        if table != self.table:
            return False
        if not match:
            return True
        return all(self.row.get(k) == v for k, v in match.items())


class Subscription:
    """Handle returned by ChangeFeed.subscribe(). Safe to unsubscribe twice."""

    def __init__(self, feed: "ChangeFeed", table: str, callback, match):
        self._feed = feed
        self.table = table
        self.callback = callback
        self.match = dict(match) if match else None
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._feed._remove(self)


class ChangeFeed:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subs: list[Subscription] = []

    def subscribe(
        self,
        table: str,
        callback: Callable[[ChangeEvent], None],
        match: Optional[dict[str, Any]] = None,
    ) -> Subscription:
        sub = Subscription(self, table, callback, match)
        with self._lock:
            self._subs.append(sub)
        return sub

    def _remove(self, sub: Subscription) -> None:
        with self._lock:
            try:
                self._subs.remove(sub)
            except ValueError:
                pass

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subs)

    def publish(self, change: ChangeEvent) -> int:
        """Deliver to every matching subscriber. Returns how many were called."""
        with self._lock:
            targets = [s for s in self._subs if change.matches(s.table, s.match)]

        delivered = 0
        for sub in targets:
            if not sub.active:
                continue
            try:
                sub.callback(change)
                delivered += 1
            except Exception:
                # a broken subscriber must not fail the writer's request
                logger.exception("Change feed subscriber failed for %s %s", change.table, change.op)
        return delivered


def get_feed() -> Optional[ChangeFeed]:
    if not has_app_context():
        return None
    return current_app.extensions.get("change_feed")


def note_change(session: Session, table: str, op: str, row: dict[str, Any]) -> None:
    """Queue a change on the session; published after commit.

    Use this for bulk UPDATE/DELETE statements, which the flush hook cannot see.
    """
    session.info.setdefault(_PENDING_KEY, []).append(ChangeEvent(table, op, dict(row)))


def _row_keys(obj) -> Optional[tuple[str, dict[str, Any]]]:
    table = getattr(obj, "__tablename__", None)
    columns = KEY_COLUMNS.get(table)
    if columns is None:
        return None
    return table, {c: getattr(obj, c, None) for c in columns}


@event.listens_for(Session, "after_flush")
def _collect_flushed(session, flush_context):
    for op, objs in ((INSERT, session.new), (UPDATE, session.dirty), (DELETE, session.deleted)):
        for obj in objs:
            if op == UPDATE and not session.is_modified(obj, include_collections=False):
                continue
            keyed = _row_keys(obj)
            if keyed is None:
                continue
            note_change(session, keyed[0], op, keyed[1])


@event.listens_for(Session, "after_commit")
def _publish_committed(session):
    pending = session.info.pop(_PENDING_KEY, None)
    if not pending:
        return
    feed = get_feed()
    if feed is None:
        return
    for change in pending:
        feed.publish(change)


@event.listens_for(Session, "after_rollback")
def _drop_rolled_back(session):
    session.info.pop(_PENDING_KEY, None)
