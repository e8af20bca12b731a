"""Server-Sent Events over a Mirror.

The generator owns the mirror: it opens it, pushes a snapshot after every
refresh and closes it in `finally`, so a client disconnect (GeneratorExit)
always releases the change-feed subscription.
"""

import json
import logging
from typing import Any, Callable, Iterator

from flask import Response, current_app, stream_with_context

from extensions import db
from services.mirrors import Mirror

logger = logging.getLogger(__name__)


def _sse(event: str, data: Any, event_id: int) -> str:
    return f"event: {event}\nid: {event_id}\ndata: {json.dumps(data)}\n\n"


def mirror_events(
    mirror: Mirror,
    heartbeat: float,
    render: Callable[[list], Any] = lambda rows: rows,
) -> Iterator[str]:
    try:
        mirror.open()
        yield _sse("snapshot", render(mirror.snapshot), mirror.version)

        while mirror.alive:
            if not mirror.wait_for_change(heartbeat):
                yield ": keep-alive\n\n"
                continue
            if not mirror.alive:
                break
            # new transaction, nothing cached from the previous fetch
            db.session.rollback()
            if mirror.refresh():
                yield _sse("snapshot", render(mirror.snapshot), mirror.version)
    finally:
        mirror.close()
        logger.debug("%s: stream closed", mirror.name)


def sse_response(mirror: Mirror, render: Callable[[list], Any] = lambda rows: rows) -> Response:
    heartbeat = current_app.config.get("STREAM_HEARTBEAT_SECONDS", 15)
    return Response(
        stream_with_context(mirror_events(mirror, heartbeat, render)),
        mimetype="text/event-stream",
        headers={
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "X-Accel-Buffering": "no",
        },
    )
