"""SSE endpoint for live leaderboard streaming."""

import asyncio
import json
import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from exam_relay.config import settings
from exam_relay.dependencies import get_event_bus
from exam_relay.engine.leaderboard import rank
from exam_relay.engine.live_event_bus import LiveEventBus, Snapshot, SubscriptionClosed

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["stream"])

STREAM_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
    "Access-Control-Allow-Origin": "*",
}

CONNECTED_FRAME = ": connected\n\n"
KEEPALIVE_FRAME = ": keepalive\n\n"


def format_snapshot(snapshot: Snapshot) -> str:
    return f"data: {json.dumps(snapshot, ensure_ascii=False)}\n\n"


async def snapshot_events(
    event_bus: LiveEventBus,
    room: str,
    ranked: bool = False,
    keepalive: float | None = None,
) -> AsyncIterator[str]:
    """Yield SSE frames for every snapshot published to ``room``.

    The subscription lives exactly as long as this generator. It is taken on
    the first iteration, which for ``StreamingResponse`` is after the response
    headers went out, so snapshots published before the ``: connected`` frame
    are not seen by this viewer. It is released in ``finally`` when the client
    disconnects, a frame cannot be built or the bus shuts down.
    """
    subscription = event_bus.subscribe(room)
    try:
        # comment frame, flushes headers through proxies without being an event
        yield CONNECTED_FRAME
        while True:
            try:
                snapshot = await subscription.receive(timeout=keepalive)
            except SubscriptionClosed:
                logger.info(f"Live stream for room {room!r} closed by server")
                break
            if snapshot is None:
                yield KEEPALIVE_FRAME
                continue
            yield format_snapshot(rank(snapshot) if ranked else snapshot)
    except asyncio.CancelledError:
        logger.info(f"Live stream client for room {room!r} disconnected")
        raise
    except Exception:
        logger.exception(f"Live stream for room {room!r} failed, ending it")
    finally:
        event_bus.unsubscribe(subscription)


@router.get("/stream")
async def stream_snapshots(
    room: str | None = None,
    ranked: bool = False,
    event_bus: LiveEventBus = Depends(get_event_bus),
):
    """SSE endpoint pushing every new snapshot of a room."""
    room = room or settings.default_room
    return StreamingResponse(
        snapshot_events(event_bus, room, ranked=ranked, keepalive=settings.stream_keepalive_seconds),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )
