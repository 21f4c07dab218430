from fastapi import APIRouter, Depends

from exam_relay.dependencies import get_event_bus
from exam_relay.engine.live_event_bus import LiveEventBus
from exam_relay.schemas.snapshot import RoomListResponse, RoomStats

router = APIRouter(prefix="/api/rooms", tags=["rooms"])


@router.get("", response_model=RoomListResponse)
async def list_rooms(event_bus: LiveEventBus = Depends(get_event_bus)):
    """Rooms with at least one live viewer."""
    rooms = event_bus.rooms()
    return RoomListResponse(
        rooms=[RoomStats(room=room, subscribers=count) for room, count in sorted(rooms.items())]
    )


@router.get("/{room}", response_model=RoomStats)
async def get_room(room: str, event_bus: LiveEventBus = Depends(get_event_bus)):
    return RoomStats(room=room, subscribers=event_bus.viewer_count(room))
