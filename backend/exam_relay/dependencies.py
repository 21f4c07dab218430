from fastapi import Request

from exam_relay.engine.live_event_bus import LiveEventBus


def get_event_bus(request: Request) -> LiveEventBus:
    """The bus owned by the running app, created in create_app()."""
    return request.app.state.event_bus
