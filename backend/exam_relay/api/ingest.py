"""Ingest endpoint: scraped attempts table in, leaderboard snapshot out."""

import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from exam_relay.config import settings
from exam_relay.dependencies import get_event_bus
from exam_relay.engine.live_event_bus import LiveEventBus
from exam_relay.engine.snapshot_normalizer import IngestError, extract_markup, normalize_table
from exam_relay.schemas.snapshot import ErrorResponse, IngestResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["ingest"])
limiter = Limiter(key_func=get_remote_address)

INGEST_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

PREFLIGHT_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, ngrok-skip-browser-warning",
}


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """slowapi's 429 response, readable by the cross-origin scraper."""
    response = _rate_limit_exceeded_handler(request, exc)
    response.headers.update(INGEST_CORS_HEADERS)
    return response


@router.options("/process-html", status_code=204)
async def process_html_preflight():
    return Response(status_code=204, headers=PREFLIGHT_CORS_HEADERS)


@router.post(
    "/process-html",
    response_model=IngestResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
@limiter.limit(settings.ingest_rate_limit)
async def process_html(
    request: Request,
    room: str | None = None,
    event_bus: LiveEventBus = Depends(get_event_bus),
):
    """Normalize a scraped attempts table and publish it to the room's viewers."""
    room = room or settings.default_room
    # read outside the try so the body limit middleware sees its own error
    body = await request.body()

    try:
        markup = extract_markup(body, request.headers.get("content-type"))
        rows = normalize_table(markup)
    except IngestError as e:
        logger.warning(f"Rejected ingest for room {room!r}: {e.message}")
        return JSONResponse(status_code=400, content={"error": e.message}, headers=INGEST_CORS_HEADERS)
    except Exception:
        logger.exception(f"Error processing HTML for room {room!r}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal Server Error"},
            headers=INGEST_CORS_HEADERS,
        )

    delivered = event_bus.publish(room, rows)
    logger.info(f"Published {len(rows)} rows to room {room!r} ({delivered} viewers)")

    result = IngestResponse(
        message="Successfully processed HTML table",
        rows_count=len(rows),
        data=rows,
    )
    return JSONResponse(
        status_code=200,
        content=result.model_dump(by_alias=True),
        headers=INGEST_CORS_HEADERS,
    )
