"""Raw ASGI middleware to enforce a request body size limit."""

from collections.abc import Mapping

from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

DEFAULT_MAX_BODY_BYTES = 5_242_880  # 5MB
_BODYLESS_METHODS = {"GET", "HEAD", "OPTIONS"}


class BodyLimitMiddleware:
    """Reject request bodies larger than ``max_body_bytes`` with a 413.

    Works on raw ASGI so it can stop a chunked upload mid-stream, before the
    whole scraped page is buffered in memory. ``extra_headers`` are added to
    the 413 so cross-origin scrapers can read the error.
    """

    def __init__(
        self,
        app: ASGIApp,
        max_body_bytes: int = DEFAULT_MAX_BODY_BYTES,
        extra_headers: Mapping[str, str] | None = None,
    ):
        self.app = app
        self.max_body_bytes = max_body_bytes
        self.extra_headers = dict(extra_headers or {})

    def _too_large(self) -> JSONResponse:
        return JSONResponse(
            status_code=413,
            content={"error": f"Request body too large. Maximum size is {self.max_body_bytes} bytes."},
            headers=self.extra_headers,
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] in _BODYLESS_METHODS:
            await self.app(scope, receive, send)
            return

        declared = Headers(scope=scope).get("content-length", "")
        if declared.isdigit() and int(declared) > self.max_body_bytes:
            await self._too_large()(scope, receive, send)
            return

        # chunked uploads carry no content-length, so count as the app reads
        received = 0

        async def counting_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_bytes:
                    raise _BodyTooLarge()
            return message

        try:
            await self.app(scope, counting_receive, send)
        except _BodyTooLarge:
            await self._too_large()(scope, receive, send)


class _BodyTooLarge(Exception):
    pass
