"""ASGI middleware that tags every request with an ``X-Request-ID``.

The inbound header is reused when present, otherwise a UUID4 is generated.
The ID is stored in the logging context for the duration of the request and
echoed on the response, including error responses.

Example:
    >>> from fastapi import FastAPI
    >>> app = FastAPI()
    >>> add_request_id_middleware(app)
"""

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from libs.common.logging.context import (
    REQUEST_ID_HEADER,
    clear_request_id,
    generate_request_id,
    set_request_id,
)

# Longer inbound IDs are replaced rather than echoed back
MAX_REQUEST_ID_LENGTH = 128


class RequestIDMiddleware:
    """Plain ASGI middleware; works with any Starlette or FastAPI app."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = Headers(scope=scope).get(REQUEST_ID_HEADER, "").strip()
        if not request_id or len(request_id) > MAX_REQUEST_ID_LENGTH:
            request_id = generate_request_id()

        set_request_id(request_id)

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                headers.append((REQUEST_ID_HEADER.lower().encode("latin-1"), request_id.encode("latin-1")))
                message["headers"] = headers
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            clear_request_id()


def add_request_id_middleware(app: ASGIApp) -> None:
    """Register :class:`RequestIDMiddleware` on a Starlette/FastAPI app."""
    app.add_middleware(RequestIDMiddleware)  # type: ignore[attr-defined]
