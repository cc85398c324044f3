"""
Per-request logging context.

Pure ASGI (not BaseHTTPMiddleware), which would break yield dependencies
such as get_db_session().
"""
import uuid
from typing import Optional

import structlog
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

REQUEST_ID_HEADER = "x-request-id"
MAX_REQUEST_ID_LENGTH = 128


def incoming_request_id(scope: Scope) -> Optional[str]:
    """Caller supplied request id, if it is present and of sane length."""
    value = Headers(scope=scope).get(REQUEST_ID_HEADER, "").strip()
    if not value or len(value) > MAX_REQUEST_ID_LENGTH:
        return None
    return value


class RequestContextMiddleware:
    """
    Tags every log line of a request with request_id, method and path.

    The request id is taken from X-Request-ID when the caller sends one and
    generated otherwise. It is echoed on the response and exposed to
    handlers as request.state.request_id.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = incoming_request_id(scope) or uuid.uuid4().hex
        scope.setdefault("state", {})["request_id"] = request_id

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                message = {
                    **message,
                    "headers": [
                        *message.get("headers", []),
                        (REQUEST_ID_HEADER.encode(), request_id.encode("latin-1")),
                    ],
                }
            await send(message)

        with structlog.contextvars.bound_contextvars(
            request_id=request_id,
            method=scope.get("method", ""),
            path=scope.get("path", ""),
        ):
            await self.app(scope, receive, send_with_request_id)
