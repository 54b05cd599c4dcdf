"""Request ID middleware.

Takes the request id from ``X-Request-ID`` (or generates one), stores it
in ``request.state.request_id``, adds it to the logging context for the
duration of the request and echoes it in the response headers.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from starlette.datastructures import MutableHeaders

from delivery_service.infra.logging.context import clear_log_context, set_log_context

if TYPE_CHECKING:
    from starlette.types import ASGIApp, Message, Receive, Scope, Send


class RequestIDMiddleware:
    """Pure ASGI middleware attaching a request id to each HTTP request.

    Usage:
        app.add_middleware(RequestIDMiddleware)
    """

    header_name = "x-request-id"

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = self._from_headers(scope) or str(uuid.uuid4())
        scope.setdefault("state", {})["request_id"] = request_id
        set_log_context(request_id=request_id)

        async def send_with_header(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)[self.header_name] = request_id
            await send(message)

        try:
            await self.app(scope, receive, send_with_header)
        finally:
            clear_log_context()

    def _from_headers(self, scope: Scope) -> str | None:
        target = self.header_name.encode("latin-1")
        for name, value in scope.get("headers", []):
            if name.lower() == target:
                return value.decode("latin-1")[:128] or None
        return None


__all__ = ["RequestIDMiddleware"]
