from __future__ import annotations

import logging
import time
import uuid

from starlette.types import ASGIApp, Message, Receive, Scope, Send


class RequestLoggingMiddleware:
    def __init__(self, app: ASGIApp) -> None:
        self.app = app
        # root is configured to JSON in setup_logging
        self.logger = logging.getLogger("healthvoice.request")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()
        headers = {k.decode().lower(): v.decode() for k, v in scope.get("headers", [])}
        request_id = headers.get("x-request-id") or uuid.uuid4().hex
        # exposed to handlers as request.state.request_id
        scope.setdefault("state", {})["request_id"] = request_id

        async def send_wrapper(message: Message) -> None:
            if message.get("type") == "http.response.start":
                raw_headers = list(message.get("headers", []))
                raw_headers.append((b"x-request-id", request_id.encode()))
                message["headers"] = raw_headers

                route = getattr(scope.get("route"), "path", None) or scope.get("path")
                client = scope.get("client") or (None, None)
                self.logger.info(
                    "request",
                    extra={
                        "request_id": request_id,
                        "route": route,
                        "timing_ms": int((time.perf_counter() - start) * 1000),
                        "method": scope.get("method"),
                        "status_code": message.get("status"),
                        "path": scope.get("path"),
                        "client_ip": client[0] if isinstance(client, (list, tuple)) else None,
                    },
                )

            await send(message)

        await self.app(scope, receive, send_wrapper)


def install_request_logging(app: ASGIApp) -> None:
    """Convenience helper to install the middleware."""
    app.add_middleware(RequestLoggingMiddleware)  # type: ignore[attr-defined]
