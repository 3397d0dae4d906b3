"""Correlation ID middleware.

Binds an ``X-Correlation-ID`` to every request so all log lines of one
teardown, across every provider call it makes, share the same id. The
id is taken from the incoming header when present, otherwise generated,
and echoed back on the response.

Pure ASGI rather than BaseHTTPMiddleware so the context variable is set
in the same task that runs the endpoint.
"""

import time
import uuid

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from src.logging_config import correlation_id_ctx, get_logger

logger = get_logger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"
_HEADER_KEY = CORRELATION_ID_HEADER.lower().encode()


def _incoming_correlation_id(scope: Scope) -> str | None:
    for key, value in scope.get("headers", []):
        if key == _HEADER_KEY and value:
            return value.decode("latin-1")
    return None


class CorrelationIdMiddleware:
    """Pure ASGI middleware that adds correlation IDs to requests."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        correlation_id = _incoming_correlation_id(scope) or str(uuid.uuid4())
        token = correlation_id_ctx.set(correlation_id)
        method = scope.get("method", "")
        path = scope.get("path", "")
        start_time = time.perf_counter()
        status_code: int | None = None

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status")
                headers = list(message.get("headers", []))
                headers.append((_HEADER_KEY, correlation_id.encode("latin-1")))
                message = {**message, "headers": headers}
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
            logger.info(
                "Request completed",
                method=method,
                path=path,
                status_code=status_code,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
        except Exception:
            logger.exception("Request failed", method=method, path=path)
            raise
        finally:
            correlation_id_ctx.reset(token)
