"""Correlation ID middleware.

Tags every request with an id so the dose check, the gate decision and
any override warning of one request can be tied together in the logs.
A client-supplied ``X-Correlation-ID`` is reused only when it is a short
token of safe characters; anything else is replaced with a fresh UUID so
request headers cannot forge log lines.

Pure ASGI rather than ``BaseHTTPMiddleware``, which does not play well
with asyncpg sessions opened inside the request.
"""

import logging
import re
import time
import uuid

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from medguard.logging_config import correlation_id_ctx, get_logger

logger = get_logger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"
_HEADER_KEY = CORRELATION_ID_HEADER.lower().encode()
_VALID_CORRELATION_ID = re.compile(r"[A-Za-z0-9._-]{1,64}")


def resolve_correlation_id(raw: bytes | None) -> str:
    """Incoming id if well-formed, otherwise a new UUID4."""
    candidate = (raw or b"").decode("latin-1").strip()
    if _VALID_CORRELATION_ID.fullmatch(candidate):
        return candidate
    return str(uuid.uuid4())


def completion_level(status_code: int | None) -> int:
    if status_code is None or status_code >= 500:
        return logging.ERROR
    return logging.INFO


class CorrelationIdMiddleware:
    """Bind a correlation id for the request and echo it on the response."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        correlation_id = resolve_correlation_id(dict(scope.get("headers", [])).get(_HEADER_KEY))
        token = correlation_id_ctx.set(correlation_id)
        started = time.perf_counter()
        status_code: int | None = None

        async def send_with_header(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                message = {
                    **message,
                    "headers": [
                        *message.get("headers", []),
                        (_HEADER_KEY, correlation_id.encode()),
                    ],
                }
            await send(message)

        request_fields = {"method": scope.get("method", ""), "path": scope.get("path", "")}
        try:
            await self.app(scope, receive, send_with_header)
        except Exception:
            logger.exception(
                "Request failed",
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
                **request_fields,
            )
            raise
        else:
            message = "Request completed"
            fields = {
                "status_code": status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                **request_fields,
            }
            if completion_level(status_code) >= logging.ERROR:
                logger.error(message, **fields)
            else:
                logger.info(message, **fields)
        finally:
            correlation_id_ctx.reset(token)
