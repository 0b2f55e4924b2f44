"""
Request logging middleware.

Pure ASGI middleware (not BaseHTTPMiddleware) so request bodies can be
observed without consuming them. Logs method, path, status code and
duration for every HTTP request; bodies are logged at DEBUG with
credentials masked.
"""

import json
import logging
import time
import uuid
from typing import Optional
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..core.logging_config import filter_sensitive_data, truncate_large_data

logger = logging.getLogger(__name__)


def _sanitize_body(raw: bytes) -> Optional[str]:
    """Decode a request/response body and mask credentials if it is JSON."""
    if not raw:
        return None
    text = raw.decode("utf-8", errors="ignore")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return truncate_large_data(text)
    return truncate_large_data(json.dumps(filter_sensitive_data(payload), ensure_ascii=False))


class RequestLoggingMiddleware:
    """Log every HTTP request passing through the application."""

    def __init__(self, app: ASGIApp, exclude_paths: Optional[list] = None):
        """
        Args:
            app: The wrapped ASGI application
            exclude_paths: Paths logged at DEBUG only (defaults to health probes)
        """
        self.app = app
        self.exclude_paths = exclude_paths or ["/health", "/"]

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        method = scope.get("method", "UNKNOWN")
        request_id = uuid.uuid4().hex[:12]
        start_time = time.time()

        request_chunks = []
        response_chunks = []
        status_code = 0

        async def logging_receive() -> Message:
            message = await receive()
            if message["type"] == "http.request":
                request_chunks.append(message.get("body", b""))
            return message

        async def logging_send(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 0)
            elif message["type"] == "http.response.body":
                response_chunks.append(message.get("body", b""))
            await send(message)

        try:
            await self.app(scope, logging_receive, logging_send)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Request failed: {method} {path} - {e}",
                exc_info=True,
                extra={"extra_fields": {
                    "request_id": request_id,
                    "method": method,
                    "path": path,
                    "duration_ms": duration_ms,
                }}
            )
            raise

        duration_ms = (time.time() - start_time) * 1000

        if path in self.exclude_paths:
            log_level = logging.DEBUG
        elif status_code >= 500:
            log_level = logging.ERROR
        elif status_code >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        extra_fields = {
            "request_id": request_id,
            "method": method,
            "path": path,
            "status_code": status_code,
            "duration_ms": duration_ms,
        }
        if logger.isEnabledFor(logging.DEBUG) or status_code >= 400:
            extra_fields["request_body"] = _sanitize_body(b"".join(request_chunks))
            extra_fields["response_body"] = _sanitize_body(b"".join(response_chunks))

        logger.log(
            log_level,
            f"{method} {path} - {status_code} ({duration_ms:.2f}ms)",
            extra={"extra_fields": extra_fields}
        )
