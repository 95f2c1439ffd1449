"""
Request logging middleware.

Every API request gets:
- A correlation ID (X-Request-ID, propagated or generated), bound into
  every loguru record emitted while the request runs
- Timing, with slow requests flagged
- Scan details (upload size, MIME type, outcome counters) on scan requests
"""

import sys
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Set

from fastapi import FastAPI, Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_ID_HEADER = "X-Request-ID"

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[request_id]}</cyan> | <cyan>{name}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


@dataclass
class LoggingConfig:
    """Configuration for request logging."""

    enabled: bool = True

    excluded_paths: Set[str] = field(default_factory=lambda: {
        "/health",
        "/favicon.ico",
    })

    # Seconds; scans routinely take several seconds
    slow_request_threshold: float = 15.0


def record_scan_details(request: Request, **details: Any) -> None:
    """Attach scan details to the completion log line of this request."""
    scan_log = getattr(request.state, "scan_log", None)
    if scan_log is None:
        scan_log = request.state.scan_log = {}
    scan_log.update(details)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """FastAPI middleware for request/response logging."""

    def __init__(self, app: FastAPI, config: Optional[LoggingConfig] = None):
        super().__init__(app)
        self.config = config or LoggingConfig()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        request.state.scan_log = {}

        with logger.contextualize(request_id=request_id):
            start_time = time.time()
            response = await call_next(request)
            duration = time.time() - start_time

            response.headers[REQUEST_ID_HEADER] = request_id

            if self.config.enabled and request.url.path not in self.config.excluded_paths:
                self._log_completion(request, response, duration)

        return response

    def _log_completion(self, request: Request, response: Response, duration: float) -> None:
        duration_ms = round(duration * 1000, 2)
        slow = duration > self.config.slow_request_threshold

        if response.status_code >= 500:
            level = "ERROR"
        elif response.status_code >= 400 or slow:
            level = "WARNING"
        else:
            level = "INFO"

        scan_log = request.state.scan_log
        message = f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms}ms)"
        if scan_log:
            message += " " + " ".join(f"{key}={value}" for key, value in scan_log.items())
        if slow:
            message = f"[SLOW] {message}"

        logger.bind(
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=duration_ms,
            **scan_log,
        ).log(level, message)


def setup_logging(
    app: FastAPI,
    config: Optional[LoggingConfig] = None,
    structured: bool = True,
) -> None:
    """
    Configure the loguru sink and the request logging middleware.

    Args:
        app: FastAPI application instance.
        config: Logging configuration.
        structured: Emit JSON records instead of colored lines.
    """
    logger.remove()
    logger.configure(extra={"request_id": "-"})
    logger.add(sys.stderr, level="INFO", format=LOG_FORMAT, serialize=structured)

    app.add_middleware(RequestLoggingMiddleware, config=config or LoggingConfig())
