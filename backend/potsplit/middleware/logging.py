"""
backend/potsplit/middleware/logging.py

Purpose:
    Request-scoped logging. Every request gets a short id (reused from an
    incoming X-Request-ID header) that is stamped on the access line and on
    every log record emitted while the request is handled, so a settlement
    run can be traced from the access log into the engine logs.

Dependencies:
    - starlette
    - potsplit.config
"""

import json
import logging
import re
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from potsplit.config import settings

logger = logging.getLogger("potsplit.access")

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

_TOURNAMENT_PATH = re.compile(r"^/api/tournaments/(?!settlement/)([^/]+)/")
_QUIET_PATHS = {"/health"}


def tournament_id_from_path(path: str) -> str | None:
    match = _TOURNAMENT_PATH.match(path)
    return match.group(1) if match else None


class RequestIdFilter(logging.Filter):
    """Copies the current request id onto each record as ``request_id``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]
        token = request_id_var.set(request_id)
        started = time.perf_counter()
        try:
            response: Response = await call_next(request)
        finally:
            request_id_var.reset(token)

        path = request.url.path
        entry = {
            "request_id": request_id,
            "method": request.method,
            "path": path,
            "tournament_id": tournament_id_from_path(path),
            "status": response.status_code,
            "duration_ms": round((time.perf_counter() - started) * 1000, 2),
        }
        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        elif path in _QUIET_PATHS:
            level = logging.DEBUG
        else:
            level = logging.INFO
        logger.log(level, json.dumps(entry))

        response.headers["X-Request-ID"] = request_id
        return response


def setup_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
            handler.addFilter(RequestIdFilter())
