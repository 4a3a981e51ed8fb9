# src/tokenomy/api/structured_logging.py
from __future__ import annotations

import logging
import os
import time
import uuid
from typing import FrozenSet

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from tokenomy.runtime.runtime_logging import log_event


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _skip_paths() -> FrozenSet[str]:
    raw = os.environ.get("TOKENOMY_LOG_SKIP_PATHS", "/v1/health")
    return frozenset(p.strip() for p in raw.split(",") if p.strip())


class RequestLogMiddleware(BaseHTTPMiddleware):
    """One `http_request` JSON line per request.

    - TOKENOMY_LOG_REQUESTS=0 disables it.
    - TOKENOMY_LOG_SKIP_PATHS: comma-separated paths not logged (default /v1/health).
    - TOKENOMY_LOG_SLOW_MS: requests slower than this log at WARNING (default 1000).
    - 5xx responses and unhandled exceptions log at ERROR.

    The request id (x-request-id, generated when absent) is echoed on the response.
    """

    def __init__(self, app) -> None:
        super().__init__(app)
        self._enabled = _env_flag("TOKENOMY_LOG_REQUESTS", True)
        self._skip = _skip_paths()
        try:
            self._slow_ms = int(os.environ.get("TOKENOMY_LOG_SLOW_MS", "1000"))
        except ValueError:
            self._slow_ms = 1000
        self._logger = logging.getLogger("tokenomy.http")

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = str(request.url.path or "")
        if not self._enabled or path in self._skip:
            return await call_next(request)

        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.request_id = request_id
        started = time.monotonic()

        try:
            response = await call_next(request)
        except Exception as e:
            self._log(request, request_id, path, 500, started, error=f"{type(e).__name__}: {e}")
            raise

        response.headers.setdefault("x-request-id", request_id)
        self._log(request, request_id, path, response.status_code, started)
        return response

    def _log(self, request: Request, request_id: str, path: str, status: int, started: float, error: str = "") -> None:
        duration_ms = int((time.monotonic() - started) * 1000)
        if status >= 500:
            level = logging.ERROR
        elif duration_ms >= self._slow_ms:
            level = logging.WARNING
        else:
            level = logging.INFO

        fields = {
            "request_id": request_id,
            "method": request.method,
            "path": path,
            "status": int(status),
            "duration_ms": duration_ms,
            "client": request.client.host if request.client else "",
        }
        if error:
            fields["error"] = error
        log_event(self._logger, "http_request", level=level, **fields)


__all__ = ["RequestLogMiddleware"]
