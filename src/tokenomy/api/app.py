from __future__ import annotations

import os
from typing import Any, List, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tokenomy.api.errors import ApiError
from tokenomy.api.routes_public import public_router
from tokenomy.api.structured_logging import RequestLogMiddleware
from tokenomy.runtime.executor_boot import build_executor as _build_executor


def build_executor():
    """Build a TokenExecutor for API runtime.

    This wrapper exists so tests can monkeypatch `tokenomy.api.app.build_executor`
    without reaching into runtime modules.
    """
    return _build_executor()


def _parse_cors_origins() -> List[str]:
    """Parse CORS origins.

    Policy:
      - If TOKENOMY_CORS_ORIGINS is unset/empty -> CORS disabled
      - Wildcard "*" is rejected in TOKENOMY_MODE=prod
    """
    raw = os.environ.get("TOKENOMY_CORS_ORIGINS", "").strip()
    mode = os.environ.get("TOKENOMY_MODE", "prod").strip().lower()

    if not raw:
        return []

    origins = [o.strip() for o in raw.split(",") if o.strip()]

    if "*" in origins:
        if mode == "prod":
            raise RuntimeError(
                "Unsafe CORS configuration: wildcard '*' not allowed in production. "
                "Set explicit origins in TOKENOMY_CORS_ORIGINS."
            )
        return ["*"]

    return origins


async def _api_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, ApiError)
    return JSONResponse(status_code=exc.status_code, content=exc.to_json())


def create_app(*, boot_runtime: bool = True, executor: Optional[Any] = None) -> FastAPI:
    """Create the FastAPI application.

    executor:
      - given: attached as-is (tests, embedding)
    boot_runtime:
      - True (default): build the executor from chain config
      - False: no executor; routes answer 500 not_ready
    """
    mode = os.environ.get("TOKENOMY_MODE", "prod").strip().lower()

    if mode == "prod":
        app = FastAPI(title="Tokenomy API", docs_url=None, redoc_url=None, openapi_url=None)
    else:
        app = FastAPI(title="Tokenomy API")

    if executor is not None:
        app.state.executor = executor
    elif boot_runtime:
        app.state.executor = build_executor()
    else:
        app.state.executor = None

    app.add_exception_handler(ApiError, _api_error_handler)

    app.add_middleware(RequestLogMiddleware)

    cors_origins = _parse_cors_origins()
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Authorization", "Content-Type"],
        )

    app.include_router(public_router)

    return app
