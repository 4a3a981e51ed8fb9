from __future__ import annotations

from typing import Any, Dict

from fastapi import Request

from tokenomy.api.errors import ApiError
from tokenomy.ledger.state import LedgerView

Json = Dict[str, Any]


def _executor(request: Request):
    ex = getattr(request.app.state, "executor", None)
    if ex is None:
        raise ApiError.internal("not_ready", "executor not attached to app.state", {})
    return ex


def _ledger(request: Request) -> LedgerView:
    """Consistent read-only view of the current state."""
    return _executor(request).view()


def _int_param(v: Any, default: int) -> int:
    """Parse an int-ish query param safely."""
    if v is None:
        return int(default)
    try:
        s = str(v).strip()
        if s == "":
            return int(default)
        return int(s)
    except ValueError:
        return int(default)


def _opt_int_param(v: Any) -> int | None:
    if v is None or str(v).strip() == "":
        return None
    try:
        return int(str(v).strip())
    except ValueError:
        raise ApiError.bad_request("bad_request", "expected an integer", {"value": str(v)})


def _account_param(v: Any) -> str:
    s = str(v or "").strip()
    if not s:
        raise ApiError.bad_request("bad_request", "missing account id", {})
    return s
