from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Request

from tokenomy.api.errors import ApiError
from tokenomy.api.routes_public_parts.common import _account_param, _executor, _opt_int_param

router = APIRouter()

Json = Dict[str, Any]


@router.get("/vesting/{beneficiary}")
def vesting_get(beneficiary: str, request: Request, now: Optional[str] = None) -> Json:
    """Schedule plus vested/releasable amounts at `now` (default: executor clock)."""
    b = _account_param(beneficiary)
    ex = _executor(request)
    sched = ex.vesting_schedule(b)
    if sched is None:
        raise ApiError.not_found("schedule_not_found", "no vesting schedule for beneficiary", {"beneficiary": b})

    t = _opt_int_param(now)
    at = ex.now() if t is None else t
    return {
        "ok": True,
        "beneficiary": b,
        "schedule": sched.to_json(),
        "at": at,
        "vested": ex.vested_amount(b, at),
        "releasable": ex.releasable_amount(b, at),
    }
