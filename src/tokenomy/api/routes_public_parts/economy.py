from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Request

from tokenomy.api.errors import ApiError
from tokenomy.api.routes_public_parts.common import _ledger, _opt_int_param

router = APIRouter()

Json = Dict[str, Any]


@router.get("/supply")
def supply(request: Request) -> Json:
    ledger = _ledger(request)
    return {
        "ok": True,
        "total_supply": ledger.total_supply(),
        "circulating_supply": ledger.circulating_supply(),
        "pool_balance": ledger.pool_balance(),
        "sealed": bool(ledger.ledger.get("sealed", False)),
    }


@router.get("/tax")
def tax_policy(request: Request) -> Json:
    ledger = _ledger(request)
    tp = ledger.tax_policy
    return {
        "ok": True,
        "rate_bps": ledger.tax_rate_bps(),
        "reservoir": ledger.reservoir(),
        "exempt": sorted(tp.get("exempt") or []),
        "protected": sorted(tp.get("protected") or []),
    }


@router.get("/tax/calculate")
def tax_calculate(request: Request, amount: Optional[str] = None) -> Json:
    """Quote the tax on a taxed transfer of `amount` at the current rate."""
    a = _opt_int_param(amount)
    if a is None or a < 0:
        raise ApiError.bad_request("bad_request", "amount must be a non-negative integer", {"amount": amount})
    return {"ok": True, **_ledger(request).tax_quote(a)}


@router.get("/rewards")
def rewards(request: Request, recipient: Optional[str] = None) -> Json:
    r = str(recipient).strip() if recipient else None
    return {"ok": True, **_ledger(request).reward_stats(r or None)}
