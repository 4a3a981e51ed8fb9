from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Request

from tokenomy.api.routes_public_parts.common import _account_param, _executor, _opt_int_param
from tokenomy.api.schemas import CanClaimRequest

router = APIRouter()

Json = Dict[str, Any]


@router.get("/airdrop")
def airdrop_campaign(request: Request, now: Optional[str] = None) -> Json:
    ex = _executor(request)
    ledger = ex.view()
    c = ledger.campaign()
    return {
        "ok": True,
        "campaign": c.to_json() if c is not None else None,
        "time_until_deadline": ex.time_until_deadline(_opt_int_param(now)),
        "vault_balance": ledger.balance_of(str(ledger.airdrop.get("vault_account") or "")),
    }


@router.get("/airdrop/claimed/{account}")
def airdrop_claimed(account: str, request: Request) -> Json:
    a = _account_param(account)
    return {"ok": True, "account": a, "claimed": _executor(request).has_claimed(a)}


@router.post("/airdrop/can_claim")
def airdrop_can_claim(body: CanClaimRequest, request: Request) -> Json:
    """Dry-run a claim. Never mutates; reports the first failing check."""
    err = _executor(request).claim_preflight(body.account, body.amount, body.proof, now=body.now)
    if err is None:
        return {"ok": True, "can_claim": True, "reason": None}
    return {"ok": True, "can_claim": False, "code": err.code, "reason": err.reason}
