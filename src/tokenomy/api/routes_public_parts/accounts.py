from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Request

from tokenomy.api.routes_public_parts.common import _account_param, _ledger

router = APIRouter()


def _normalize_keys(acct: Dict[str, Any]) -> List[dict]:
    ks = acct.get("keys")
    out: List[dict] = []
    if not isinstance(ks, list):
        return out
    for it in ks:
        if isinstance(it, dict):
            p = str(it.get("pubkey") or "").strip()
            active = bool(it.get("active", True))
        else:
            p = str(it or "").strip()
            active = True
        if p:
            out.append({"pubkey": p, "active": active})
    out.sort(key=lambda x: x.get("pubkey", ""))
    return out


@router.get("/accounts/{account}")
def account_get(account: str, request: Request):
    aid = _account_param(account)
    ledger = _ledger(request)
    return {
        "ok": True,
        "account": aid,
        "balance": ledger.balance_of(aid),
        "nonce": ledger.get_nonce(aid),
        "exempt": ledger.is_exempt(aid),
        "protected": ledger.is_protected(aid),
        "keys": _normalize_keys(ledger.get_account(aid)),
    }
