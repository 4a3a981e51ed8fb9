from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from tokenomy.api.routes_public_parts.common import _executor, _ledger

router = APIRouter()

Json = Dict[str, Any]


@router.get("/health")
def health() -> Json:
    return {"ok": True}


@router.get("/status")
def status(request: Request) -> Json:
    """
    Public executor status summary.

    Mounted under /v1 by routes_public.py, so the full path is:
      GET /v1/status
    """
    ex = _executor(request)
    ledger = _ledger(request)
    return {
        "ok": True,
        "chain_id": str(ex.chain_id),
        "height": int(ledger.height),
        "time": int(ledger.time),
        "paused": bool(ledger.get_param("paused", False)),
        "sealed": bool(ledger.ledger.get("sealed", False)),
        "require_signatures": bool(ledger.get_param("require_signatures", True)),
        "total_supply": ledger.total_supply(),
    }
