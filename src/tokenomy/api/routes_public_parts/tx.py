from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Request

from tokenomy.api.errors import ApiError, api_error_from_apply
from tokenomy.api.routes_public_parts.common import _executor, _int_param
from tokenomy.runtime.errors import ApplyError

router = APIRouter()

Json = Dict[str, Any]


@router.post("/tx/submit")
async def tx_submit(request: Request) -> Json:
    """Submit a tx envelope and apply it immediately.

    Returns:
      { ok, receipt } on success; an error body with the rejection reason otherwise.
    """
    ex = _executor(request)

    try:
        body = await request.json()
    except ValueError:
        raise ApiError.bad_request("bad_request", "body must be JSON", {})
    if not isinstance(body, dict):
        raise ApiError.bad_request("bad_request", "Body must be a tx envelope object", {})

    meta = ex.submit_tx(body)
    if not meta.get("ok"):
        if meta.get("code") == "internal":
            raise ApiError.internal(str(meta.get("reason") or "internal"), "tx aborted", dict(meta.get("details") or {}))
        raise api_error_from_apply(ApplyError(str(meta.get("code")), str(meta.get("reason")), meta.get("details")))

    return {"ok": True, "receipt": meta.get("receipt")}


@router.get("/events")
def events(
    request: Request,
    after: Optional[str] = None,
    limit: Optional[str] = None,
    event: Optional[str] = None,
) -> Json:
    """Page through the event log in commit order (seq > after)."""
    lim = max(0, min(_int_param(limit, 100), 1000))
    items = _executor(request).events(after=_int_param(after, 0), limit=lim, event=(event or None))
    next_after = int(items[-1]["seq"]) if items else _int_param(after, 0)
    return {"ok": True, "items": items, "next_after": next_after}
