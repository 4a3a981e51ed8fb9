from __future__ import annotations

from typing import Any, Dict

from tokenomy.runtime.errors import AuthorizationError

Json = Dict[str, Any]

# The only tx that may run while paused; otherwise the system could never be unpaused.
PAUSE_EXEMPT_TX_TYPES = frozenset({"PAUSE_SET"})


def is_paused(state: Json) -> bool:
    params = state.get("params")
    return isinstance(params, dict) and bool(params.get("paused", False))


def deny_if_paused(state: Json, tx_type: str) -> None:
    t = str(tx_type or "").strip().upper()
    if t in PAUSE_EXEMPT_TX_TYPES:
        return
    if is_paused(state):
        raise AuthorizationError("system_paused", {"tx_type": t})


__all__ = ["PAUSE_EXEMPT_TX_TYPES", "deny_if_paused", "is_paused"]
