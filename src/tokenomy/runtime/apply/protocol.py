from __future__ import annotations

"""tokenomy.runtime.apply.protocol

Pause flag toggle. PAUSE_SET is the one tx the dispatcher lets through while
paused.

State surface:
state["params"]["paused"] = bool
"""

from typing import Any, Dict, Optional

from tokenomy.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]


def _as_dict(x: Any) -> Json:
    return x if isinstance(x, dict) else {}


def _apply_pause_set(state: Json, env: TxEnvelope) -> Json:
    params = state.get("params")
    if not isinstance(params, dict):
        params = {}
        state["params"] = params

    old = bool(_as_dict(params).get("paused", False))
    new = bool(env.payload.get("paused", False))
    params["paused"] = new
    return {
        "applied": "PAUSE_SET",
        "events": [{"event": "pause_set", "old": old, "new": new, "changer": env.signer}],
    }


PROTOCOL_TX_TYPES = {"PAUSE_SET"}


def apply_protocol(state: Json, env: TxEnvelope) -> Optional[Json]:
    t = str(env.tx_type or "").strip().upper()
    if t not in PROTOCOL_TX_TYPES:
        return None
    return _apply_pause_set(state, env)


__all__ = ["PROTOCOL_TX_TYPES", "apply_protocol"]
