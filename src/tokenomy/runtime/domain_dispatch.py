# src/tokenomy/runtime/domain_dispatch.py

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from tokenomy.runtime.errors import ApplyError
from tokenomy.runtime.gates import SUPPORTED_TX_TYPES, CapabilityService, StateCapabilities, require_capability
from tokenomy.runtime.pause import deny_if_paused
from tokenomy.runtime.state_invariants import ensure_state
from tokenomy.runtime.tx_admission_types import TxEnvelope

# Domain appliers (each returns Optional[Json]; returning None means "not claimed")
from tokenomy.runtime.apply.airdrop import apply_airdrop
from tokenomy.runtime.apply.protocol import apply_protocol
from tokenomy.runtime.apply.rewards import apply_rewards
from tokenomy.runtime.apply.settlement import apply_settlement
from tokenomy.runtime.apply.vesting import apply_vesting

Json = Dict[str, Any]
ApplyFn = Callable[[Json, Any], Optional[Json]]


def _get(env: Any, key: str, default: Any = None) -> Any:
    """Read a field from either a TxEnvelope-like object or a dict."""
    if isinstance(env, dict):
        return env.get(key, default)
    return getattr(env, key, default)


def _tx_type(env: Any) -> str:
    return str(_get(env, "tx_type", "") or "").strip().upper()


_APPLIERS: tuple[ApplyFn, ...] = (
    apply_settlement,
    apply_rewards,
    apply_vesting,
    apply_airdrop,
    apply_protocol,
)


def apply_tx(state: Json, env: Any, *, caps: Optional[CapabilityService] = None) -> Json:
    """Dispatch a TxEnvelope to the first domain applier that claims it.

    Gates run here, once, before any applier: unknown tx types, then the
    pause flag, then the capability the tx type declares.
    """
    ensure_state(state)

    env_norm: Any = env
    if isinstance(env, dict):
        env_norm = TxEnvelope.from_json(env)

    t = _tx_type(env_norm)
    if not t or t not in SUPPORTED_TX_TYPES:
        raise ApplyError("invalid_tx", "unknown_tx_type", {"tx_type": t})

    deny_if_paused(state, t)
    require_capability(caps if caps is not None else StateCapabilities(state), caller=env_norm.signer, tx_type=t)

    for fn in _APPLIERS:
        out = fn(state, env_norm)
        if out is not None:
            out.setdefault("events", [])
            return out

    raise ApplyError("invalid_tx", "unknown_tx_type", {"tx_type": t})


__all__ = ["apply_tx"]
