# src/tokenomy/runtime/apply/settlement.py
from __future__ import annotations

"""tokenomy.runtime.apply.settlement

Ordinary transfers and the tax policy setters.

State surface:
state["tax_policy"] = {
  "rate_bps": int,              # 0..MAX_TAX_RATE_BPS
  "reservoir": str,             # tax-leg destination
  "exempt": [account_id, ...],  # sorted
  "protected": [account_id, ...],  # exempt and not removable by TAX_EXEMPT_SET
}
"""

from typing import Any, Dict, Optional, Set

from tokenomy.ledger.constants import MAX_TAX_RATE_BPS, is_null_account
from tokenomy.ledger.settlement import (
    airdrop_vault,
    ensure_tax_policy,
    reward_pool,
    settle_transfer,
    treasury,
    vesting_vault,
)
from tokenomy.runtime.errors import AuthorizationError, ValidationError
from tokenomy.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]


def _as_str(v: Any) -> str:
    return str(v).strip() if isinstance(v, (str, int)) and not isinstance(v, bool) else ""


def _as_int(v: Any, default: int = 0) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


def _component_accounts(state: Json) -> Set[str]:
    """Balances only their owning component may move."""
    return {reward_pool(state).account_id, vesting_vault(state).account_id, airdrop_vault(state).account_id}


def _set_member(tp: Json, key: str, account_id: str, present: bool) -> None:
    cur = tp.get(key)
    members = set(cur) if isinstance(cur, list) else set()
    if present:
        members.add(account_id)
    else:
        members.discard(account_id)
    tp[key] = sorted(members)


def _apply_transfer(state: Json, env: TxEnvelope) -> Json:
    payload = env.payload
    to = _as_str(payload.get("to"))
    amount = _as_int(payload.get("amount"), 0)

    if is_null_account(to):
        raise ValidationError("zero_address", {"field": "to"})
    if env.signer in _component_accounts(state):
        raise AuthorizationError(
            "unauthorized_caller",
            {"caller": env.signer, "capability": None, "note": "component_owned_account"},
        )

    events = settle_transfer(state, env.signer, to, amount)
    return {"applied": "TRANSFER", "events": events}


def _apply_tax_rate_set(state: Json, env: TxEnvelope) -> Json:
    new = _as_int(env.payload.get("rate_bps"), -1)
    if new < 0 or new > MAX_TAX_RATE_BPS:
        raise ValidationError("invalid_tax_rate", {"rate_bps": new, "max_bps": MAX_TAX_RATE_BPS})

    tp = ensure_tax_policy(state)
    old = _as_int(tp.get("rate_bps"), 0)
    tp["rate_bps"] = new
    return {
        "applied": "TAX_RATE_SET",
        "events": [{"event": "tax_rate_updated", "old": old, "new": new, "changer": env.signer}],
    }


def _apply_tax_reservoir_set(state: Json, env: TxEnvelope) -> Json:
    new = _as_str(env.payload.get("reservoir"))
    if is_null_account(new):
        raise ValidationError("zero_address", {"field": "reservoir"})

    tp = ensure_tax_policy(state)
    old = _as_str(tp.get("reservoir"))

    # The outgoing reservoir keeps its exemption; it only stays protected if it
    # is also one of the permanent system accounts.
    permanent = _component_accounts(state) | {treasury(state).account_id}
    if old and old != new and old not in permanent:
        _set_member(tp, "protected", old, False)

    tp["reservoir"] = new
    _set_member(tp, "exempt", new, True)
    _set_member(tp, "protected", new, True)
    return {
        "applied": "TAX_RESERVOIR_SET",
        "events": [{"event": "reservoir_updated", "old": old, "new": new, "changer": env.signer}],
    }


def _apply_tax_exempt_set(state: Json, env: TxEnvelope) -> Json:
    account = _as_str(env.payload.get("account"))
    flag = bool(env.payload.get("exempt", False))
    if is_null_account(account):
        raise ValidationError("zero_address", {"field": "account"})

    tp = ensure_tax_policy(state)
    protected = tp.get("protected") if isinstance(tp.get("protected"), list) else []
    if not flag and account in protected:
        raise AuthorizationError("protected_exemption", {"account": account})

    _set_member(tp, "exempt", account, flag)
    return {
        "applied": "TAX_EXEMPT_SET",
        "events": [{"event": "exemption_updated", "account": account, "flag": flag, "changer": env.signer}],
    }


SETTLEMENT_TX_TYPES = {"TRANSFER", "TAX_RATE_SET", "TAX_RESERVOIR_SET", "TAX_EXEMPT_SET"}


def apply_settlement(state: Json, env: TxEnvelope) -> Optional[Json]:
    t = _as_str(env.tx_type).upper()
    if t not in SETTLEMENT_TX_TYPES:
        return None

    if t == "TRANSFER":
        return _apply_transfer(state, env)
    if t == "TAX_RATE_SET":
        return _apply_tax_rate_set(state, env)
    if t == "TAX_RESERVOIR_SET":
        return _apply_tax_reservoir_set(state, env)
    if t == "TAX_EXEMPT_SET":
        return _apply_tax_exempt_set(state, env)
    return None


__all__ = ["SETTLEMENT_TX_TYPES", "apply_settlement"]
