# src/tokenomy/runtime/apply/rewards.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from tokenomy.ledger.constants import is_null_account
from tokenomy.ledger.settlement import balance_of, reward_pool, system_payout
from tokenomy.runtime.errors import StateError, ValidationError
from tokenomy.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]


def _as_int(v: Any, default: int = 0) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


def _as_str(v: Any) -> str:
    return str(v).strip() if isinstance(v, (str, int)) and not isinstance(v, bool) else ""


def _ensure_rewards(state: Json) -> Json:
    rw = state.get("rewards")
    if not isinstance(rw, dict):
        rw = {}
        state["rewards"] = rw
    rw.setdefault("total_distributed", 0)
    if not isinstance(rw.get("by_recipient"), dict):
        rw["by_recipient"] = {}
    return rw


def _validate_leg(recipient: str, amount: int, index: Optional[int] = None) -> None:
    where = {} if index is None else {"index": index}
    if is_null_account(recipient):
        raise ValidationError("invalid_recipient", {"recipient": recipient, **where})
    if amount <= 0:
        raise ValidationError("zero_amount", {"recipient": recipient, **where})


def _pay_leg(state: Json, recipient: str, amount: int, activity_id: str) -> List[Json]:
    pool = reward_pool(state)
    events = system_payout(state, pool, recipient, amount)

    rw = _ensure_rewards(state)
    rw["total_distributed"] = _as_int(rw.get("total_distributed"), 0) + amount
    by_recipient = rw["by_recipient"]
    by_recipient[recipient] = _as_int(by_recipient.get(recipient), 0) + amount

    events.append(
        {
            "event": "reward_distributed",
            "recipient": recipient,
            "amount": amount,
            "activity_id": activity_id,
            "timestamp": _as_int(state.get("time"), 0),
        }
    )
    return events


def _apply_reward_distribute(state: Json, env: TxEnvelope) -> Json:
    payload = env.payload
    recipient = _as_str(payload.get("recipient"))
    amount = _as_int(payload.get("amount"), 0)
    activity_id = _as_str(payload.get("activity_id"))

    _validate_leg(recipient, amount)

    available = balance_of(state, reward_pool(state).account_id)
    if available < amount:
        raise StateError("insufficient_pool", {"requested": amount, "available": available})

    events = _pay_leg(state, recipient, amount, activity_id)
    return {"applied": "REWARD_DISTRIBUTE", "events": events}


def _apply_reward_batch_distribute(state: Json, env: TxEnvelope) -> Json:
    payload = env.payload
    recipients = [_as_str(r) for r in (payload.get("recipients") or [])]
    amounts = [_as_int(a, 0) for a in (payload.get("amounts") or [])]
    activity_ids = [_as_str(a) for a in (payload.get("activity_ids") or [])]

    if not (len(recipients) == len(amounts) == len(activity_ids)):
        raise ValidationError(
            "arity_mismatch",
            {"recipients": len(recipients), "amounts": len(amounts), "activity_ids": len(activity_ids)},
        )
    if not recipients:
        raise ValidationError("empty_batch", {})

    for i, (r, a) in enumerate(zip(recipients, amounts)):
        _validate_leg(r, a, i)

    # The pool is measured once against the aggregate. Legs only ever debit
    # the pool, and nothing else runs mid-batch, so per-leg checks are implied.
    total = sum(amounts)
    available = balance_of(state, reward_pool(state).account_id)
    if available < total:
        raise StateError("insufficient_pool", {"requested": total, "available": available})

    events: List[Json] = []
    for r, a, aid in zip(recipients, amounts, activity_ids):
        events.extend(_pay_leg(state, r, a, aid))

    return {"applied": "REWARD_BATCH_DISTRIBUTE", "legs": len(recipients), "total": total, "events": events}


REWARDS_TX_TYPES = {"REWARD_DISTRIBUTE", "REWARD_BATCH_DISTRIBUTE"}


def apply_rewards(state: Json, env: TxEnvelope) -> Optional[Json]:
    t = _as_str(env.tx_type).upper()
    if t not in REWARDS_TX_TYPES:
        return None

    if t == "REWARD_DISTRIBUTE":
        return _apply_reward_distribute(state, env)
    if t == "REWARD_BATCH_DISTRIBUTE":
        return _apply_reward_batch_distribute(state, env)
    return None


__all__ = ["REWARDS_TX_TYPES", "apply_rewards"]
