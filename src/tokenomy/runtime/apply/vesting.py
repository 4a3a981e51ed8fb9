# src/tokenomy/runtime/apply/vesting.py
from __future__ import annotations

"""tokenomy.runtime.apply.vesting

Per-beneficiary cliff-linear vesting drawn from the vesting vault.

State surface:
state["vesting"] = {
  "vault_account": str,
  "committed": int,          # sum of (total_amount - released) over live schedules
  "forfeit_account": str,    # receives the unvested part of revoked schedules
  "schedules": {beneficiary: {total_amount, released, start, cliff_duration,
                              vesting_duration, revocable, revoked}},
}

Schedules are never deleted, so a beneficiary gets at most one schedule ever.
Uncommitted vault balance (vault - committed) is what new schedules draw on.
"""

from typing import Any, Dict, Optional

from tokenomy.ledger.constants import DEFAULT_CLIFF_SECONDS, DEFAULT_VESTING_SECONDS, is_null_account
from tokenomy.ledger.settlement import balance_of, system_payout, treasury, vesting_vault
from tokenomy.ledger.types import VestingSchedule
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


def _ensure_vesting(state: Json) -> Json:
    vs = state.get("vesting")
    if not isinstance(vs, dict):
        vs = {}
        state["vesting"] = vs
    vs.setdefault("vault_account", vesting_vault(state).account_id)
    vs.setdefault("committed", 0)
    vs.setdefault("forfeit_account", treasury(state).account_id)
    if not isinstance(vs.get("schedules"), dict):
        vs["schedules"] = {}
    return vs


def _now(state: Json) -> int:
    return _as_int(state.get("time"), 0)


def _load(state: Json, beneficiary: str) -> VestingSchedule:
    schedules = _ensure_vesting(state)["schedules"]
    if beneficiary not in schedules:
        raise StateError("schedule_not_found", {"beneficiary": beneficiary})
    return VestingSchedule.from_json(beneficiary, schedules[beneficiary])


def _store(state: Json, sched: VestingSchedule) -> None:
    _ensure_vesting(state)["schedules"][sched.beneficiary] = sched.to_json()


def uncommitted_balance(state: Json) -> int:
    vs = _ensure_vesting(state)
    return balance_of(state, vesting_vault(state).account_id) - _as_int(vs.get("committed"), 0)


def _apply_vesting_create(state: Json, env: TxEnvelope) -> Json:
    payload = env.payload
    beneficiary = _as_str(payload.get("beneficiary"))
    amount = _as_int(payload.get("amount"), 0)

    if is_null_account(beneficiary):
        raise ValidationError("zero_address", {"field": "beneficiary"})
    if amount <= 0:
        raise ValidationError("zero_amount", {"beneficiary": beneficiary})

    vs = _ensure_vesting(state)
    if beneficiary in vs["schedules"]:
        raise StateError("schedule_already_exists", {"beneficiary": beneficiary})

    start = payload.get("start")
    start = _now(state) if start is None else _as_int(start, 0)
    cliff = payload.get("cliff_duration")
    cliff = DEFAULT_CLIFF_SECONDS if cliff is None else _as_int(cliff, 0)
    duration = payload.get("vesting_duration")
    duration = DEFAULT_VESTING_SECONDS if duration is None else _as_int(duration, 0)

    if duration <= 0 or cliff > duration:
        raise ValidationError("invalid_duration", {"cliff_duration": cliff, "vesting_duration": duration})

    available = uncommitted_balance(state)
    if available < amount:
        raise StateError("insufficient_funding", {"requested": amount, "available": available})

    sched = VestingSchedule(
        beneficiary=beneficiary,
        total_amount=amount,
        released=0,
        start=start,
        cliff_duration=cliff,
        vesting_duration=duration,
        revocable=bool(payload.get("revocable", False)),
    )
    _store(state, sched)
    vs["committed"] = _as_int(vs.get("committed"), 0) + amount

    return {
        "applied": "VESTING_CREATE",
        "events": [
            {
                "event": "vesting_created",
                "beneficiary": beneficiary,
                "amount": amount,
                "start": start,
                "cliff_duration": cliff,
                "vesting_duration": duration,
                "revocable": sched.revocable,
            }
        ],
    }


def _apply_vesting_release(state: Json, env: TxEnvelope) -> Json:
    beneficiary = _as_str(env.payload.get("beneficiary")) or env.signer
    sched = _load(state, beneficiary)

    releasable = sched.releasable_at(_now(state))
    if releasable <= 0:
        raise StateError("no_tokens_to_claim", {"beneficiary": beneficiary, "released": sched.released})

    vs = _ensure_vesting(state)
    events = system_payout(state, vesting_vault(state), beneficiary, releasable)
    sched.released += releasable
    _store(state, sched)
    vs["committed"] = _as_int(vs.get("committed"), 0) - releasable

    events.append({"event": "vesting_released", "beneficiary": beneficiary, "amount": releasable})
    return {"applied": "VESTING_RELEASE", "released": releasable, "events": events}


def _apply_vesting_revoke(state: Json, env: TxEnvelope) -> Json:
    beneficiary = _as_str(env.payload.get("beneficiary"))
    sched = _load(state, beneficiary)
    if not sched.revocable:
        raise StateError("schedule_not_revocable", {"beneficiary": beneficiary})
    if sched.revoked:
        raise StateError("schedule_already_revoked", {"beneficiary": beneficiary})

    vested = sched.vested_at(_now(state))
    forfeited = sched.total_amount - vested
    sched.total_amount = vested
    sched.revoked = True
    _store(state, sched)

    vs = _ensure_vesting(state)
    vs["committed"] = _as_int(vs.get("committed"), 0) - forfeited

    destination = _as_str(vs.get("forfeit_account")) or treasury(state).account_id
    events = []
    if forfeited > 0:
        events.extend(system_payout(state, vesting_vault(state), destination, forfeited))
    events.append(
        {
            "event": "vesting_revoked",
            "beneficiary": beneficiary,
            "vested": vested,
            "forfeited": forfeited,
            "destination": destination,
        }
    )
    return {"applied": "VESTING_REVOKE", "forfeited": forfeited, "events": events}


VESTING_TX_TYPES = {"VESTING_CREATE", "VESTING_RELEASE", "VESTING_REVOKE"}


def apply_vesting(state: Json, env: TxEnvelope) -> Optional[Json]:
    t = _as_str(env.tx_type).upper()
    if t not in VESTING_TX_TYPES:
        return None

    if t == "VESTING_CREATE":
        return _apply_vesting_create(state, env)
    if t == "VESTING_RELEASE":
        return _apply_vesting_release(state, env)
    if t == "VESTING_REVOKE":
        return _apply_vesting_revoke(state, env)
    return None


__all__ = ["VESTING_TX_TYPES", "apply_vesting", "uncommitted_balance"]
