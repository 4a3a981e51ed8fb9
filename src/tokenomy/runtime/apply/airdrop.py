# src/tokenomy/runtime/apply/airdrop.py
from __future__ import annotations

"""tokenomy.runtime.apply.airdrop

One-time, deadline-bounded claims authorized by a merkle membership proof.

Lifecycle: uninitialized -> active -> {expired (now >= deadline), deactivated}.

State surface:
state["airdrop"] = {
  "vault_account": str,
  "campaign": {root, deadline, total_allocated, total_claimed, active} | None,
  "claimed": {account_id: true},   # only ever grows, survives re-initialization
}

The proof is the authorization for a claim, so AIRDROP_CLAIM_FOR lets any
signer submit on behalf of an account; tokens always go to that account.
"""

from typing import Any, Dict, List, Optional, Sequence

from tokenomy.crypto.merkle import is_valid_root, normalize_hex, verify_allocation
from tokenomy.ledger.constants import is_null_account
from tokenomy.ledger.settlement import airdrop_vault, balance_of, system_payout
from tokenomy.ledger.types import AirdropCampaign
from tokenomy.runtime.errors import ApplyError, ProofError, StateError, ValidationError
from tokenomy.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]


def _as_int(v: Any, default: int = 0) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


def _as_str(v: Any) -> str:
    return str(v).strip() if isinstance(v, (str, int)) and not isinstance(v, bool) else ""


def _as_proof(v: Any) -> List[str]:
    if not isinstance(v, list):
        return []
    return [x if isinstance(x, str) else "" for x in v]


def _ensure_airdrop(state: Json) -> Json:
    ad = state.get("airdrop")
    if not isinstance(ad, dict):
        ad = {}
        state["airdrop"] = ad
    ad.setdefault("vault_account", airdrop_vault(state).account_id)
    ad.setdefault("campaign", None)
    if not isinstance(ad.get("claimed"), dict):
        ad["claimed"] = {}
    return ad


def _now(state: Json) -> int:
    return _as_int(state.get("time"), 0)


def _campaign(state: Json) -> Optional[AirdropCampaign]:
    return AirdropCampaign.from_json(_ensure_airdrop(state).get("campaign"))


def _require_campaign(state: Json) -> AirdropCampaign:
    c = _campaign(state)
    if c is None:
        raise StateError("campaign_not_initialized", {})
    return c


def _store(state: Json, c: AirdropCampaign) -> None:
    _ensure_airdrop(state)["campaign"] = c.to_json()


def claim_preflight(
    state: Json,
    account: str,
    amount: int,
    proof: Sequence[str],
    *,
    now: Optional[int] = None,
) -> Optional[ApplyError]:
    """Return the error a claim would fail with, or None if it would succeed.

    Never mutates `state`.
    """
    t = _now(state) if now is None else int(now)
    ad = state.get("airdrop") if isinstance(state.get("airdrop"), dict) else {}
    c = AirdropCampaign.from_json(ad.get("campaign"))

    if is_null_account(account):
        return ValidationError("zero_address", {"field": "account"})
    if c is None or not c.active:
        return StateError("not_active", {})
    if t >= c.deadline:
        return StateError("deadline_passed", {"deadline": c.deadline, "now": t})
    claimed = ad.get("claimed") if isinstance(ad.get("claimed"), dict) else {}
    if claimed.get(account):
        return StateError("already_claimed", {"account": account})
    if int(amount) <= 0:
        return ValidationError("zero_amount", {"account": account})
    if not verify_allocation(c.root, account, int(amount), list(proof)):
        return ProofError("invalid_proof", {"account": account, "amount": int(amount)})

    vault = str(ad.get("vault_account") or airdrop_vault(state).account_id)
    available = balance_of(state, vault)
    if available < int(amount):
        return StateError("insufficient_balance", {"account": vault, "balance": available, "amount": int(amount)})
    return None


def can_claim(state: Json, account: str, amount: int, proof: Sequence[str], *, now: Optional[int] = None) -> bool:
    return claim_preflight(state, account, amount, proof, now=now) is None


def _claim(state: Json, account: str, amount: int, proof: List[str], tx_type: str) -> Json:
    err = claim_preflight(state, account, amount, proof)
    if err is not None:
        raise err

    ad = _ensure_airdrop(state)
    c = _require_campaign(state)
    ad["claimed"][account] = True
    c.total_claimed += amount
    _store(state, c)

    events = system_payout(state, airdrop_vault(state), account, amount)
    events.append({"event": "claimed", "account": account, "amount": amount})
    return {"applied": tx_type, "events": events}


def _apply_claim(state: Json, env: TxEnvelope) -> Json:
    p = env.payload
    return _claim(state, env.signer, _as_int(p.get("amount"), 0), _as_proof(p.get("proof")), "AIRDROP_CLAIM")


def _apply_claim_for(state: Json, env: TxEnvelope) -> Json:
    p = env.payload
    account = _as_str(p.get("account"))
    return _claim(state, account, _as_int(p.get("amount"), 0), _as_proof(p.get("proof")), "AIRDROP_CLAIM_FOR")


def _apply_campaign_init(state: Json, env: TxEnvelope) -> Json:
    p = env.payload
    root = p.get("root")
    deadline = _as_int(p.get("deadline"), 0)
    total_allocated = _as_int(p.get("total_allocated"), 0)

    if not is_valid_root(root):
        raise ValidationError("invalid_root", {"root": root})
    now = _now(state)
    if deadline <= now:
        raise ValidationError("invalid_deadline", {"deadline": deadline, "now": now})

    _ensure_airdrop(state)
    c = AirdropCampaign(
        root=normalize_hex(root) or "",
        deadline=deadline,
        total_allocated=total_allocated,
        total_claimed=0,
        active=True,
    )
    _store(state, c)
    return {
        "applied": "AIRDROP_CAMPAIGN_INIT",
        "events": [
            {
                "event": "campaign_initialized",
                "root": c.root,
                "deadline": deadline,
                "total_allocated": total_allocated,
            }
        ],
    }


def _apply_root_update(state: Json, env: TxEnvelope) -> Json:
    c = _require_campaign(state)
    root = env.payload.get("root")
    if not is_valid_root(root):
        raise ValidationError("invalid_root", {"root": root})
    now = _now(state)
    if now >= c.deadline:
        raise StateError("deadline_passed", {"deadline": c.deadline, "now": now})

    old = c.root
    c.root = normalize_hex(root) or ""
    _store(state, c)
    return {
        "applied": "AIRDROP_ROOT_UPDATE",
        "events": [{"event": "root_updated", "old": old, "new": c.root}],
    }


def _apply_recover(state: Json, env: TxEnvelope) -> Json:
    c = _require_campaign(state)
    to = _as_str(env.payload.get("to"))
    if is_null_account(to):
        raise ValidationError("zero_address", {"field": "to"})
    now = _now(state)
    if now < c.deadline:
        raise StateError("deadline_not_reached", {"deadline": c.deadline, "now": now})

    vault = airdrop_vault(state)
    remaining = balance_of(state, vault.account_id)
    events = system_payout(state, vault, to, remaining) if remaining > 0 else []

    c.active = False
    _store(state, c)
    events.append({"event": "unclaimed_recovered", "to": to, "amount": remaining})
    return {"applied": "AIRDROP_RECOVER", "recovered": remaining, "events": events}


def _apply_active_set(state: Json, env: TxEnvelope) -> Json:
    c = _require_campaign(state)
    active = bool(env.payload.get("active", False))
    c.active = active
    _store(state, c)
    return {
        "applied": "AIRDROP_ACTIVE_SET",
        "events": [{"event": "campaign_active_set", "active": active, "changer": env.signer}],
    }


AIRDROP_TX_TYPES = {
    "AIRDROP_CAMPAIGN_INIT",
    "AIRDROP_CLAIM",
    "AIRDROP_CLAIM_FOR",
    "AIRDROP_ROOT_UPDATE",
    "AIRDROP_RECOVER",
    "AIRDROP_ACTIVE_SET",
}


def apply_airdrop(state: Json, env: TxEnvelope) -> Optional[Json]:
    t = _as_str(env.tx_type).upper()
    if t not in AIRDROP_TX_TYPES:
        return None

    if t == "AIRDROP_CAMPAIGN_INIT":
        return _apply_campaign_init(state, env)
    if t == "AIRDROP_CLAIM":
        return _apply_claim(state, env)
    if t == "AIRDROP_CLAIM_FOR":
        return _apply_claim_for(state, env)
    if t == "AIRDROP_ROOT_UPDATE":
        return _apply_root_update(state, env)
    if t == "AIRDROP_RECOVER":
        return _apply_recover(state, env)
    if t == "AIRDROP_ACTIVE_SET":
        return _apply_active_set(state, env)
    return None


__all__ = ["AIRDROP_TX_TYPES", "apply_airdrop", "can_claim", "claim_preflight"]
