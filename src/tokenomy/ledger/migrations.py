# src/tokenomy/ledger/migrations.py
from __future__ import annotations

from typing import Any, Callable, Dict

from tokenomy.ledger.constants import (
    AIRDROP_VAULT_ACCOUNT_ID,
    REWARD_POOL_ACCOUNT_ID,
    TREASURY_ACCOUNT_ID,
    VESTING_VAULT_ACCOUNT_ID,
)

Json = Dict[str, Any]

# Increment this when you add a new migration step.
CURRENT_STATE_VERSION = 2


def _as_int(v: Any, default: int = 0) -> int:
    try:
        if isinstance(v, bool):
            return default
        return int(v)
    except Exception:
        return default


def _ensure_dict(root: Json, key: str) -> Json:
    v = root.get(key)
    if not isinstance(v, dict):
        v = {}
        root[key] = v
    return v


def _ensure_list(root: Json, key: str) -> list:
    v = root.get(key)
    if not isinstance(v, list):
        v = []
        root[key] = v
    return v


def _ensure_int(root: Json, key: str, default: int = 0) -> int:
    x = _as_int(root.get(key, default), default)
    root[key] = int(x)
    return int(x)


def _ensure_str(root: Json, key: str, default: str = "") -> str:
    v = root.get(key)
    s = str(v) if v is not None and str(v) else str(default)
    root[key] = s
    return s


def _ensure_bool(root: Json, key: str, default: bool = False) -> bool:
    v = root.get(key, default)
    if isinstance(v, bool):
        root[key] = v
        return v
    if isinstance(v, (int, float)) and v in (0, 1):
        root[key] = bool(v)
        return bool(v)
    if isinstance(v, str):
        s = v.strip().lower()
        if s in {"1", "true", "yes", "y", "on"}:
            root[key] = True
            return True
        if s in {"0", "false", "no", "n", "off"}:
            root[key] = False
            return False
    root[key] = bool(default)
    return bool(default)


def _migrate_v0_to_v1(st: Json) -> Json:
    """
    v0 -> v1: introduce explicit state_version and normalize the core roots.

    v0 characteristics:
      - no 'state_version'
      - may have missing roots or wrong shapes
    """
    _ensure_str(st, "chain_id", "tokenomy-dev")
    _ensure_int(st, "height", 0)
    _ensure_int(st, "time", 0)

    params = _ensure_dict(st, "params")
    _ensure_bool(params, "paused", False)
    _ensure_bool(params, "require_signatures", True)
    _ensure_str(params, "treasury_account", TREASURY_ACCOUNT_ID)

    ledger = _ensure_dict(st, "ledger")
    _ensure_int(ledger, "total_supply", 0)
    _ensure_bool(ledger, "sealed", False)

    roles = _ensure_dict(st, "roles")
    _ensure_dict(roles, "capabilities")

    tp = _ensure_dict(st, "tax_policy")
    _ensure_int(tp, "rate_bps", 0)
    _ensure_str(tp, "reservoir", REWARD_POOL_ACCOUNT_ID)
    tp["exempt"] = sorted({str(x) for x in _ensure_list(tp, "exempt")})
    tp["protected"] = sorted({str(x) for x in _ensure_list(tp, "protected")})

    rewards = _ensure_dict(st, "rewards")
    _ensure_str(rewards, "pool_account", REWARD_POOL_ACCOUNT_ID)

    vesting = _ensure_dict(st, "vesting")
    _ensure_str(vesting, "vault_account", VESTING_VAULT_ACCOUNT_ID)
    _ensure_int(vesting, "committed", 0)
    _ensure_dict(vesting, "schedules")

    airdrop = _ensure_dict(st, "airdrop")
    _ensure_str(airdrop, "vault_account", AIRDROP_VAULT_ACCOUNT_ID)
    if not isinstance(airdrop.get("campaign"), dict):
        airdrop["campaign"] = None
    _ensure_dict(airdrop, "claimed")

    accounts = _ensure_dict(st, "accounts")
    for aid, acct in list(accounts.items()):
        if not isinstance(acct, dict):
            accounts[aid] = {}
            acct = accounts[aid]
        _ensure_int(acct, "balance", 0)
        _ensure_int(acct, "nonce", 0)
        _ensure_list(acct, "keys")

    st["state_version"] = 1
    return st


def _migrate_v1_to_v2(st: Json) -> Json:
    """
    v1 -> v2: reward accounting, explicit forfeit account, campaign active flag.

    v1 snapshots predate AIRDROP_ACTIVE_SET; a stored campaign there was live
    unless it had been swept, which v1 recorded as `recovered: true`.
    """
    rewards = _ensure_dict(st, "rewards")
    _ensure_int(rewards, "total_distributed", 0)
    by_recipient = _ensure_dict(rewards, "by_recipient")
    for rid in list(by_recipient.keys()):
        by_recipient[rid] = _as_int(by_recipient[rid], 0)

    params = _ensure_dict(st, "params")
    vesting = _ensure_dict(st, "vesting")
    _ensure_str(vesting, "forfeit_account", str(params.get("treasury_account") or TREASURY_ACCOUNT_ID))

    airdrop = _ensure_dict(st, "airdrop")
    campaign = airdrop.get("campaign")
    if isinstance(campaign, dict):
        recovered = bool(campaign.pop("recovered", False))
        if "active" not in campaign:
            campaign["active"] = not recovered
        _ensure_bool(campaign, "active", True)
        _ensure_int(campaign, "total_claimed", 0)

    st["state_version"] = 2
    return st


_MIGRATIONS: Dict[int, Callable[[Json], Json]] = {
    0: _migrate_v0_to_v1,
    1: _migrate_v1_to_v2,
}


def migrate_state_dict(raw: Any) -> Json:
    """
    Upgrade a raw persisted JSON dict to CURRENT_STATE_VERSION.

    - Best-effort: never raises for simple shape issues; it normalizes.
    - If raw isn't a dict, returns an empty vCURRENT state skeleton.
    """
    st: Json = raw if isinstance(raw, dict) else {}

    v = _as_int(st.get("state_version"), 0)
    if v > CURRENT_STATE_VERSION:
        # Future state created by a newer binary; refuse to downgrade silently.
        raise ValueError(
            f"Ledger state version {v} is newer than this binary supports (max {CURRENT_STATE_VERSION})."
        )

    while v < CURRENT_STATE_VERSION:
        step = _MIGRATIONS.get(v)
        if step is None:
            raise ValueError(f"No migration path from state_version={v} to {CURRENT_STATE_VERSION}.")
        st = step(st)
        v = _as_int(st.get("state_version"), v + 1)

    st["state_version"] = CURRENT_STATE_VERSION
    return st


__all__ = ["CURRENT_STATE_VERSION", "migrate_state_dict"]
