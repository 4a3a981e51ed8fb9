"""Tax-recycling settlement: the ledger's only value-movement primitive.

Every balance change in the system goes through settle_transfer() or its
typed wrapper system_payout(). The split rule:

    rate_bps == 0, or either side exempt   -> full amount to `to`
    otherwise                              -> tax = amount * rate_bps // 10_000
                                              net = amount - tax
                                              reservoir += tax, to += net

Tax always rounds down, so net + tax == amount exactly and the sum of all
balances never changes. The null sentinel is the mint/burn leg and is only
usable before the ledger is sealed at genesis.
"""

from __future__ import annotations

from typing import Any, Dict, List

from tokenomy.ledger.constants import (
    AIRDROP_VAULT_ACCOUNT_ID,
    BPS_DENOMINATOR,
    NULL_ACCOUNT,
    REWARD_POOL_ACCOUNT_ID,
    TREASURY_ACCOUNT_ID,
    VESTING_VAULT_ACCOUNT_ID,
    is_null_account,
)
from tokenomy.ledger.types import SystemAccount
from tokenomy.runtime.errors import InvariantError, StateError

Json = Dict[str, Any]


def _as_dict(x: Any) -> Json:
    return x if isinstance(x, dict) else {}


def _as_int(x: Any, default: int = 0) -> int:
    try:
        return int(x)
    except Exception:
        return int(default)


def _ensure_accounts(state: Json) -> Json:
    accts = state.get("accounts")
    if not isinstance(accts, dict):
        accts = {}
        state["accounts"] = accts
    return accts


def ensure_account(state: Json, account_id: str) -> Json:
    accts = _ensure_accounts(state)
    acct = accts.get(account_id)
    if not isinstance(acct, dict):
        acct = {"balance": 0, "nonce": 0, "keys": []}
        accts[account_id] = acct
    acct.setdefault("balance", 0)
    acct.setdefault("nonce", 0)
    acct.setdefault("keys", [])
    return acct


def ensure_tax_policy(state: Json) -> Json:
    tp = state.get("tax_policy")
    if not isinstance(tp, dict):
        tp = {}
        state["tax_policy"] = tp
    tp.setdefault("rate_bps", 0)
    tp.setdefault("reservoir", REWARD_POOL_ACCOUNT_ID)
    tp.setdefault("exempt", [])
    tp.setdefault("protected", [])
    return tp


def balance_of(state: Json, account_id: str) -> int:
    acct = _as_dict(_as_dict(state.get("accounts")).get(account_id))
    return _as_int(acct.get("balance"), 0)


def total_supply(state: Json) -> int:
    return _as_int(_as_dict(state.get("ledger")).get("total_supply"), 0)


def is_sealed(state: Json) -> bool:
    return bool(_as_dict(state.get("ledger")).get("sealed", False))


def is_exempt(state: Json, account_id: str) -> bool:
    tp = _as_dict(state.get("tax_policy"))
    exempt = tp.get("exempt")
    return isinstance(exempt, list) and account_id in exempt


def calculate_tax(amount: int, rate_bps: int) -> tuple[int, int]:
    """Return (tax, net). Tax rounds down."""
    amt = int(amount)
    rate = int(rate_bps)
    if amt <= 0 or rate <= 0:
        return 0, max(amt, 0)
    tax = (amt * rate) // BPS_DENOMINATOR
    return tax, amt - tax


# ---------------------------------------------------------------------------
# System account handles
# ---------------------------------------------------------------------------


def treasury(state: Json) -> SystemAccount:
    params = _as_dict(state.get("params"))
    aid = str(params.get("treasury_account") or TREASURY_ACCOUNT_ID)
    return SystemAccount(account_id=aid, role="treasury")


def reward_pool(state: Json) -> SystemAccount:
    rw = _as_dict(state.get("rewards"))
    aid = str(rw.get("pool_account") or REWARD_POOL_ACCOUNT_ID)
    return SystemAccount(account_id=aid, role="reward_pool")


def vesting_vault(state: Json) -> SystemAccount:
    vs = _as_dict(state.get("vesting"))
    aid = str(vs.get("vault_account") or VESTING_VAULT_ACCOUNT_ID)
    return SystemAccount(account_id=aid, role="vesting_vault")


def airdrop_vault(state: Json) -> SystemAccount:
    ad = _as_dict(state.get("airdrop"))
    aid = str(ad.get("vault_account") or AIRDROP_VAULT_ACCOUNT_ID)
    return SystemAccount(account_id=aid, role="airdrop_vault")


def system_accounts(state: Json) -> List[SystemAccount]:
    return [treasury(state), reward_pool(state), vesting_vault(state), airdrop_vault(state)]


# ---------------------------------------------------------------------------
# Transfer primitive
# ---------------------------------------------------------------------------


def _credit(state: Json, account_id: str, amount: int) -> None:
    acct = ensure_account(state, account_id)
    acct["balance"] = _as_int(acct.get("balance"), 0) + int(amount)


def _debit(state: Json, account_id: str, amount: int) -> None:
    acct = ensure_account(state, account_id)
    bal = _as_int(acct.get("balance"), 0)
    if bal < int(amount):
        raise StateError(
            "insufficient_balance",
            {"account": account_id, "balance": bal, "amount": int(amount)},
        )
    acct["balance"] = bal - int(amount)


def _mint_or_burn(state: Json, frm: str, to: str, amount: int) -> List[Json]:
    if is_sealed(state):
        raise StateError("supply_sealed", {"from": frm, "to": to, "amount": int(amount)})

    ledger = state.get("ledger")
    if not isinstance(ledger, dict):
        ledger = {"total_supply": 0, "sealed": False}
        state["ledger"] = ledger

    if is_null_account(frm) and is_null_account(to):
        raise StateError("invalid_recipient", {"from": frm, "to": to})

    if is_null_account(frm):
        _credit(state, to, amount)
        ledger["total_supply"] = _as_int(ledger.get("total_supply"), 0) + int(amount)
        return [{"event": "settlement", "from": NULL_ACCOUNT, "to": to, "amount": int(amount)}]

    _debit(state, frm, amount)
    ledger["total_supply"] = _as_int(ledger.get("total_supply"), 0) - int(amount)
    return [{"event": "settlement", "from": frm, "to": NULL_ACCOUNT, "amount": int(amount)}]


def settle_transfer(state: Json, frm: str, to: str, amount: int) -> List[Json]:
    """Move `amount` from `frm` to `to`, applying the tax policy.

    Returns the emitted events. Mutates `state` in place; callers are
    expected to run inside apply_tx_atomic so a raise discards everything.
    """
    amt = int(amount)
    if amt < 0:
        raise InvariantError(f"negative transfer amount: {amt}")

    if is_null_account(frm) or is_null_account(to):
        return _mint_or_burn(state, str(frm or NULL_ACCOUNT), str(to or NULL_ACCOUNT), amt)

    bal = balance_of(state, frm)
    if bal < amt:
        raise StateError("insufficient_balance", {"account": frm, "balance": bal, "amount": amt})
    if amt == 0:
        # nothing moves; no account records are created
        return [{"event": "settlement", "from": frm, "to": to, "amount": 0}]

    tp = ensure_tax_policy(state)
    rate = _as_int(tp.get("rate_bps"), 0)

    if rate == 0 or is_exempt(state, frm) or is_exempt(state, to):
        tax, net = 0, amt
    else:
        tax, net = calculate_tax(amt, rate)

    if net + tax != amt:
        raise InvariantError(f"tax split does not sum: net={net} tax={tax} amount={amt}")

    _debit(state, frm, amt)
    _credit(state, to, net)

    events: List[Json] = [{"event": "settlement", "from": frm, "to": to, "amount": net}]
    if tax > 0:
        reservoir = str(tp.get("reservoir") or REWARD_POOL_ACCOUNT_ID)
        _credit(state, reservoir, tax)
        events.append(
            {"event": "tax_collected", "from": frm, "to": to, "tax": tax, "destination": reservoir}
        )
    return events


def system_payout(state: Json, source: SystemAccount, to: str, amount: int) -> List[Json]:
    """Pay out of a component-owned balance. Never taxed."""
    amt = int(amount)
    if amt < 0:
        raise InvariantError(f"negative payout amount: {amt}")
    if is_null_account(to):
        raise StateError("invalid_recipient", {"from": source.account_id, "to": to})

    if amt > 0:
        _debit(state, source.account_id, amt)
        _credit(state, to, amt)
    return [{"event": "settlement", "from": source.account_id, "to": to, "amount": amt}]


__all__ = [
    "airdrop_vault",
    "balance_of",
    "calculate_tax",
    "ensure_account",
    "ensure_tax_policy",
    "is_exempt",
    "is_sealed",
    "reward_pool",
    "settle_transfer",
    "system_accounts",
    "system_payout",
    "total_supply",
    "treasury",
    "vesting_vault",
]
