# src/tokenomy/runtime/state_invariants.py
from __future__ import annotations

"""State invariants / normalization helpers.

Token state is a nested JSON-like dict that is mutated deterministically by
apply_* modules. This module is the single place that:

  - validates the state is dict-like and carries its core containers
  - checks the bookkeeping invariants after every operation

A failed check raises InvariantError. The executor discards the operation
and logs it; nothing here attempts to repair state.
"""

from collections.abc import MutableMapping
from typing import Any, Dict, List

from tokenomy.ledger.constants import VESTING_VAULT_ACCOUNT_ID
from tokenomy.runtime.errors import InvariantError

Json = Dict[str, Any]


def ensure_state(st: Any) -> Json:
    """Ensure `st` is a dict and contains core keys.

    Raises:
        TypeError: if st is not a MutableMapping
    """
    if not isinstance(st, MutableMapping):
        raise TypeError(f"state must be MutableMapping, got {type(st)}")

    for key in ("accounts", "params", "ledger"):
        v = st.get(key)
        if v is None:
            st[key] = {}
        elif not isinstance(v, dict):
            # Fail closed: do not attempt to coerce arbitrary types.
            raise TypeError(f"state['{key}'] must be dict, got {type(v)}")

    return st  # type: ignore[return-value]


def invariant_violations(st: Json) -> List[str]:
    out: List[str] = []
    accounts = st.get("accounts") if isinstance(st.get("accounts"), dict) else {}
    ledger = st.get("ledger") if isinstance(st.get("ledger"), dict) else {}

    total = 0
    for aid, acct in accounts.items():
        bal = int(acct.get("balance", 0)) if isinstance(acct, dict) else 0
        if bal < 0:
            out.append(f"negative balance: {aid}={bal}")
        total += bal

    supply = int(ledger.get("total_supply", 0) or 0)
    if total != supply:
        out.append(f"sum of balances {total} != total_supply {supply}")

    vesting = st.get("vesting") if isinstance(st.get("vesting"), dict) else {}
    vault = str(vesting.get("vault_account") or VESTING_VAULT_ACCOUNT_ID)
    committed = int(vesting.get("committed", 0) or 0)
    vault_acct = accounts.get(vault) if isinstance(accounts.get(vault), dict) else {}
    vault_bal = int(vault_acct.get("balance", 0) or 0)
    if committed < 0:
        out.append(f"negative vesting commitment: {committed}")
    if committed > vault_bal:
        out.append(f"vesting commitment {committed} exceeds vault balance {vault_bal}")

    return out


def check_invariants(st: Json) -> None:
    problems = invariant_violations(st)
    if problems:
        raise InvariantError("; ".join(problems))


__all__ = ["check_invariants", "ensure_state", "invariant_violations"]
