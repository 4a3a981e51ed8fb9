# src/tokenomy/runtime/domain_apply.py
# ---------------------------------------------------------------------------
# Public, stable import path for applying tx envelopes.
# ---------------------------------------------------------------------------

from __future__ import annotations

import copy
from typing import Any, Callable, Dict, List, Optional

from tokenomy.runtime.domain_dispatch import apply_tx
from tokenomy.runtime.errors import ApplyError
from tokenomy.runtime.gates import CapabilityService
from tokenomy.runtime.state_invariants import check_invariants
from tokenomy.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]
PreCommitHook = Callable[[Json, Json], None]


def _record_nonce(state: Json, env: TxEnvelope) -> None:
    """Store the signer's nonce. Only successful txs reach this."""
    acct = state.get("accounts", {}).get(env.signer)
    if not isinstance(acct, dict):
        return
    if int(env.nonce) > int(acct.get("nonce", 0) or 0):
        acct["nonce"] = int(env.nonce)


def apply_tx_atomic(
    state: Json,
    env: Any,
    *,
    caps: Optional[CapabilityService] = None,
    now: Optional[int] = None,
    pre_commit: Optional[List[PreCommitHook]] = None,
) -> Json:
    """Apply a tx with fail-atomic semantics.

    On success:
      - state is updated as if apply_tx() ran directly, the signer's nonce is
        recorded and `height` advances by one.

    On any exception (ApplyError, InvariantError, a raising pre_commit hook):
      - state remains unchanged, nonce included.

    pre_commit hooks receive (snapshot, receipt) after invariants pass and
    before the snapshot replaces `state`; raising from one aborts the tx.
    """
    env_norm: TxEnvelope = TxEnvelope.from_json(env)

    # Apply on a deep copy to guarantee atomicity.
    snapshot = copy.deepcopy(state)
    if now is not None:
        snapshot["time"] = int(now)

    receipt = apply_tx(snapshot, env_norm, caps=caps)
    _record_nonce(snapshot, env_norm)
    snapshot["height"] = int(snapshot.get("height", 0) or 0) + 1
    receipt["height"] = snapshot["height"]

    check_invariants(snapshot)

    for hook in pre_commit or []:
        hook(snapshot, receipt)

    # Commit by replacing contents in-place so callers holding references
    # to `state` see the updated view.
    state.clear()
    state.update(snapshot)
    return receipt


__all__ = ["ApplyError", "apply_tx", "apply_tx_atomic", "Json"]
