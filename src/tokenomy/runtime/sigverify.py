# src/tokenomy/runtime/sigverify.py

from __future__ import annotations

from tokenomy.crypto.sig import canonical_tx_message, verify_ed25519_signature
from tokenomy.ledger.state import LedgerView
from tokenomy.runtime.tx_admission_types import TxEnvelope


def signatures_required(ledger: LedgerView) -> bool:
    return bool(ledger.get_param("require_signatures", True))


def verify_tx_signature(ledger: LedgerView, env: TxEnvelope) -> bool:
    """Check env.sig against the signer's active keys.

    - params.require_signatures false: always True (absent means required).
    - otherwise one active key of the signer must verify the signature;
      a signer with no active keys fails closed.
    """
    if not env.signer:
        return False
    if not signatures_required(ledger):
        return True
    if not env.sig.strip():
        return False

    keys = ledger.get_active_keys(env.signer)
    if not keys:
        return False

    msg = canonical_tx_message(**env.signing_fields())
    return any(verify_ed25519_signature(message=msg, sig=env.sig, pubkey=pk) for pk in keys)


__all__ = ["signatures_required", "verify_tx_signature"]
