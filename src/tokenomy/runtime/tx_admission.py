from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional

from tokenomy.ledger.state import LedgerView
from tokenomy.runtime.errors import ApplyError, AuthorizationError, ValidationError
from tokenomy.runtime.gates import SUPPORTED_TX_TYPES
from tokenomy.runtime.sigverify import signatures_required, verify_tx_signature
from tokenomy.runtime.tx_admission_types import TxEnvelope, TxVerdict
from tokenomy.runtime.tx_schema import validate_payload

Json = Dict[str, Any]


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None:
        return int(default)
    try:
        return int(str(v).strip())
    except Exception:
        return int(default)


def _json_size_bytes(obj: Any) -> int:
    try:
        return len(json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8"))
    except (TypeError, ValueError):
        return -1


def admit_tx(tx: Any, ledger: LedgerView) -> TxVerdict:
    """Stateless shape checks plus signer checks against a read-only view.

    Order: envelope size, tx type, payload schema, then (only when the chain
    requires signatures) nonce and signature.
    """
    max_tx_bytes = _env_int("TOKENOMY_MAX_TX_ENVELOPE_BYTES", 256 * 1024)
    raw = tx.to_json() if isinstance(tx, TxEnvelope) else tx
    env_size = _json_size_bytes(raw)
    if env_size < 0:
        return TxVerdict.reject("invalid_payload", "schema_invalid", {"errors": ["envelope_not_json"]})
    if env_size > int(max_tx_bytes):
        return TxVerdict.reject(
            "invalid_payload",
            "schema_invalid",
            {"errors": ["tx_envelope_exceeds_size_limit"], "bytes": env_size, "max_bytes": int(max_tx_bytes)},
        )

    try:
        env = TxEnvelope.from_json(tx)
    except (TypeError, ValueError) as e:
        return TxVerdict.reject("invalid_payload", "schema_invalid", {"errors": [str(e)]})

    if not env.tx_type:
        return TxVerdict.reject("invalid_tx", "unknown_tx_type", {"tx_type": ""})
    if env.tx_type not in SUPPORTED_TX_TYPES:
        return TxVerdict.reject("invalid_tx", "unknown_tx_type", {"tx_type": env.tx_type})
    if not env.signer.strip():
        return TxVerdict.reject("invalid_payload", "schema_invalid", {"errors": ["missing_signer"]})
    if int(env.nonce) < 0:
        return TxVerdict.reject("invalid_payload", "schema_invalid", {"errors": ["nonce_must_be_nonnegative"]})

    ok, code, reason, details = validate_payload(tx_type=env.tx_type, payload=env.payload)
    if not ok:
        return TxVerdict.reject(code, reason, details)

    if signatures_required(ledger):
        expected = ledger.get_nonce(env.signer) + 1
        if int(env.nonce) != expected:
            return TxVerdict.reject("forbidden", "bad_nonce", {"expected": expected, "got": int(env.nonce)})
        if not verify_tx_signature(ledger, env):
            return TxVerdict.reject(
                "forbidden",
                "bad_signature",
                {"signer": env.signer, "tx_type": env.tx_type},
            )

    return TxVerdict.admit()


def verdict_to_error(v: TxVerdict) -> Optional[ApplyError]:
    """Map a rejecting verdict onto the error taxonomy; None for admitted txs."""
    if v.ok:
        return None
    if v.code == "forbidden":
        return AuthorizationError(v.reason, v.details)
    if v.code == "invalid_payload":
        return ValidationError(v.reason, v.details)
    return ApplyError(v.code, v.reason, v.details)


__all__ = ["admit_tx", "verdict_to_error"]
