from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

Json = Dict[str, Any]


@dataclass(frozen=True)
class TxVerdict:
    """Admission outcome. `code`/`reason` follow the ApplyError taxonomy."""

    ok: bool
    code: str
    reason: str
    details: Optional[Json] = None

    @staticmethod
    def admit() -> "TxVerdict":
        return TxVerdict(True, "ok", "admitted", None)

    @staticmethod
    def reject(code: str, reason: str, details: Optional[Json] = None) -> "TxVerdict":
        return TxVerdict(False, code, reason, details)


@dataclass(frozen=True)
class TxEnvelope:
    """One mutating operation: `signer` is the caller, `payload` the operation arguments."""

    tx_type: str
    signer: str
    nonce: int = 0
    payload: Json = field(default_factory=dict)
    sig: str = ""

    @staticmethod
    def from_json(j: Any) -> "TxEnvelope":
        if isinstance(j, TxEnvelope):
            return j
        if not isinstance(j, Mapping):
            raise TypeError(f"tx envelope must be an object, got {type(j).__name__}")

        nonce = j.get("nonce", 0)
        if isinstance(nonce, bool) or not isinstance(nonce, (int, str, type(None))):
            raise ValueError(f"nonce must be an integer, got {nonce!r}")
        payload = j.get("payload")
        if payload is not None and not isinstance(payload, Mapping):
            raise ValueError("payload must be an object")

        return TxEnvelope(
            tx_type=str(j.get("tx_type") or "").strip().upper(),
            signer=str(j.get("signer") or "").strip(),
            nonce=int(nonce or 0),
            payload=dict(payload or {}),
            sig=str(j.get("sig") or ""),
        )

    def to_json(self) -> Json:
        return {
            "tx_type": self.tx_type,
            "signer": self.signer,
            "nonce": self.nonce,
            "payload": self.payload,
            "sig": self.sig,
        }

    def signing_fields(self) -> Json:
        """The fields a signature commits to (everything except `sig`)."""
        return {"tx_type": self.tx_type, "signer": self.signer, "nonce": self.nonce, "payload": self.payload}


__all__ = ["TxEnvelope", "TxVerdict"]
