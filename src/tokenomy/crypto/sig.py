# src/tokenomy/crypto/sig.py
from __future__ import annotations

"""Ed25519 signatures over tx envelopes.

A signature commits to the canonical JSON of {tx_type, signer, nonce, payload}
(sorted keys, no whitespace, UTF-8). Keys and signatures travel as hex; base64
and base64url are accepted on input.
"""

import base64
import binascii
import hashlib
import json
from typing import Any, Dict, Mapping, Tuple

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

Json = Dict[str, Any]

SEED_BYTES = 32


def decode_key_bytes(s: str) -> bytes:
    """Decode hex, else base64 / base64url. Raises ValueError."""
    s = str(s or "").strip()
    if not s:
        raise ValueError("empty key material")
    try:
        return bytes.fromhex(s[2:] if s.lower().startswith("0x") else s)
    except ValueError:
        pass
    try:
        padded = s + "=" * (-len(s) % 4)
        return base64.b64decode(padded.replace("-", "+").replace("_", "/"), validate=True)
    except binascii.Error as e:
        raise ValueError("not hex or base64") from e


def canonical_tx_message(*, tx_type: str, signer: str, nonce: int, payload: Mapping[str, Any]) -> bytes:
    obj = {
        "tx_type": str(tx_type),
        "signer": str(signer),
        "nonce": int(nonce),
        "payload": dict(payload) if isinstance(payload, Mapping) else {},
    }
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def load_private_key(privkey: str) -> Ed25519PrivateKey:
    raw = decode_key_bytes(privkey)
    # 64-byte expanded keys carry the seed first
    if len(raw) == 2 * SEED_BYTES:
        raw = raw[:SEED_BYTES]
    if len(raw) != SEED_BYTES:
        raise ValueError("ed25519 private key must be a 32-byte seed or a 64-byte expanded key")
    return Ed25519PrivateKey.from_private_bytes(raw)


def public_key_hex(key: Ed25519PrivateKey) -> str:
    return key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw).hex()


def sign_ed25519(*, message: bytes, privkey: str, encoding: str = "hex") -> str:
    """Sign `message`; returns the signature as hex (default) or base64 ("b64")."""
    sig = load_private_key(privkey).sign(message)
    if encoding == "hex":
        return sig.hex()
    if encoding in {"b64", "base64"}:
        return base64.b64encode(sig).decode("ascii")
    raise ValueError(f"unsupported signature encoding: {encoding!r}")


def verify_ed25519_signature(*, message: bytes, sig: str, pubkey: str) -> bool:
    try:
        key = Ed25519PublicKey.from_public_bytes(decode_key_bytes(pubkey))
        key.verify(decode_key_bytes(sig), message)
    except (InvalidSignature, ValueError):
        return False
    return True


def sign_tx_envelope_dict(*, tx: Mapping[str, Any], privkey: str, encoding: str = "hex") -> Json:
    """Return a copy of `tx` with `sig` set over its signing fields."""
    payload = tx.get("payload") if isinstance(tx.get("payload"), Mapping) else {}
    out: Json = dict(tx)
    out.update(
        tx_type=str(tx.get("tx_type") or ""),
        signer=str(tx.get("signer") or ""),
        nonce=int(tx.get("nonce") or 0),
        payload=payload,
    )
    msg = canonical_tx_message(
        tx_type=out["tx_type"], signer=out["signer"], nonce=out["nonce"], payload=payload
    )
    out["sig"] = sign_ed25519(message=msg, privkey=privkey, encoding=encoding)
    return out


def deterministic_keypair(*, label: str) -> Tuple[str, str]:
    """(pubkey_hex, seed_hex) derived from `label`. Local dev and tests only."""
    seed = hashlib.sha256(("tokenomy-ed25519:" + (label or "")).encode("utf-8")).digest()
    return public_key_hex(Ed25519PrivateKey.from_private_bytes(seed)), seed.hex()


__all__ = [
    "canonical_tx_message",
    "decode_key_bytes",
    "deterministic_keypair",
    "load_private_key",
    "public_key_hex",
    "sign_ed25519",
    "sign_tx_envelope_dict",
    "verify_ed25519_signature",
]
