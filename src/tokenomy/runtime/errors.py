from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

Json = Dict[str, Any]


@dataclass
class ApplyError(Exception):
    """Canonical error type for domain apply and dispatch failures."""

    code: str
    reason: str
    details: Any | None = None

    def __str__(self) -> str:  # pragma: no cover
        if self.details is None:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"

    def to_json(self) -> Json:
        return {"code": self.code, "reason": self.reason, "details": self.details}


class ValidationError(ApplyError):
    """Caller-correctable input problem (zero address/amount, arity, durations, roots)."""

    def __init__(self, reason: str, details: Optional[Json] = None) -> None:
        super().__init__("invalid_payload", reason, details)


class StateError(ApplyError):
    """Operation conflicts with current state (balances, schedules, campaign phase)."""

    def __init__(self, reason: str, details: Optional[Json] = None) -> None:
        super().__init__("invalid_state", reason, details)


class ProofError(ApplyError):
    """Membership proof does not verify against the committed root."""

    def __init__(self, reason: str = "invalid_proof", details: Optional[Json] = None) -> None:
        super().__init__("invalid_proof", reason, details)


class AuthorizationError(ApplyError):
    """Missing capability, bad signature, or system paused."""

    def __init__(self, reason: str, details: Optional[Json] = None) -> None:
        super().__init__("forbidden", reason, details)


class InvariantError(RuntimeError):
    """Internal bookkeeping invariant broken. Never expected; never swallowed."""


__all__ = [
    "ApplyError",
    "AuthorizationError",
    "InvariantError",
    "ProofError",
    "StateError",
    "ValidationError",
]
