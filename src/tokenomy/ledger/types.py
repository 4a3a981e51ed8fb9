"""tokenomy.ledger.types

Typed records over the JSON-backed state document.

The state itself stays a plain dict (so it can be deep-copied for atomic apply
and persisted as one canonical JSON row). These records are the typed view
that apply modules read and write through:

  - SystemAccount: explicit handle for component-owned balances (reward pool,
    vaults, treasury). Payouts from a SystemAccount are tax-free by type, not
    by whatever the exemption set currently says.
  - VestingSchedule: one per beneficiary, never deleted.
  - AirdropCampaign: singleton per deployment.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

Json = Dict[str, Any]


def _coerce_int(v: Any, *, field: str) -> int:
    try:
        # bool is an int subclass; disallow it explicitly
        if isinstance(v, bool):
            raise ValueError("bool is not a valid int")
        return int(v)
    except Exception as e:
        raise ValueError(f"schema error: field '{field}' must be int-coercible (got {type(v).__name__})") from e


def _coerce_str(v: Any, *, field: str) -> str:
    try:
        return str(v) if v is not None else ""
    except Exception as e:
        raise ValueError(f"schema error: field '{field}' must be str-coercible (got {type(v).__name__})") from e


@dataclass(frozen=True, slots=True)
class SystemAccount:
    """A component-owned balance (reward pool, vesting vault, airdrop vault, treasury)."""

    account_id: str
    role: str

    def __str__(self) -> str:
        return self.account_id


@dataclass(slots=True)
class VestingSchedule:
    beneficiary: str
    total_amount: int
    released: int
    start: int
    cliff_duration: int
    vesting_duration: int
    revocable: bool
    revoked: bool = False

    @property
    def cliff_end(self) -> int:
        return self.start + self.cliff_duration

    @property
    def end(self) -> int:
        return self.start + self.vesting_duration

    def vested_at(self, now: int) -> int:
        """Amount unlocked at `now`.

        Nothing unlocks before the cliff ends, and exactly 0 at the cliff
        boundary. From there the unlock is linear over the post-cliff window
        up to total_amount at `end`. A revoked schedule's total_amount is the
        figure frozen at revoke time.
        """
        if self.revoked:
            return self.total_amount
        t = int(now)
        if t < self.cliff_end:
            return 0
        if t >= self.end:
            return self.total_amount
        window = self.vesting_duration - self.cliff_duration
        return (self.total_amount * (t - self.cliff_end)) // window

    def releasable_at(self, now: int) -> int:
        return max(self.vested_at(now) - self.released, 0)

    @classmethod
    def from_json(cls, beneficiary: str, raw: Any) -> "VestingSchedule":
        if not isinstance(raw, dict):
            raise ValueError(f"schema error: vesting schedule for '{beneficiary}' must be dict")
        return cls(
            beneficiary=_coerce_str(beneficiary, field="beneficiary"),
            total_amount=_coerce_int(raw.get("total_amount", 0), field="total_amount"),
            released=_coerce_int(raw.get("released", 0), field="released"),
            start=_coerce_int(raw.get("start", 0), field="start"),
            cliff_duration=_coerce_int(raw.get("cliff_duration", 0), field="cliff_duration"),
            vesting_duration=_coerce_int(raw.get("vesting_duration", 0), field="vesting_duration"),
            revocable=bool(raw.get("revocable", False)),
            revoked=bool(raw.get("revoked", False)),
        )

    def to_json(self) -> Json:
        out = asdict(self)
        out.pop("beneficiary", None)
        return out


@dataclass(slots=True)
class AirdropCampaign:
    root: str
    deadline: int
    total_allocated: int
    total_claimed: int = 0
    active: bool = True

    @classmethod
    def from_json(cls, raw: Any) -> Optional["AirdropCampaign"]:
        if not isinstance(raw, dict):
            return None
        return cls(
            root=_coerce_str(raw.get("root"), field="root"),
            deadline=_coerce_int(raw.get("deadline", 0), field="deadline"),
            total_allocated=_coerce_int(raw.get("total_allocated", 0), field="total_allocated"),
            total_claimed=_coerce_int(raw.get("total_claimed", 0), field="total_claimed"),
            active=bool(raw.get("active", False)),
        )

    def to_json(self) -> Json:
        return asdict(self)


__all__ = ["AirdropCampaign", "Json", "SystemAccount", "VestingSchedule"]
