from __future__ import annotations

"""Transaction payload schemas.

Every supported tx type has a strict pydantic model here (unknown keys are
rejected, amounts and times are non-negative ints). Admission runs these
before apply, so appliers can assume the payload has the right shape and
only have to enforce semantics (zero address, zero amount, balances, ...).

Address fields accept the empty string: an empty or null
recipient is a semantic error with its own reason (zero_address /
invalid_recipient), raised by the applier.
"""

from typing import Annotated, Any, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError

Json = Dict[str, Any]

NonNegInt = Annotated[int, Field(ge=0)]


# ---------------------------------------------------------------------------
# Base Models
# ---------------------------------------------------------------------------


class _StrictModel(BaseModel):
    """Strict model: reject unknown keys."""

    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------------
# Settlement / tax policy
# ---------------------------------------------------------------------------


class TransferPayload(_StrictModel):
    to: str
    amount: NonNegInt


class TaxRateSetPayload(_StrictModel):
    rate_bps: NonNegInt


class TaxReservoirSetPayload(_StrictModel):
    reservoir: str


class TaxExemptSetPayload(_StrictModel):
    account: str
    exempt: bool


# ---------------------------------------------------------------------------
# Rewards
# ---------------------------------------------------------------------------


class RewardDistributePayload(_StrictModel):
    recipient: str
    amount: NonNegInt
    activity_id: str = ""


class RewardBatchDistributePayload(_StrictModel):
    recipients: List[str]
    amounts: List[NonNegInt]
    activity_ids: List[str]


# ---------------------------------------------------------------------------
# Vesting
# ---------------------------------------------------------------------------


class VestingCreatePayload(_StrictModel):
    beneficiary: str
    amount: NonNegInt
    start: Optional[NonNegInt] = None
    cliff_duration: Optional[NonNegInt] = None
    vesting_duration: Optional[NonNegInt] = None
    revocable: bool = False


class VestingReleasePayload(_StrictModel):
    beneficiary: Optional[str] = None


class VestingRevokePayload(_StrictModel):
    beneficiary: str


# ---------------------------------------------------------------------------
# Airdrop
# ---------------------------------------------------------------------------


class AirdropCampaignInitPayload(_StrictModel):
    root: str
    deadline: NonNegInt
    total_allocated: NonNegInt


class AirdropClaimPayload(_StrictModel):
    amount: NonNegInt
    proof: List[str] = Field(default_factory=list)


class AirdropClaimForPayload(_StrictModel):
    account: str
    amount: NonNegInt
    proof: List[str] = Field(default_factory=list)


class AirdropRootUpdatePayload(_StrictModel):
    root: str


class AirdropRecoverPayload(_StrictModel):
    to: str


class AirdropActiveSetPayload(_StrictModel):
    active: bool


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class PauseSetPayload(_StrictModel):
    paused: bool


# ---------------------------------------------------------------------------
# Tx type -> schema mapping
# ---------------------------------------------------------------------------

Schema = Type[BaseModel]

_SCHEMA_BY_TX_TYPE: Dict[str, Schema] = {
    # Settlement
    "TRANSFER": TransferPayload,
    "TAX_RATE_SET": TaxRateSetPayload,
    "TAX_RESERVOIR_SET": TaxReservoirSetPayload,
    "TAX_EXEMPT_SET": TaxExemptSetPayload,
    # Rewards
    "REWARD_DISTRIBUTE": RewardDistributePayload,
    "REWARD_BATCH_DISTRIBUTE": RewardBatchDistributePayload,
    # Vesting
    "VESTING_CREATE": VestingCreatePayload,
    "VESTING_RELEASE": VestingReleasePayload,
    "VESTING_REVOKE": VestingRevokePayload,
    # Airdrop
    "AIRDROP_CAMPAIGN_INIT": AirdropCampaignInitPayload,
    "AIRDROP_CLAIM": AirdropClaimPayload,
    "AIRDROP_CLAIM_FOR": AirdropClaimForPayload,
    "AIRDROP_ROOT_UPDATE": AirdropRootUpdatePayload,
    "AIRDROP_RECOVER": AirdropRecoverPayload,
    "AIRDROP_ACTIVE_SET": AirdropActiveSetPayload,
    # Protocol
    "PAUSE_SET": PauseSetPayload,
}


def schema_for(tx_type: str) -> Optional[Schema]:
    return _SCHEMA_BY_TX_TYPE.get(str(tx_type or "").strip().upper())


def validate_payload(*, tx_type: str, payload: Any) -> Tuple[bool, str, str, Optional[Dict[str, Any]]]:
    """Validate payload against its tx type's schema.

    Returns: (ok, code, reason, details)
    """
    sch = schema_for(tx_type)
    if sch is None:
        return False, "invalid_tx", "unknown_tx_type", {"tx_type": tx_type}

    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        return False, "invalid_payload", "schema_invalid", {"errors": ["payload_must_be_object"]}

    try:
        sch.model_validate(payload)
    except ValidationError as ve:
        errors = [
            {"loc": [str(p) for p in e.get("loc", ())], "msg": str(e.get("msg", "")), "type": str(e.get("type", ""))}
            for e in ve.errors()
        ]
        return False, "invalid_payload", "schema_invalid", {"tx_type": tx_type, "errors": errors}
    return True, "", "", None


__all__ = ["schema_for", "validate_payload"]
