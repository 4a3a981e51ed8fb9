# src/tokenomy/runtime/gates.py
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Protocol, runtime_checkable

from tokenomy.runtime.errors import AuthorizationError

Json = Dict[str, Any]


class Capability(str, Enum):
    TAX_ADMIN = "tax_admin"
    REWARD_DISTRIBUTOR = "reward_distributor"
    VESTING_ADMIN = "vesting_admin"
    AIRDROP_ADMIN = "airdrop_admin"
    PAUSER = "pauser"


KNOWN_CAPABILITIES = frozenset(c.value for c in Capability)


@runtime_checkable
class CapabilityService(Protocol):
    def has_capability(self, account: str, capability: Capability) -> bool:
        ...


class StateCapabilities:
    """Capability lookup backed by state["roles"]["capabilities"] = {cap: [account, ...]}."""

    def __init__(self, state: Mapping[str, Any]) -> None:
        self._state = state

    def has_capability(self, account: str, capability: Capability) -> bool:
        roles = self._state.get("roles")
        caps = roles.get("capabilities") if isinstance(roles, dict) else None
        if not isinstance(caps, dict):
            return False
        holders = caps.get(Capability(capability).value)
        return isinstance(holders, list) and str(account) in holders


class StaticCapabilities:
    """Fixed capability table, for embedding and tests."""

    def __init__(self, grants: Mapping[str, List[str]]) -> None:
        self._grants = {Capability(k).value: set(v) for k, v in grants.items()}

    def has_capability(self, account: str, capability: Capability) -> bool:
        return str(account) in self._grants.get(Capability(capability).value, set())


# tx_type -> required capability (None: callable by any signer)
TX_CAPABILITIES: Dict[str, Optional[Capability]] = {
    "TRANSFER": None,
    "TAX_RATE_SET": Capability.TAX_ADMIN,
    "TAX_RESERVOIR_SET": Capability.TAX_ADMIN,
    "TAX_EXEMPT_SET": Capability.TAX_ADMIN,
    "REWARD_DISTRIBUTE": Capability.REWARD_DISTRIBUTOR,
    "REWARD_BATCH_DISTRIBUTE": Capability.REWARD_DISTRIBUTOR,
    "VESTING_CREATE": Capability.VESTING_ADMIN,
    "VESTING_RELEASE": None,
    "VESTING_REVOKE": Capability.VESTING_ADMIN,
    "AIRDROP_CAMPAIGN_INIT": Capability.AIRDROP_ADMIN,
    "AIRDROP_CLAIM": None,
    "AIRDROP_CLAIM_FOR": None,
    "AIRDROP_ROOT_UPDATE": Capability.AIRDROP_ADMIN,
    "AIRDROP_RECOVER": Capability.AIRDROP_ADMIN,
    "AIRDROP_ACTIVE_SET": Capability.AIRDROP_ADMIN,
    "PAUSE_SET": Capability.PAUSER,
}

SUPPORTED_TX_TYPES = frozenset(TX_CAPABILITIES.keys())


def required_capability(tx_type: str) -> Optional[Capability]:
    return TX_CAPABILITIES.get(str(tx_type or "").strip().upper())


def require_capability(caps: CapabilityService, *, caller: str, tx_type: str) -> None:
    """Raise unauthorized_caller unless `caller` holds the capability `tx_type` needs."""
    cap = required_capability(tx_type)
    if cap is None:
        return
    if not caps.has_capability(caller, cap):
        raise AuthorizationError(
            "unauthorized_caller",
            {"caller": caller, "capability": cap.value, "tx_type": tx_type},
        )


__all__ = [
    "Capability",
    "CapabilityService",
    "KNOWN_CAPABILITIES",
    "SUPPORTED_TX_TYPES",
    "StateCapabilities",
    "StaticCapabilities",
    "TX_CAPABILITIES",
    "require_capability",
    "required_capability",
]
