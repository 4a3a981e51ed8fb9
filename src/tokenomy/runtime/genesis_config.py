# src/tokenomy/runtime/genesis_config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Tuple

import yaml

from tokenomy.ledger.constants import (
    AIRDROP_VAULT_ACCOUNT_ID,
    DEFAULT_TOTAL_SUPPLY,
    MAX_TAX_RATE_BPS,
    NULL_ACCOUNT,
    REWARD_POOL_ACCOUNT_ID,
    TREASURY_ACCOUNT_ID,
    VESTING_VAULT_ACCOUNT_ID,
    is_null_account,
)
from tokenomy.ledger.migrations import CURRENT_STATE_VERSION
from tokenomy.ledger.settlement import ensure_account, settle_transfer
from tokenomy.runtime.gates import KNOWN_CAPABILITIES
from tokenomy.runtime.state_invariants import check_invariants

Json = Dict[str, Any]


@dataclass(frozen=True, slots=True)
class GenesisConfig:
    chain_id: str = "tokenomy-dev"
    genesis_time: int = 0
    total_supply: int = DEFAULT_TOTAL_SUPPLY
    treasury: str = TREASURY_ACCOUNT_ID

    reward_pool_allocation: int = 0
    vesting_allocation: int = 0
    airdrop_allocation: int = 0
    account_allocations: Dict[str, int] = field(default_factory=dict)

    tax_rate_bps: int = 0
    tax_reservoir: str = REWARD_POOL_ACCOUNT_ID
    tax_exempt: List[str] = field(default_factory=list)

    capabilities: Dict[str, List[str]] = field(default_factory=dict)
    keys: Dict[str, List[str]] = field(default_factory=dict)
    require_signatures: bool = True


@dataclass(frozen=True, slots=True)
class GenesisState:
    """A fully built, sealed genesis state.

    Only build_genesis() produces one. The state is held as canonical JSON so
    the value cannot be mutated after construction; state() hands out a fresh
    copy every call.
    """

    chain_id: str
    state_json: str
    events: Tuple[Json, ...] = ()

    def state(self) -> Json:
        return json.loads(self.state_json)


def _as_int(v: Any, default: int) -> int:
    if v is None:
        return int(default)
    if isinstance(v, bool):
        raise ValueError(f"expected int, got bool: {v!r}")
    return int(v)


def _str_list(v: Any) -> List[str]:
    if not isinstance(v, list):
        return []
    return [str(x).strip() for x in v if str(x).strip()]


def genesis_config_from_dict(obj: Mapping[str, Any]) -> GenesisConfig:
    """Build a GenesisConfig from a parsed YAML/JSON mapping.

    Shape:
      chain_id: str
      genesis_time: int
      total_supply: int
      treasury: str
      allocations: {reward_pool: int, vesting: int, airdrop: int, accounts: {id: int}}
      tax: {rate_bps: int, reservoir: str, exempt: [id, ...]}
      capabilities: {tax_admin: [id, ...], ...}
      keys: {id: [pubkey_hex, ...]}
      require_signatures: bool (default true)
    """
    if not isinstance(obj, Mapping):
        raise ValueError("genesis config must be a mapping")

    d = GenesisConfig()
    alloc = obj.get("allocations") if isinstance(obj.get("allocations"), Mapping) else {}
    tax = obj.get("tax") if isinstance(obj.get("tax"), Mapping) else {}
    accts = alloc.get("accounts") if isinstance(alloc.get("accounts"), Mapping) else {}
    caps = obj.get("capabilities") if isinstance(obj.get("capabilities"), Mapping) else {}
    keys = obj.get("keys") if isinstance(obj.get("keys"), Mapping) else {}

    chain_id = str(obj.get("chain_id") or "").strip() or str(os.environ.get("TOKENOMY_CHAIN_ID", "")).strip()

    return GenesisConfig(
        chain_id=chain_id or d.chain_id,
        genesis_time=_as_int(obj.get("genesis_time"), d.genesis_time),
        total_supply=_as_int(obj.get("total_supply"), d.total_supply),
        treasury=str(obj.get("treasury") or d.treasury).strip(),
        reward_pool_allocation=_as_int(alloc.get("reward_pool"), 0),
        vesting_allocation=_as_int(alloc.get("vesting"), 0),
        airdrop_allocation=_as_int(alloc.get("airdrop"), 0),
        account_allocations={str(k): _as_int(v, 0) for k, v in accts.items()},
        tax_rate_bps=_as_int(tax.get("rate_bps"), d.tax_rate_bps),
        tax_reservoir=str(tax.get("reservoir") or d.tax_reservoir).strip(),
        tax_exempt=_str_list(tax.get("exempt")),
        capabilities={str(k): _str_list(v) for k, v in caps.items()},
        keys={str(k): _str_list(v) for k, v in keys.items()},
        require_signatures=bool(obj.get("require_signatures", True)),
    )


def load_genesis(path: str) -> GenesisConfig:
    """Load GenesisConfig from a YAML or JSON file (JSON is valid YAML)."""
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(str(p))

    obj = yaml.safe_load(p.read_text(encoding="utf-8"))
    if not isinstance(obj, dict):
        raise ValueError("genesis config must be a YAML/JSON object")
    return genesis_config_from_dict(obj)


def validate_genesis_config(cfg: GenesisConfig) -> None:
    """Fail-fast validation; raises ValueError."""
    if not cfg.chain_id.strip():
        raise ValueError("chain_id must be a non-empty string")
    if cfg.total_supply <= 0:
        raise ValueError(f"total_supply must be > 0; got: {cfg.total_supply}")
    if is_null_account(cfg.treasury):
        raise ValueError("treasury must not be the null account")
    if is_null_account(cfg.tax_reservoir):
        raise ValueError("tax.reservoir must not be the null account")
    if not (0 <= cfg.tax_rate_bps <= MAX_TAX_RATE_BPS):
        raise ValueError(f"tax.rate_bps must be 0..{MAX_TAX_RATE_BPS}; got: {cfg.tax_rate_bps}")

    amounts = [cfg.reward_pool_allocation, cfg.vesting_allocation, cfg.airdrop_allocation]
    amounts.extend(cfg.account_allocations.values())
    if any(a < 0 for a in amounts):
        raise ValueError("allocations must be non-negative")
    if sum(amounts) > cfg.total_supply:
        raise ValueError(f"allocations {sum(amounts)} exceed total_supply {cfg.total_supply}")
    for aid in cfg.account_allocations:
        if is_null_account(aid):
            raise ValueError("allocations.accounts must not include the null account")

    unknown = sorted(set(cfg.capabilities) - KNOWN_CAPABILITIES)
    if unknown:
        raise ValueError(f"unknown capabilities: {unknown}")


def _skeleton(cfg: GenesisConfig) -> Json:
    return {
        "state_version": CURRENT_STATE_VERSION,
        "chain_id": cfg.chain_id,
        "height": 0,
        "time": int(cfg.genesis_time),
        "params": {
            "paused": False,
            "require_signatures": bool(cfg.require_signatures),
            "treasury_account": cfg.treasury,
        },
        "ledger": {"total_supply": 0, "sealed": False},
        "accounts": {},
        "roles": {"capabilities": {k: sorted(set(v)) for k, v in cfg.capabilities.items()}},
        # rate stays 0 while allocations move; the configured rate is set last
        "tax_policy": {"rate_bps": 0, "reservoir": cfg.tax_reservoir, "exempt": [], "protected": []},
        "rewards": {"pool_account": REWARD_POOL_ACCOUNT_ID, "total_distributed": 0, "by_recipient": {}},
        "vesting": {
            "vault_account": VESTING_VAULT_ACCOUNT_ID,
            "committed": 0,
            "forfeit_account": cfg.treasury,
            "schedules": {},
        },
        "airdrop": {"vault_account": AIRDROP_VAULT_ACCOUNT_ID, "campaign": None, "claimed": {}},
    }


def build_genesis(cfg: GenesisConfig) -> GenesisState:
    """Mint, allocate, mark system accounts and seal.

    The supply is created through the settlement primitive's null path into the
    treasury, then moved out to the pool, vaults and configured accounts. Once
    sealed, the null path refuses to run, so total_supply is fixed.
    """
    validate_genesis_config(cfg)
    st = _skeleton(cfg)
    events: List[Json] = []

    events.extend(settle_transfer(st, NULL_ACCOUNT, cfg.treasury, cfg.total_supply))

    permanent = {cfg.treasury, REWARD_POOL_ACCOUNT_ID, VESTING_VAULT_ACCOUNT_ID, AIRDROP_VAULT_ACCOUNT_ID, cfg.tax_reservoir}
    tp = st["tax_policy"]
    tp["protected"] = sorted(permanent)
    tp["exempt"] = sorted(permanent | set(cfg.tax_exempt))

    for aid in sorted(permanent):
        ensure_account(st, aid)

    legs = [
        (REWARD_POOL_ACCOUNT_ID, cfg.reward_pool_allocation),
        (VESTING_VAULT_ACCOUNT_ID, cfg.vesting_allocation),
        (AIRDROP_VAULT_ACCOUNT_ID, cfg.airdrop_allocation),
    ]
    legs.extend(sorted(cfg.account_allocations.items()))
    for to, amount in legs:
        if amount > 0 and to != cfg.treasury:
            events.extend(settle_transfer(st, cfg.treasury, to, amount))

    for aid, pubkeys in sorted(cfg.keys.items()):
        acct = ensure_account(st, aid)
        acct["keys"] = [{"pubkey": pk, "active": True} for pk in pubkeys]

    tp["rate_bps"] = int(cfg.tax_rate_bps)
    st["ledger"]["sealed"] = True
    check_invariants(st)

    events.append({"event": "genesis_sealed", "total_supply": cfg.total_supply, "chain_id": cfg.chain_id})
    return GenesisState(
        chain_id=cfg.chain_id,
        state_json=json.dumps(st, sort_keys=True, separators=(",", ":")),
        events=tuple(events),
    )


__all__ = [
    "GenesisConfig",
    "GenesisState",
    "build_genesis",
    "genesis_config_from_dict",
    "load_genesis",
    "validate_genesis_config",
]
