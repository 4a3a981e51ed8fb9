# src/tokenomy/runtime/executor_boot.py

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from tokenomy.env import load_dotenv_if_present
from tokenomy.runtime.chain_config import ChainConfig, load_chain_config
from tokenomy.runtime.executor import TokenExecutor
from tokenomy.runtime.genesis_config import GenesisConfig, GenesisState, build_genesis, load_genesis
from tokenomy.runtime.sigverify import signatures_required


def unsigned_txs_allowed(cfg: ChainConfig) -> bool:
    """Unsigned txs are allowed only in dev, or testnet with TOKENOMY_UNSAFE_DEV=1.

    Without signatures the envelope's `signer` is trusted as-is, so a prod
    ledger that does not require them would let any caller act as any
    capability holder.
    """
    mode = str(cfg.mode or "").strip().lower()
    if mode == "dev":
        return True
    unsafe = (os.environ.get("TOKENOMY_UNSAFE_DEV") or "").strip()
    return mode == "testnet" and unsafe == "1"


def _refuse_unsigned(cfg: ChainConfig, where: str) -> None:
    raise ValueError(
        f"{where} has require_signatures disabled; refusing to start in {cfg.mode!r} mode "
        "(unsigned txs need mode=dev, or mode=testnet with TOKENOMY_UNSAFE_DEV=1)"
    )


def _genesis_for(cfg: ChainConfig) -> Optional[GenesisState]:
    """Genesis is only needed for a fresh database."""
    db_has_state = bool(cfg.db_path) and Path(cfg.db_path).is_file()
    if cfg.genesis_path:
        gcfg = load_genesis(cfg.genesis_path)
        if not gcfg.require_signatures and not unsigned_txs_allowed(cfg):
            _refuse_unsigned(cfg, f"genesis {cfg.genesis_path!r}")
        return build_genesis(gcfg)
    if db_has_state:
        return None
    if cfg.mode == "prod":
        raise ValueError("genesis_path is required to start a fresh prod ledger")
    # dev/testnet: an empty default genesis (whole supply in the treasury)
    return build_genesis(GenesisConfig(chain_id=cfg.chain_id, require_signatures=not unsigned_txs_allowed(cfg)))


def build_executor(cfg: Optional[ChainConfig] = None) -> TokenExecutor:
    """
    Build a TokenExecutor from an explicit config or, if omitted, from
    .env + TOKENOMY_CONFIG_PATH + TOKENOMY_* environment variables.

    Raises ValueError when the ledger would run without signature checks
    outside dev (see unsigned_txs_allowed).
    """
    if cfg is None:
        load_dotenv_if_present()
        cfg = load_chain_config()
    ex = TokenExecutor(genesis=_genesis_for(cfg), db_path=cfg.db_path or None)
    if not signatures_required(ex.view()) and not unsigned_txs_allowed(cfg):
        _refuse_unsigned(cfg, f"persisted ledger {cfg.db_path!r}")
    return ex


__all__ = ["build_executor", "unsigned_txs_allowed"]
