# src/tokenomy/runtime/chain_config.py
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

Json = Dict[str, Any]


def _as_int(v: Any, default: int) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


@dataclass(frozen=True)
class ChainConfig:
    chain_id: str
    mode: str  # "dev" | "testnet" | "prod"

    # Single SQLite DB file path for all persistence; "" keeps state in memory.
    db_path: str
    genesis_path: str

    api_host: str
    api_port: int

    log_level: str


_ALLOWED_MODES = {"dev", "testnet", "prod"}
_ALLOWED_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def validate_chain_config(cfg: ChainConfig) -> None:
    """Fail-fast validation for operator config."""

    if not isinstance(cfg.chain_id, str) or not cfg.chain_id.strip():
        raise ValueError("chain_id must be a non-empty string")

    mode = str(cfg.mode or "").strip().lower()
    if mode not in _ALLOWED_MODES:
        raise ValueError(f"mode must be one of {_ALLOWED_MODES}; got: {cfg.mode!r}")

    if int(cfg.api_port) <= 0 or int(cfg.api_port) > 65535:
        raise ValueError(f"api_port must be 1..65535; got: {cfg.api_port}")

    if str(cfg.log_level or "").strip().upper() not in _ALLOWED_LOG_LEVELS:
        raise ValueError(f"log_level must be one of {_ALLOWED_LOG_LEVELS}; got: {cfg.log_level!r}")

    if mode == "prod" and not str(cfg.db_path or "").strip():
        raise ValueError("db_path is required in prod mode")

    if cfg.genesis_path and not Path(cfg.genesis_path).is_file():
        raise ValueError(f"genesis_path does not exist or is not a file: {cfg.genesis_path!r}")


def default_chain_config() -> ChainConfig:
    return ChainConfig(
        chain_id="tokenomy-dev",
        mode="dev",
        db_path="./data/tokenomy.db",
        genesis_path="",
        api_host="127.0.0.1",
        api_port=8000,
        log_level="INFO",
    )


def read_chain_config_file(path: str) -> ChainConfig:
    """Read a JSON or YAML config file over the defaults."""
    p = Path(path)
    raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("chain config must be a JSON/YAML object")

    d = default_chain_config()

    return ChainConfig(
        chain_id=_as_str(raw.get("chain_id"), d.chain_id),
        mode=_as_str(raw.get("mode"), d.mode),
        db_path=str(raw.get("db_path")) if raw.get("db_path") is not None else d.db_path,
        genesis_path=_as_str(raw.get("genesis_path"), d.genesis_path),
        api_host=_as_str(raw.get("api_host"), d.api_host),
        api_port=_as_int(raw.get("api_port"), d.api_port),
        log_level=_as_str(raw.get("log_level"), d.log_level),
    )


def _apply_env_overrides(cfg: ChainConfig) -> ChainConfig:
    env = os.environ
    return replace(
        cfg,
        chain_id=_as_str(env.get("TOKENOMY_CHAIN_ID"), cfg.chain_id),
        mode=_as_str(env.get("TOKENOMY_MODE"), cfg.mode).strip().lower(),
        db_path=env["TOKENOMY_DB_PATH"] if "TOKENOMY_DB_PATH" in env else cfg.db_path,
        genesis_path=_as_str(env.get("TOKENOMY_GENESIS_PATH"), cfg.genesis_path),
        api_host=_as_str(env.get("TOKENOMY_API_HOST"), cfg.api_host),
        api_port=_as_int(env.get("TOKENOMY_API_PORT"), cfg.api_port),
        log_level=_as_str(env.get("TOKENOMY_LOG_LEVEL"), cfg.log_level).strip().upper(),
    )


def load_chain_config(*, config_path: Optional[str] = None) -> ChainConfig:
    """Defaults, then the TOKENOMY_CONFIG_PATH file, then TOKENOMY_* env vars."""
    p = config_path or os.environ.get("TOKENOMY_CONFIG_PATH")
    cfg = read_chain_config_file(p) if p else default_chain_config()
    cfg = _apply_env_overrides(cfg)
    validate_chain_config(cfg)
    return cfg


__all__ = [
    "ChainConfig",
    "default_chain_config",
    "load_chain_config",
    "read_chain_config_file",
    "validate_chain_config",
]
