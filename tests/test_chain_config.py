from __future__ import annotations

import os
from dataclasses import replace
from pathlib import Path
from typing import Optional

import pytest

from tokenomy.env import load_dotenv_if_present, reset_dotenv_loaded_flag
from tokenomy.runtime.chain_config import (
    default_chain_config,
    load_chain_config,
    read_chain_config_file,
    validate_chain_config,
)
from tokenomy.runtime.executor_boot import build_executor
from tokenomy.runtime.sigverify import signatures_required
from tokenomy.testing.harness import ADMIN, tx
from tokenomy.testing.sigtools import pubkey_for, sign_tx_dict

_ENV_KEYS = (
    "TOKENOMY_CONFIG_PATH",
    "TOKENOMY_CHAIN_ID",
    "TOKENOMY_MODE",
    "TOKENOMY_DB_PATH",
    "TOKENOMY_GENESIS_PATH",
    "TOKENOMY_API_HOST",
    "TOKENOMY_API_PORT",
    "TOKENOMY_LOG_LEVEL",
    "TOKENOMY_UNSAFE_DEV",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for k in _ENV_KEYS:
        monkeypatch.delenv(k, raising=False)


def test_defaults_are_valid() -> None:
    cfg = load_chain_config()
    assert cfg == default_chain_config()
    assert cfg.mode == "dev"
    assert cfg.api_port == 8000


def test_env_overrides_win(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TOKENOMY_CHAIN_ID", "tokenomy-env")
    monkeypatch.setenv("TOKENOMY_MODE", "TESTNET")
    monkeypatch.setenv("TOKENOMY_DB_PATH", str(tmp_path / "x.db"))
    monkeypatch.setenv("TOKENOMY_API_PORT", "9100")
    monkeypatch.setenv("TOKENOMY_LOG_LEVEL", "debug")

    cfg = load_chain_config()
    assert cfg.chain_id == "tokenomy-env"
    assert cfg.mode == "testnet"
    assert cfg.db_path == str(tmp_path / "x.db")
    assert cfg.api_port == 9100
    assert cfg.log_level == "DEBUG"


def test_empty_db_path_env_means_in_memory(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TOKENOMY_DB_PATH", "")
    assert load_chain_config().db_path == ""


def test_prod_requires_db_path(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TOKENOMY_MODE", "prod")
    monkeypatch.setenv("TOKENOMY_DB_PATH", "")
    with pytest.raises(ValueError):
        load_chain_config()


def test_config_file_is_read_over_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    p = tmp_path / "chain.yaml"
    p.write_text("chain_id: from-file\napi_port: 8123\nlog_level: WARNING\n", encoding="utf-8")

    cfg = read_chain_config_file(str(p))
    assert cfg.chain_id == "from-file"
    assert cfg.api_port == 8123
    assert cfg.api_host == default_chain_config().api_host

    monkeypatch.setenv("TOKENOMY_CONFIG_PATH", str(p))
    monkeypatch.setenv("TOKENOMY_API_PORT", "8200")
    cfg = load_chain_config()
    assert cfg.chain_id == "from-file"
    assert cfg.api_port == 8200


@pytest.mark.parametrize(
    "field, value",
    [
        ("api_port", 0),
        ("api_port", 70000),
        ("mode", "staging"),
        ("log_level", "LOUD"),
        ("chain_id", ""),
        ("genesis_path", "/definitely/not/here.yaml"),
    ],
)
def test_invalid_config_is_rejected(field: str, value: object) -> None:
    with pytest.raises(ValueError):
        validate_chain_config(replace(default_chain_config(), **{field: value}))


def test_dotenv_is_loaded_once(tmp_path: Path) -> None:
    p = tmp_path / ".env"
    p.write_text("TOKENOMY_CHAIN_ID=from-dotenv\n", encoding="utf-8")

    reset_dotenv_loaded_flag()
    try:
        assert load_dotenv_if_present(str(p)) is True
        assert load_chain_config().chain_id == "from-dotenv"
        # second call is a no-op
        assert load_dotenv_if_present(str(p)) is False
    finally:
        os.environ.pop("TOKENOMY_CHAIN_ID", None)
        reset_dotenv_loaded_flag()


def test_dotenv_does_not_override_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    p = tmp_path / ".env"
    p.write_text("TOKENOMY_CHAIN_ID=from-dotenv\n", encoding="utf-8")
    monkeypatch.setenv("TOKENOMY_CHAIN_ID", "from-env")

    reset_dotenv_loaded_flag()
    try:
        load_dotenv_if_present(str(p))
        assert load_chain_config().chain_id == "from-env"
    finally:
        reset_dotenv_loaded_flag()


def test_build_executor_dev_in_memory() -> None:
    cfg = default_chain_config()

    ex = build_executor(replace(cfg, db_path="", chain_id="tokenomy-boot"))
    assert ex.chain_id == "tokenomy-boot"
    assert ex.balance_of("TREASURY") == ex.total_supply()
    assert ex.view().ledger["sealed"] is True


def test_build_executor_prod_fresh_db_needs_genesis(tmp_path: Path) -> None:
    cfg = replace(default_chain_config(), mode="prod", db_path=str(tmp_path / "t.db"))
    with pytest.raises(ValueError):
        build_executor(cfg)


def test_build_executor_reopens_existing_db_without_genesis(tmp_path: Path) -> None:
    db = str(tmp_path / "t.db")
    first = build_executor(replace(default_chain_config(), db_path=db))
    assert first.height == 0

    again = build_executor(replace(default_chain_config(), db_path=db))
    assert again.chain_id == first.chain_id
    assert again.total_supply() == first.total_supply()


def _write_genesis(path: Path, *, require_signatures: Optional[bool]) -> str:
    lines = [
        "chain_id: tokenomy-dev",
        "total_supply: 10000",
        "allocations:",
        "  reward_pool: 5000",
        "capabilities:",
        f"  reward_distributor: [{ADMIN}]",
        "keys:",
        f"  {ADMIN}: [\"{pubkey_for(ADMIN)}\"]",
    ]
    if require_signatures is not None:
        lines.append(f"require_signatures: {'true' if require_signatures else 'false'}")
    path.write_text("\n".join(lines), encoding="utf-8")
    return str(path)


def test_prod_genesis_requires_signatures_by_default(tmp_path: Path) -> None:
    genesis = _write_genesis(tmp_path / "genesis.yaml", require_signatures=None)
    cfg = replace(default_chain_config(), mode="prod", db_path=str(tmp_path / "t.db"), genesis_path=genesis)

    ex = build_executor(cfg)
    assert signatures_required(ex.view())

    unsigned = tx("REWARD_DISTRIBUTE", ADMIN, {"recipient": "mallory", "amount": 1000}, nonce=1)
    res = ex.submit_tx(unsigned)
    assert res["ok"] is False
    assert res["reason"] == "bad_signature"
    assert ex.balance_of("mallory") == 0

    assert ex.submit_tx(sign_tx_dict(unsigned))["ok"] is True
    assert ex.balance_of("mallory") == 1000


def test_prod_refuses_genesis_without_signatures(tmp_path: Path) -> None:
    genesis = _write_genesis(tmp_path / "genesis.yaml", require_signatures=False)
    db = tmp_path / "t.db"
    cfg = replace(default_chain_config(), mode="prod", db_path=str(db), genesis_path=genesis)

    with pytest.raises(ValueError) as ei:
        build_executor(cfg)
    assert "require_signatures" in str(ei.value)
    assert not db.exists()


def test_prod_refuses_to_reopen_unsigned_ledger(tmp_path: Path) -> None:
    db = str(tmp_path / "t.db")
    build_executor(replace(default_chain_config(), db_path=db))

    with pytest.raises(ValueError):
        build_executor(replace(default_chain_config(), mode="prod", db_path=db))


def test_testnet_unsigned_needs_unsafe_dev_flag(monkeypatch: pytest.MonkeyPatch) -> None:
    base = replace(default_chain_config(), mode="testnet", db_path="")
    assert signatures_required(build_executor(base).view())

    monkeypatch.setenv("TOKENOMY_UNSAFE_DEV", "1")
    assert not signatures_required(build_executor(base).view())
