from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from tokenomy.ledger.migrations import CURRENT_STATE_VERSION
from tokenomy.runtime.executor import ExecutorError, TokenExecutor
from tokenomy.runtime.genesis_config import build_genesis
from tokenomy.runtime.sqlite_db import SqliteDB, SqliteLedgerStore
from tokenomy.testing.harness import ADMIN, ALICE, BOB, ManualClock, make_executor, standard_genesis_config, tx


def _pragma(con: sqlite3.Connection, name: str) -> int | str:
    row = con.execute(f"PRAGMA {name};").fetchone()
    if row is None:
        raise AssertionError(f"missing pragma: {name}")
    return row[0]


def test_sqlite_operational_pragmas_are_applied(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TOKENOMY_MODE", "prod")
    monkeypatch.delenv("TOKENOMY_SQLITE_SYNCHRONOUS", raising=False)
    monkeypatch.setenv("TOKENOMY_SQLITE_BUSY_TIMEOUT_MS", "1234")
    monkeypatch.setenv("TOKENOMY_SQLITE_WAL_AUTOCHECKPOINT", "777")

    db = SqliteDB(path=str(tmp_path / "tokenomy.db"))
    db.init_schema()

    with db.connection() as con:
        assert str(_pragma(con, "journal_mode")).lower() == "wal"
        # FULL is the prod default.
        assert int(_pragma(con, "synchronous")) == 2
        assert int(_pragma(con, "foreign_keys")) == 1
        assert int(_pragma(con, "temp_store")) == 2
        assert int(_pragma(con, "busy_timeout")) == 1234
        assert int(_pragma(con, "wal_autocheckpoint")) == 777


def test_dev_mode_defaults_to_normal_sync(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TOKENOMY_MODE", "dev")
    monkeypatch.delenv("TOKENOMY_SQLITE_SYNCHRONOUS", raising=False)
    db = SqliteDB(path=str(tmp_path / "tokenomy.db"))
    with db.connection() as con:
        assert int(_pragma(con, "synchronous")) == 1


def test_state_and_events_survive_restart(tmp_path: Path) -> None:
    db_path = str(tmp_path / "data" / "tokenomy.db")
    ex = make_executor(db_path=db_path)
    ex.apply(tx("TRANSFER", ALICE, {"to": BOB, "amount": 1000}))
    ex.apply(tx("REWARD_DISTRIBUTE", ADMIN, {"recipient": BOB, "amount": 5}))
    before = ex.read_state()
    n_events = len(ex.events(limit=1000))

    again = TokenExecutor(db_path=db_path, clock=ManualClock())
    assert again.read_state() == before
    assert again.balance_of(BOB) == 985
    assert again.height == 2
    assert len(again.events(limit=1000)) == n_events

    taxes = again.events(event="tax_collected")
    assert len(taxes) == 1
    assert taxes[0]["tax"] == 20
    assert taxes[0]["tx_type"] == "TRANSFER"
    assert taxes[0]["height"] == 1


def test_events_paginate_by_seq(tmp_path: Path) -> None:
    ex = make_executor(db_path=str(tmp_path / "tokenomy.db"))
    first = ex.events(limit=2)
    assert [e["seq"] for e in first] == [1, 2]
    rest = ex.events(after=2, limit=100)
    assert rest[0]["seq"] == 3
    assert rest[-1]["event"] == "genesis_sealed"


def test_rejected_tx_is_not_persisted(tmp_path: Path) -> None:
    db_path = str(tmp_path / "tokenomy.db")
    ex = make_executor(db_path=db_path)
    n_events = len(ex.events(limit=1000))
    assert not ex.submit_tx(tx("TRANSFER", BOB, {"to": ALICE, "amount": 1}))["ok"]

    again = TokenExecutor(db_path=db_path)
    assert again.height == 0
    assert len(again.events(limit=1000)) == n_events


def test_chain_id_mismatch_refuses_to_start(tmp_path: Path) -> None:
    db_path = str(tmp_path / "tokenomy.db")
    make_executor(db_path=db_path)
    other = build_genesis(standard_genesis_config(chain_id="another-chain"))
    with pytest.raises(ExecutorError):
        TokenExecutor(genesis=other, db_path=db_path)


def test_old_snapshot_is_migrated_and_rewritten(tmp_path: Path) -> None:
    db_path = str(tmp_path / "tokenomy.db")
    st = build_genesis(standard_genesis_config()).state()
    st["state_version"] = 1
    del st["vesting"]["forfeit_account"]
    del st["rewards"]["total_distributed"]

    store = SqliteLedgerStore(db=SqliteDB(path=db_path))
    store.write(st)

    ex = TokenExecutor(db_path=db_path)
    assert ex.read_state()["state_version"] == CURRENT_STATE_VERSION
    assert ex.reward_stats()["total_distributed"] == 0

    persisted = store.read()
    assert persisted["state_version"] == CURRENT_STATE_VERSION
    assert persisted["vesting"]["forfeit_account"] == "TREASURY"


def test_schema_version_mismatch_refuses_to_start(tmp_path: Path) -> None:
    db = SqliteDB(path=str(tmp_path / "tokenomy.db"))
    db.init_schema()
    with db.write_tx() as con:
        con.execute("UPDATE meta SET value='99' WHERE key='schema_version';")
    with pytest.raises(RuntimeError):
        db.init_schema()
