# src/tokenomy/runtime/sqlite_db.py
from __future__ import annotations

import os
import json
import sqlite3
import time
import random
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence

Json = Dict[str, Any]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _canon_json(obj: Any) -> str:
    """Canonical JSON encoding.

    Unknown types are not coerced (no default=str); a non-JSON value leaking
    into persisted state must fail loudly.
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _env_int(name: str, default: int) -> int:
    try:
        raw = str(os.environ.get(name, "")).strip()
        return int(raw) if raw else int(default)
    except Exception:
        return int(default)


class SqliteDB:
    """SQLite manager for the token executor.

    Design goals:
      - single durable DB file for the state snapshot + event log
      - cross-process safe (SQLite locks)
      - cross-thread safe by never sharing connections

    SQLite allows only one writer at a time; BEGIN IMMEDIATE can transiently
    fail with "database is locked", so write_tx() retries with a deadline.
    """

    SCHEMA_VERSION = 1

    def __init__(self, *, path: str) -> None:
        self.path = str(path)

    @staticmethod
    def _sqlite_synchronous_pragma() -> str:
        """Return a safe PRAGMA synchronous value.

        Defaults:
          - prod        -> FULL
          - dev/testnet -> NORMAL

        Override with TOKENOMY_SQLITE_SYNCHRONOUS in {OFF,NORMAL,FULL,EXTRA}.
        """
        mode = (os.environ.get("TOKENOMY_MODE") or "prod").strip().lower()
        default = "FULL" if mode == "prod" else "NORMAL"
        raw = (os.environ.get("TOKENOMY_SQLITE_SYNCHRONOUS") or default).strip().upper()

        if raw not in {"OFF", "NORMAL", "FULL", "EXTRA"}:
            raw = default
        return raw

    def ensure_parent_dir(self) -> None:
        p = Path(self.path)
        p.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        self.ensure_parent_dir()

        connect_timeout_s = float(_env_int("TOKENOMY_SQLITE_CONNECT_TIMEOUT_MS", 30_000)) / 1000.0

        con = sqlite3.connect(
            self.path,
            timeout=connect_timeout_s,
            isolation_level=None,  # we manage BEGIN/COMMIT ourselves
            check_same_thread=False,
        )
        con.row_factory = sqlite3.Row

        allow_non_wal = (os.environ.get("TOKENOMY_SQLITE_ALLOW_NON_WAL") or "").strip().lower() in {"1", "true"}
        row = con.execute("PRAGMA journal_mode=WAL;").fetchone()
        mode = str(row[0]).strip().lower() if row is not None else ""
        if mode and mode != "wal" and not allow_non_wal:
            con.close()
            raise RuntimeError(f"sqlite journal_mode is '{mode}', expected 'wal'")

        con.execute(f"PRAGMA synchronous={self._sqlite_synchronous_pragma()};")
        con.execute("PRAGMA foreign_keys=ON;")
        con.execute("PRAGMA temp_store=MEMORY;")

        wal_ckpt = max(1, _env_int("TOKENOMY_SQLITE_WAL_AUTOCHECKPOINT", 1000))
        con.execute(f"PRAGMA wal_autocheckpoint={wal_ckpt};")

        busy_ms = max(0, _env_int("TOKENOMY_SQLITE_BUSY_TIMEOUT_MS", int(connect_timeout_s * 1000)))
        con.execute(f"PRAGMA busy_timeout={busy_ms};")

        return con

    def init_schema(self) -> None:
        with self.write_tx() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS meta (
                  key TEXT PRIMARY KEY,
                  value TEXT NOT NULL
                );
                """
            )

            con.execute(
                """
                CREATE TABLE IF NOT EXISTS ledger_state (
                  id INTEGER PRIMARY KEY CHECK (id = 1),
                  height INTEGER NOT NULL,
                  chain_id TEXT NOT NULL,
                  state_json TEXT NOT NULL,
                  updated_ts_ms INTEGER NOT NULL
                );
                """
            )

            con.execute(
                """
                CREATE TABLE IF NOT EXISTS events (
                  seq INTEGER PRIMARY KEY AUTOINCREMENT,
                  height INTEGER NOT NULL,
                  tx_type TEXT NOT NULL,
                  event TEXT NOT NULL,
                  event_json TEXT NOT NULL,
                  ts INTEGER NOT NULL
                );
                """
            )
            con.execute("CREATE INDEX IF NOT EXISTS idx_events_height ON events(height);")
            con.execute("CREATE INDEX IF NOT EXISTS idx_events_event ON events(event);")

            row = con.execute("SELECT value FROM meta WHERE key='schema_version' LIMIT 1;").fetchone()
            if row is None:
                con.execute("INSERT INTO meta(key, value) VALUES('schema_version', ?);", (str(self.SCHEMA_VERSION),))
            else:
                try:
                    v = int(str(row["value"]))
                except ValueError:
                    v = 0
                if v != self.SCHEMA_VERSION:
                    raise RuntimeError(
                        f"sqlite schema_version mismatch: have={v} want={self.SCHEMA_VERSION}. "
                        "Refuse to start to avoid corrupting data."
                    )

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        con = self._connect()
        try:
            yield con
        finally:
            con.close()

    @staticmethod
    def _is_locked_error(e: Exception) -> bool:
        msg = str(e).lower()
        return ("database is locked" in msg) or ("database is busy" in msg)

    @contextmanager
    def write_tx(self) -> Iterator[sqlite3.Connection]:
        """Open a write transaction with bounded retry on writer-lock contention.

        Policy:
          - retry BEGIN IMMEDIATE / COMMIT until a deadline
          - exponential backoff with jitter
          - then raise (fail closed)
        """
        deadline_ms = max(250, _env_int("TOKENOMY_SQLITE_WRITE_DEADLINE_MS", 30_000))
        deadline_ts = _now_ms() + deadline_ms

        base_sleep = max(0.001, float(_env_int("TOKENOMY_SQLITE_WRITE_BACKOFF_BASE_MS", 5)) / 1000.0)
        max_sleep = max(base_sleep, float(_env_int("TOKENOMY_SQLITE_WRITE_BACKOFF_MAX_MS", 250)) / 1000.0)

        def _backoff(attempt: int) -> None:
            sleep_s = min(max_sleep, base_sleep * (2.0 ** min(attempt, 8)))
            time.sleep(sleep_s * (0.5 + random.random()))

        with self.connection() as con:
            attempt = 0
            while True:
                try:
                    con.execute("BEGIN IMMEDIATE;")
                    break
                except sqlite3.OperationalError as e:
                    if not self._is_locked_error(e) or _now_ms() >= deadline_ts:
                        raise
                    _backoff(attempt)
                    attempt += 1

            try:
                yield con

                c_attempt = 0
                while True:
                    try:
                        con.execute("COMMIT;")
                        break
                    except sqlite3.OperationalError as e:
                        if not self._is_locked_error(e) or _now_ms() >= deadline_ts:
                            raise
                        _backoff(c_attempt)
                        c_attempt += 1
            except BaseException:
                con.execute("ROLLBACK;")
                raise


class SqliteEventLog:
    """Append-only event log. Rows are written inside the caller's transaction."""

    def __init__(self, *, db: SqliteDB) -> None:
        self._db = db

    @staticmethod
    def append(con: sqlite3.Connection, *, height: int, tx_type: str, events: Sequence[Json], ts: int) -> None:
        for ev in events:
            con.execute(
                "INSERT INTO events(height, tx_type, event, event_json, ts) VALUES(?, ?, ?, ?, ?);",
                (int(height), str(tx_type), str(ev.get("event") or ""), _canon_json(ev), int(ts)),
            )

    def list(self, *, after: int = 0, limit: int = 100, event: Optional[str] = None) -> List[Json]:
        if int(limit) <= 0:
            return []
        q = "SELECT seq, height, tx_type, event_json, ts FROM events WHERE seq > ?"
        args: List[Any] = [int(after)]
        if event:
            q += " AND event = ?"
            args.append(str(event))
        q += " ORDER BY seq ASC LIMIT ?;"
        args.append(int(limit))

        out: List[Json] = []
        with self._db.connection() as con:
            for row in con.execute(q, args).fetchall():
                ev = json.loads(str(row["event_json"]))
                out.append(
                    {
                        "seq": int(row["seq"]),
                        "height": int(row["height"]),
                        "tx_type": str(row["tx_type"]),
                        "ts": int(row["ts"]),
                        **ev,
                    }
                )
        return out


class SqliteLedgerStore:
    """State snapshot store persisted in SQLite.

      - read(): load latest snapshot
      - write(st): overwrite the snapshot atomically
      - commit(st, ...): overwrite the snapshot and append its events in one transaction

    The authoritative snapshot is a single row.
    """

    def __init__(self, *, db: SqliteDB) -> None:
        self._db = db
        self._db.init_schema()
        self.events = SqliteEventLog(db=db)

    def exists(self) -> bool:
        with self._db.connection() as con:
            return con.execute("SELECT 1 FROM ledger_state WHERE id=1;").fetchone() is not None

    def read(self) -> Json:
        with self._db.connection() as con:
            row = con.execute("SELECT state_json FROM ledger_state WHERE id=1;").fetchone()
            if row is None:
                raise FileNotFoundError("sqlite ledger_state is missing")
            st = json.loads(str(row["state_json"]))
            if not isinstance(st, dict):
                raise ValueError("ledger_state is not a JSON object")
            return st

    @staticmethod
    def _upsert(con: sqlite3.Connection, st: Json) -> None:
        con.execute(
            """
            INSERT INTO ledger_state(id, height, chain_id, state_json, updated_ts_ms)
            VALUES(1, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
              height=excluded.height,
              chain_id=excluded.chain_id,
              state_json=excluded.state_json,
              updated_ts_ms=excluded.updated_ts_ms;
            """,
            (int(st.get("height", 0)), str(st.get("chain_id") or ""), _canon_json(st), _now_ms()),
        )

    def write(self, st: Json) -> None:
        if not isinstance(st, dict):
            raise ValueError("ledger write expects dict")
        with self._db.write_tx() as con:
            self._upsert(con, st)

    def commit(self, st: Json, *, tx_type: str, events: Sequence[Json]) -> None:
        if not isinstance(st, dict):
            raise ValueError("ledger commit expects dict")
        with self._db.write_tx() as con:
            self._upsert(con, st)
            SqliteEventLog.append(
                con,
                height=int(st.get("height", 0)),
                tx_type=tx_type,
                events=events,
                ts=int(st.get("time", 0)),
            )


__all__ = ["SqliteDB", "SqliteEventLog", "SqliteLedgerStore"]
