from __future__ import annotations

import copy
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

from tokenomy.ledger.migrations import CURRENT_STATE_VERSION, migrate_state_dict
from tokenomy.ledger.settlement import calculate_tax
from tokenomy.ledger.state import LedgerView
from tokenomy.ledger.types import AirdropCampaign, VestingSchedule
from tokenomy.runtime.apply.airdrop import claim_preflight
from tokenomy.runtime.domain_apply import apply_tx_atomic
from tokenomy.runtime.errors import ApplyError, InvariantError, StateError, ValidationError
from tokenomy.runtime.gates import CapabilityService, StateCapabilities
from tokenomy.runtime.genesis_config import GenesisState
from tokenomy.runtime.runtime_logging import log_event
from tokenomy.runtime.sqlite_db import SqliteDB, SqliteLedgerStore
from tokenomy.runtime.state_invariants import check_invariants
from tokenomy.runtime.tx_admission import admit_tx, verdict_to_error
from tokenomy.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]
Clock = Callable[[], int]
Subscriber = Callable[[Json], None]

_log = logging.getLogger("tokenomy.executor")


def _wall_clock() -> int:
    return int(time.time())


def _tx_type_of(env: Any) -> str:
    if isinstance(env, dict):
        return str(env.get("tx_type") or "")
    return str(getattr(env, "tx_type", "") or "")


class ExecutorError(RuntimeError):
    pass


class TokenExecutor:
    """Serialized, all-or-nothing executor over the token state.

    Every mutating call takes the executor lock, so operations are totally
    ordered. A thread-local flag rejects a nested mutating call issued while
    one is in progress on the same thread (e.g. from an event subscriber).

    With db_path the snapshot and event log live in SQLite (WAL); without it
    both stay in memory.
    """

    def __init__(
        self,
        *,
        genesis: Optional[GenesisState] = None,
        db_path: Optional[str] = None,
        clock: Optional[Clock] = None,
        capabilities: Optional[CapabilityService] = None,
    ) -> None:
        self._clock: Clock = clock or _wall_clock
        self._lock = threading.RLock()
        self._local = threading.local()
        self._subscribers: List[Subscriber] = []
        self._mem_events: List[Json] = []

        self.db_path = str(db_path) if db_path else ""
        self._store: Optional[SqliteLedgerStore] = None

        if self.db_path:
            self._store = SqliteLedgerStore(db=SqliteDB(path=self.db_path))

        if self._store is not None and self._store.exists():
            raw = self._store.read()
            before = raw.get("state_version")
            self.state: Json = migrate_state_dict(raw)
            check_invariants(self.state)
            if before != CURRENT_STATE_VERSION:
                self._store.write(self.state)
                log_event(_log, "state_migrated", from_version=before, to_version=CURRENT_STATE_VERSION)
            if genesis is not None and genesis.chain_id != self.chain_id:
                raise ExecutorError(
                    f"chain_id mismatch: db={self.chain_id!r} genesis={genesis.chain_id!r}. Refuse to start."
                )
        else:
            if genesis is None:
                raise ExecutorError("no persisted state and no genesis; cannot start")
            self.state = genesis.state()
            self._record_events(self.state, "GENESIS", list(genesis.events))

        self._caps: CapabilityService = capabilities or StateCapabilities(self.state)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def subscribe(self, fn: Subscriber) -> None:
        """Register fn(event) to run for each event once the operation has committed.

        Subscribers only ever see committed operations. One that raises is logged
        and skipped; the operation stays committed and later subscribers still run.
        """
        self._subscribers.append(fn)

    def _record_events(self, st: Json, tx_type: str, events: Sequence[Json]) -> None:
        if self._store is not None:
            self._store.commit(st, tx_type=tx_type, events=events)
            return
        for ev in events:
            self._mem_events.append(
                {
                    "seq": len(self._mem_events) + 1,
                    "height": int(st.get("height", 0)),
                    "tx_type": tx_type,
                    "ts": int(st.get("time", 0)),
                    **ev,
                }
            )

    def _notify(self, tx_type: str, receipt: Json) -> None:
        for ev in receipt.get("events", []):
            for fn in self._subscribers:
                try:
                    fn(dict(ev))
                except Exception as e:
                    log_event(
                        _log,
                        "subscriber_failed",
                        level=logging.ERROR,
                        tx_type=tx_type,
                        event_name=str(ev.get("event") or ""),
                        error=f"{type(e).__name__}: {e}",
                    )

    def now(self) -> int:
        """Operation time: wall clock, but never behind the last applied operation."""
        return max(int(self._clock()), int(self.state.get("time", 0) or 0))

    def apply(self, env: Any) -> Json:
        """Admit and apply one tx. Returns its receipt; raises ApplyError on rejection."""
        if getattr(self._local, "active", False):
            raise StateError("reentrant_call", {"tx_type": _tx_type_of(env)})

        with self._lock:
            self._local.active = True
            try:
                return self._apply_locked(env)
            finally:
                self._local.active = False

    def _apply_locked(self, env: Any) -> Json:
        try:
            env_norm = TxEnvelope.from_json(env)
        except (TypeError, ValueError) as e:
            err = ValidationError("schema_invalid", {"errors": [str(e)]})
            log_event(_log, "tx_rejected", tx_type="", signer="", **err.to_json())
            raise err from e

        try:
            rej = verdict_to_error(admit_tx(env_norm, LedgerView.from_ledger(self.state)))
            if rej is not None:
                raise rej

            tx_type = env_norm.tx_type

            def _persist(snapshot: Json, receipt: Json) -> None:
                self._record_events(snapshot, tx_type, receipt.get("events", []))

            receipt = apply_tx_atomic(
                self.state,
                env_norm,
                caps=self._caps,
                now=self.now(),
                pre_commit=[_persist],
            )
        except ApplyError as e:
            log_event(_log, "tx_rejected", tx_type=env_norm.tx_type, signer=env_norm.signer, **e.to_json())
            raise
        except InvariantError as e:
            log_event(
                _log,
                "invariant_violation",
                level=logging.ERROR,
                tx_type=env_norm.tx_type,
                signer=env_norm.signer,
                error=str(e),
            )
            raise

        log_event(
            _log,
            "tx_applied",
            tx_type=env_norm.tx_type,
            signer=env_norm.signer,
            height=int(receipt.get("height", 0)),
            events=len(receipt.get("events", [])),
        )
        self._notify(env_norm.tx_type, receipt)
        return receipt

    def submit_tx(self, env: Json) -> Json:
        """Non-raising apply() for the API: {"ok": True, "receipt"} or {"ok": False, code, reason, details}."""
        try:
            receipt = self.apply(env)
        except ApplyError as e:
            return {"ok": False, **e.to_json()}
        except InvariantError as e:
            return {"ok": False, "code": "internal", "reason": "invariant_violation", "details": {"error": str(e)}}
        return {"ok": True, "receipt": receipt}

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    def view(self) -> LedgerView:
        with self._lock:
            return LedgerView.from_ledger(self.state)

    def read_state(self) -> Json:
        with self._lock:
            return copy.deepcopy(self.state)

    @property
    def chain_id(self) -> str:
        return str(self.state.get("chain_id") or "")

    @property
    def height(self) -> int:
        return int(self.state.get("height", 0) or 0)

    def is_paused(self) -> bool:
        return bool(self.view().get_param("paused", False))

    def balance_of(self, account: str) -> int:
        return self.view().balance_of(account)

    def total_supply(self) -> int:
        return self.view().total_supply()

    def tax_rate_bps(self) -> int:
        return self.view().tax_rate_bps()

    def reservoir(self) -> str:
        return self.view().reservoir()

    def is_exempt(self, account: str) -> bool:
        return self.view().is_exempt(account)

    def pool_balance(self) -> int:
        return self.view().pool_balance()

    def circulating_supply(self) -> int:
        return self.view().circulating_supply()

    def calculate_tax(self, amount: int) -> int:
        tax, _net = calculate_tax(amount, self.tax_rate_bps())
        return tax

    def vested_amount(self, beneficiary: str, now: Optional[int] = None) -> int:
        return self.view().vested_amount(beneficiary, self.now() if now is None else int(now))

    def releasable_amount(self, beneficiary: str, now: Optional[int] = None) -> int:
        return self.view().releasable_amount(beneficiary, self.now() if now is None else int(now))

    def vesting_schedule(self, beneficiary: str) -> Optional[VestingSchedule]:
        return self.view().vesting_schedule(beneficiary)

    def time_until_deadline(self, now: Optional[int] = None) -> int:
        return self.view().time_until_deadline(self.now() if now is None else int(now))

    def campaign(self) -> Optional[AirdropCampaign]:
        return self.view().campaign()

    def has_claimed(self, account: str) -> bool:
        return self.view().has_claimed(account)

    def claim_preflight(
        self, account: str, amount: int, proof: Sequence[str], now: Optional[int] = None
    ) -> Optional[ApplyError]:
        st = self.read_state()
        return claim_preflight(st, account, amount, proof, now=self.now() if now is None else int(now))

    def can_claim(self, account: str, amount: int, proof: Sequence[str], now: Optional[int] = None) -> bool:
        """Dry run of a claim; never mutates."""
        return self.claim_preflight(account, amount, proof, now=now) is None

    def reward_stats(self, recipient: Optional[str] = None) -> Json:
        return self.view().reward_stats(recipient)

    def events(self, *, after: int = 0, limit: int = 100, event: Optional[str] = None) -> List[Json]:
        if self._store is not None:
            return self._store.events.list(after=after, limit=limit, event=event)
        with self._lock:
            out = [e for e in self._mem_events if e["seq"] > int(after) and (not event or e.get("event") == event)]
            return [dict(e) for e in out[: max(0, int(limit))]]


__all__ = ["ExecutorError", "TokenExecutor"]
