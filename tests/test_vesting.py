from __future__ import annotations

import pytest

from tokenomy.ledger.constants import TREASURY_ACCOUNT_ID, YEAR_SECONDS
from tokenomy.ledger.types import VestingSchedule
from tokenomy.runtime.errors import AuthorizationError, StateError, ValidationError
from tokenomy.testing.harness import ADMIN, BOB, T0, tx

CAROL = "carol"


def _create(ex, beneficiary: str, amount: int, **extra) -> dict:
    return ex.apply(tx("VESTING_CREATE", ADMIN, {"beneficiary": beneficiary, "amount": amount, **extra}))


def test_cliff_then_linear_unlock(ex) -> None:
    receipt = _create(ex, BOB, 1_000_000)
    ev = receipt["events"][0]
    assert ev["start"] == T0
    assert ev["cliff_duration"] == YEAR_SECONDS
    assert ev["vesting_duration"] == 4 * YEAR_SECONDS

    assert ex.vested_amount(BOB, T0 + YEAR_SECONDS - 1) == 0
    assert ex.vested_amount(BOB, T0 + YEAR_SECONDS) == 0
    assert ex.vested_amount(BOB, T0 + YEAR_SECONDS + (3 * YEAR_SECONDS) // 2) == 500_000
    assert ex.vested_amount(BOB, T0 + 4 * YEAR_SECONDS) == 1_000_000
    assert ex.vested_amount(BOB, T0 + 10 * YEAR_SECONDS) == 1_000_000


def test_vested_amount_is_non_decreasing() -> None:
    sched = VestingSchedule(
        beneficiary=BOB,
        total_amount=999_999,
        released=0,
        start=100,
        cliff_duration=50,
        vesting_duration=1000,
        revocable=False,
    )
    prev = 0
    for t in range(0, 1300, 7):
        v = sched.vested_at(t)
        assert prev <= v <= sched.total_amount
        prev = v
    assert sched.vested_at(1100) == 999_999


def test_release_pays_vested_minus_released(ex, clock) -> None:
    _create(ex, BOB, 1_000_000)
    clock.set(T0 + 2 * YEAR_SECONDS)

    assert ex.releasable_amount(BOB) == 333_333
    receipt = ex.apply(tx("VESTING_RELEASE", BOB))
    assert receipt["released"] == 333_333
    assert ex.balance_of(BOB) == 333_333
    assert ex.view().vesting_committed() == 1_000_000 - 333_333

    with pytest.raises(StateError) as ei:
        ex.apply(tx("VESTING_RELEASE", BOB))
    assert ei.value.reason == "no_tokens_to_claim"

    clock.set(T0 + 4 * YEAR_SECONDS)
    ex.apply(tx("VESTING_RELEASE", "anyone", {"beneficiary": BOB}))
    assert ex.balance_of(BOB) == 1_000_000
    assert ex.view().vesting_committed() == 0


def test_release_before_cliff_has_nothing(ex) -> None:
    _create(ex, BOB, 1_000)
    with pytest.raises(StateError) as ei:
        ex.apply(tx("VESTING_RELEASE", BOB))
    assert ei.value.reason == "no_tokens_to_claim"


def test_one_schedule_per_beneficiary_ever(ex, clock) -> None:
    _create(ex, BOB, 100, cliff_duration=0, vesting_duration=10)
    clock.advance(10)
    ex.apply(tx("VESTING_RELEASE", BOB))

    with pytest.raises(StateError) as ei:
        _create(ex, BOB, 100)
    assert ei.value.reason == "schedule_already_exists"


@pytest.mark.parametrize(
    "extra,reason",
    [
        ({"cliff_duration": 11, "vesting_duration": 10}, "invalid_duration"),
        ({"cliff_duration": 0, "vesting_duration": 0}, "invalid_duration"),
    ],
)
def test_invalid_durations(ex, extra: dict, reason: str) -> None:
    with pytest.raises(ValidationError) as ei:
        _create(ex, BOB, 100, **extra)
    assert ei.value.reason == reason


def test_create_validation(ex) -> None:
    with pytest.raises(ValidationError) as ei:
        _create(ex, "", 100)
    assert ei.value.reason == "zero_address"

    with pytest.raises(ValidationError) as ei:
        _create(ex, BOB, 0)
    assert ei.value.reason == "zero_amount"

    with pytest.raises(AuthorizationError):
        ex.apply(tx("VESTING_CREATE", BOB, {"beneficiary": BOB, "amount": 1}))


def test_funding_is_limited_to_uncommitted_vault_balance(ex) -> None:
    _create(ex, BOB, 15_000_000)
    with pytest.raises(StateError) as ei:
        _create(ex, CAROL, 6_000_000)
    assert ei.value.reason == "insufficient_funding"
    assert ei.value.details == {"requested": 6_000_000, "available": 5_000_000}

    _create(ex, CAROL, 5_000_000)
    assert ex.view().vesting_committed() == 20_000_000


def test_revoke_freezes_vested_and_returns_forfeit(ex, clock) -> None:
    _create(ex, CAROL, 1_200_000, start=T0, cliff_duration=0, vesting_duration=1200, revocable=True)
    treasury_before = ex.balance_of(TREASURY_ACCOUNT_ID)

    clock.set(T0 + 300)
    receipt = ex.apply(tx("VESTING_REVOKE", ADMIN, {"beneficiary": CAROL}))
    assert receipt["forfeited"] == 900_000
    revoked = [e for e in receipt["events"] if e["event"] == "vesting_revoked"][0]
    assert revoked["vested"] == 300_000
    assert revoked["destination"] == TREASURY_ACCOUNT_ID

    assert ex.balance_of(TREASURY_ACCOUNT_ID) == treasury_before + 900_000
    sched = ex.vesting_schedule(CAROL)
    assert sched is not None and sched.revoked and sched.total_amount == 300_000

    # vested-but-unreleased stays claimable; nothing more accrues
    clock.set(T0 + 5000)
    assert ex.vested_amount(CAROL) == 300_000
    ex.apply(tx("VESTING_RELEASE", CAROL))
    assert ex.balance_of(CAROL) == 300_000
    assert ex.view().vesting_committed() == 0

    with pytest.raises(StateError) as ei:
        ex.apply(tx("VESTING_REVOKE", ADMIN, {"beneficiary": CAROL}))
    assert ei.value.reason == "schedule_already_revoked"


def test_revoke_errors(ex) -> None:
    with pytest.raises(StateError) as ei:
        ex.apply(tx("VESTING_REVOKE", ADMIN, {"beneficiary": BOB}))
    assert ei.value.reason == "schedule_not_found"

    _create(ex, BOB, 100)
    with pytest.raises(StateError) as ei:
        ex.apply(tx("VESTING_REVOKE", ADMIN, {"beneficiary": BOB}))
    assert ei.value.reason == "schedule_not_revocable"

    with pytest.raises(StateError) as ei:
        ex.apply(tx("VESTING_RELEASE", CAROL))
    assert ei.value.reason == "schedule_not_found"
