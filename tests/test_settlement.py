from __future__ import annotations

import pytest

from tokenomy.ledger.constants import NULL_ACCOUNT, REWARD_POOL_ACCOUNT_ID
from tokenomy.ledger.settlement import calculate_tax, settle_transfer
from tokenomy.runtime.errors import AuthorizationError, InvariantError, StateError, ValidationError
from tokenomy.runtime.genesis_config import build_genesis
from tokenomy.testing.harness import ADMIN, ALICE, BOB, standard_genesis_config, tx


def _conserved(ex) -> bool:
    v = ex.view()
    return v.sum_of_balances() == v.total_supply()


@pytest.mark.parametrize(
    "amount,rate,tax,net",
    [
        (1000, 200, 20, 980),
        (49, 200, 0, 49),
        (50, 200, 1, 49),
        (12345, 1000, 1234, 11111),
        (0, 500, 0, 0),
        (777, 0, 0, 777),
    ],
)
def test_calculate_tax_rounds_down_and_splits_exactly(amount: int, rate: int, tax: int, net: int) -> None:
    t, n = calculate_tax(amount, rate)
    assert (t, n) == (tax, net)
    assert t + n == amount


def test_taxed_transfer_between_non_exempt_accounts(ex) -> None:
    pool_before = ex.pool_balance()
    receipt = ex.apply(tx("TRANSFER", ALICE, {"to": BOB, "amount": 1000}))

    assert ex.balance_of(BOB) == 980
    assert ex.balance_of(ALICE) == 1_000_000 - 1000
    assert ex.pool_balance() == pool_before + 20
    assert ex.total_supply() == 100_000_000
    assert _conserved(ex)

    names = [e["event"] for e in receipt["events"]]
    assert names == ["settlement", "tax_collected"]
    assert receipt["events"][0] == {"event": "settlement", "from": ALICE, "to": BOB, "amount": 980}
    assert receipt["events"][1]["tax"] == 20
    assert receipt["events"][1]["destination"] == REWARD_POOL_ACCOUNT_ID


def test_exempt_side_skips_tax(ex) -> None:
    ex.apply(tx("TAX_EXEMPT_SET", ADMIN, {"account": BOB, "exempt": True}))
    pool_before = ex.pool_balance()

    receipt = ex.apply(tx("TRANSFER", ALICE, {"to": BOB, "amount": 1000}))

    assert ex.balance_of(BOB) == 1000
    assert ex.pool_balance() == pool_before
    assert [e["event"] for e in receipt["events"]] == ["settlement"]


def test_zero_rate_skips_tax(ex) -> None:
    ex.apply(tx("TAX_RATE_SET", ADMIN, {"rate_bps": 0}))
    pool_before = ex.pool_balance()

    ex.apply(tx("TRANSFER", ALICE, {"to": BOB, "amount": 5000}))

    assert ex.balance_of(BOB) == 5000
    assert ex.pool_balance() == pool_before


def test_reservoir_non_decreasing_under_taxed_transfers(ex) -> None:
    last = ex.pool_balance()
    for amount in [1, 49, 50, 999, 10_000, 3]:
        ex.apply(tx("TRANSFER", ALICE, {"to": BOB, "amount": amount}))
        now = ex.pool_balance()
        assert now >= last
        last = now
    assert _conserved(ex)


def test_insufficient_balance_is_atomic(ex) -> None:
    height = ex.height
    with pytest.raises(StateError) as ei:
        ex.apply(tx("TRANSFER", BOB, {"to": ALICE, "amount": 1}))

    assert ei.value.reason == "insufficient_balance"
    assert ei.value.details["balance"] == 0
    assert ex.height == height
    assert ex.balance_of(ALICE) == 1_000_000


def test_transfer_to_null_account_is_rejected(ex) -> None:
    with pytest.raises(ValidationError) as ei:
        ex.apply(tx("TRANSFER", ALICE, {"to": NULL_ACCOUNT, "amount": 1}))
    assert ei.value.reason == "zero_address"

    with pytest.raises(ValidationError):
        ex.apply(tx("TRANSFER", ALICE, {"to": "", "amount": 1}))


def test_zero_amount_transfer_is_a_no_op_that_succeeds(ex) -> None:
    receipt = ex.apply(tx("TRANSFER", ALICE, {"to": BOB, "amount": 0}))
    assert receipt["events"][0]["amount"] == 0
    assert ex.balance_of(ALICE) == 1_000_000


def test_zero_amount_transfer_creates_no_accounts(ex) -> None:
    before = set(ex.read_state()["accounts"])
    ex.apply(tx("TRANSFER", "ghost", {"to": "nobody", "amount": 0}))
    ex.apply(tx("TRANSFER", ALICE, {"to": "newcomer", "amount": 0}))
    assert set(ex.read_state()["accounts"]) == before
    assert ex.height == 2


def test_component_accounts_cannot_transfer(ex) -> None:
    with pytest.raises(AuthorizationError) as ei:
        ex.apply(tx("TRANSFER", REWARD_POOL_ACCOUNT_ID, {"to": BOB, "amount": 1}))
    assert ei.value.reason == "unauthorized_caller"
    assert ex.balance_of(BOB) == 0


def test_mint_path_is_closed_after_genesis() -> None:
    st = build_genesis(standard_genesis_config()).state()
    with pytest.raises(StateError) as ei:
        settle_transfer(st, NULL_ACCOUNT, ALICE, 1)
    assert ei.value.reason == "supply_sealed"

    with pytest.raises(StateError):
        settle_transfer(st, ALICE, NULL_ACCOUNT, 1)


def test_negative_amount_is_an_internal_error() -> None:
    st = build_genesis(standard_genesis_config()).state()
    with pytest.raises(InvariantError):
        settle_transfer(st, ALICE, BOB, -1)
