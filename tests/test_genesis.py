from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest

from tokenomy.ledger.constants import (
    AIRDROP_VAULT_ACCOUNT_ID,
    NULL_ACCOUNT,
    REWARD_POOL_ACCOUNT_ID,
    TREASURY_ACCOUNT_ID,
    VESTING_VAULT_ACCOUNT_ID,
)
from tokenomy.ledger.settlement import settle_transfer
from tokenomy.runtime.errors import StateError
from tokenomy.runtime.executor import ExecutorError, TokenExecutor
from tokenomy.runtime.genesis_config import build_genesis, load_genesis, validate_genesis_config
from tokenomy.testing.harness import ALICE, T0, standard_genesis_config


def test_genesis_allocates_the_whole_supply_and_seals() -> None:
    g = build_genesis(standard_genesis_config())
    st = g.state()

    balances = {aid: a["balance"] for aid, a in st["accounts"].items()}
    assert balances == {
        TREASURY_ACCOUNT_ID: 39_000_000,
        REWARD_POOL_ACCOUNT_ID: 30_000_000,
        VESTING_VAULT_ACCOUNT_ID: 20_000_000,
        AIRDROP_VAULT_ACCOUNT_ID: 10_000_000,
        ALICE: 1_000_000,
    }
    assert st["ledger"] == {"total_supply": 100_000_000, "sealed": True}
    assert st["tax_policy"]["rate_bps"] == 200
    assert st["time"] == T0
    assert st["height"] == 0


def test_system_accounts_are_exempt_and_protected() -> None:
    st = build_genesis(standard_genesis_config(tax_exempt=[ALICE])).state()
    system = sorted([TREASURY_ACCOUNT_ID, REWARD_POOL_ACCOUNT_ID, VESTING_VAULT_ACCOUNT_ID, AIRDROP_VAULT_ACCOUNT_ID])
    assert st["tax_policy"]["protected"] == system
    assert st["tax_policy"]["exempt"] == sorted(system + [ALICE])


def test_genesis_events_end_with_seal() -> None:
    g = build_genesis(standard_genesis_config())
    assert g.events[0] == {"event": "settlement", "from": NULL_ACCOUNT, "to": TREASURY_ACCOUNT_ID, "amount": 100_000_000}
    assert g.events[-1] == {"event": "genesis_sealed", "total_supply": 100_000_000, "chain_id": "tokenomy-test"}
    # allocation legs move at rate 0
    assert not [e for e in g.events if e["event"] == "tax_collected"]


def test_sealed_ledger_refuses_mint_and_burn() -> None:
    st = build_genesis(standard_genesis_config()).state()
    with pytest.raises(StateError) as ei:
        settle_transfer(st, NULL_ACCOUNT, ALICE, 1)
    assert ei.value.reason == "supply_sealed"
    with pytest.raises(StateError):
        settle_transfer(st, ALICE, "", 1)


def test_genesis_state_hands_out_fresh_copies() -> None:
    g = build_genesis(standard_genesis_config())
    a = g.state()
    a["accounts"][ALICE]["balance"] = 0
    assert g.state()["accounts"][ALICE]["balance"] == 1_000_000


@pytest.mark.parametrize(
    "overrides, fragment",
    [
        ({"account_allocations": {ALICE: 60_000_000}}, "exceed total_supply"),
        ({"tax_rate_bps": 1001}, "rate_bps"),
        ({"capabilities": {"minter": ["x"]}}, "unknown capabilities"),
        ({"total_supply": 0}, "total_supply"),
        ({"chain_id": " "}, "chain_id"),
        ({"account_allocations": {NULL_ACCOUNT: 1}}, "null account"),
        ({"reward_pool_allocation": -1}, "non-negative"),
    ],
)
def test_invalid_genesis_config_is_rejected(overrides: dict, fragment: str) -> None:
    cfg = replace(standard_genesis_config(), **overrides)
    with pytest.raises(ValueError) as ei:
        validate_genesis_config(cfg)
    assert fragment in str(ei.value)


def test_load_genesis_from_yaml(tmp_path: Path) -> None:
    p = tmp_path / "genesis.yaml"
    p.write_text(
        "\n".join(
            [
                "chain_id: tokenomy-yaml",
                "genesis_time: 1700000000",
                "total_supply: 1000",
                "allocations:",
                "  reward_pool: 300",
                "  vesting: 200",
                "  airdrop: 100",
                "  accounts:",
                "    carol: 50",
                "tax:",
                "  rate_bps: 150",
                "  exempt: [carol]",
                "capabilities:",
                "  pauser: [ops]",
                "keys:",
                "  carol: [abcd]",
                "require_signatures: true",
            ]
        ),
        encoding="utf-8",
    )
    cfg = load_genesis(str(p))
    assert cfg.chain_id == "tokenomy-yaml"
    assert cfg.account_allocations == {"carol": 50}
    assert cfg.tax_rate_bps == 150
    assert cfg.tax_exempt == ["carol"]
    assert cfg.capabilities == {"pauser": ["ops"]}
    assert cfg.require_signatures is True

    st = build_genesis(cfg).state()
    assert st["accounts"][TREASURY_ACCOUNT_ID]["balance"] == 350
    assert st["accounts"]["carol"]["keys"] == [{"pubkey": "abcd", "active": True}]
    assert st["params"]["require_signatures"] is True


def test_load_genesis_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_genesis(str(tmp_path / "nope.yaml"))


def test_executor_needs_genesis_or_database() -> None:
    with pytest.raises(ExecutorError):
        TokenExecutor()


def test_executor_records_genesis_events(ex) -> None:
    evs = ex.events(limit=100)
    assert [e["seq"] for e in evs] == list(range(1, len(evs) + 1))
    assert all(e["tx_type"] == "GENESIS" for e in evs)
    assert ex.events(event="genesis_sealed")[0]["total_supply"] == 100_000_000
