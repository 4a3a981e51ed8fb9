from __future__ import annotations

import pytest

from tokenomy.runtime.errors import ApplyError, AuthorizationError, ValidationError
from tokenomy.runtime.executor import TokenExecutor
from tokenomy.runtime.gates import (
    SUPPORTED_TX_TYPES,
    Capability,
    CapabilityService,
    StaticCapabilities,
    required_capability,
)
from tokenomy.runtime.genesis_config import build_genesis
from tokenomy.testing.harness import ADMIN, ALICE, BOB, ManualClock, standard_genesis_config, tx


def test_every_supported_tx_type_has_a_declared_capability_entry() -> None:
    assert "TRANSFER" in SUPPORTED_TX_TYPES
    assert required_capability("TRANSFER") is None
    assert required_capability("AIRDROP_CLAIM") is None
    assert required_capability("vesting_revoke") is Capability.VESTING_ADMIN
    assert required_capability("PAUSE_SET") is Capability.PAUSER


def test_pause_blocks_all_mutations_but_unpause(ex) -> None:
    receipt = ex.apply(tx("PAUSE_SET", ADMIN, {"paused": True}))
    assert receipt["events"][0] == {"event": "pause_set", "old": False, "new": True, "changer": ADMIN}
    assert ex.is_paused()

    for t, signer, payload in [
        ("TRANSFER", ALICE, {"to": BOB, "amount": 1}),
        ("REWARD_DISTRIBUTE", ADMIN, {"recipient": BOB, "amount": 1}),
        ("TAX_RATE_SET", ADMIN, {"rate_bps": 0}),
        ("VESTING_CREATE", ADMIN, {"beneficiary": BOB, "amount": 1}),
    ]:
        with pytest.raises(AuthorizationError) as ei:
            ex.apply(tx(t, signer, payload))
        assert ei.value.reason == "system_paused"

    # reads keep working
    assert ex.balance_of(ALICE) == 1_000_000

    ex.apply(tx("PAUSE_SET", ADMIN, {"paused": False}))
    ex.apply(tx("TRANSFER", ALICE, {"to": BOB, "amount": 1}))
    assert ex.balance_of(BOB) == 1


def test_pause_is_checked_before_capability(ex) -> None:
    ex.apply(tx("PAUSE_SET", ADMIN, {"paused": True}))
    with pytest.raises(AuthorizationError) as ei:
        ex.apply(tx("TAX_RATE_SET", ALICE, {"rate_bps": 0}))
    assert ei.value.reason == "system_paused"


def test_only_pauser_can_pause(ex) -> None:
    with pytest.raises(AuthorizationError) as ei:
        ex.apply(tx("PAUSE_SET", ALICE, {"paused": True}))
    assert ei.value.reason == "unauthorized_caller"
    assert not ex.is_paused()


def test_injected_capability_service_replaces_state_roles() -> None:
    caps = StaticCapabilities({"reward_distributor": ["bot"]})
    assert isinstance(caps, CapabilityService)

    ex = TokenExecutor(genesis=build_genesis(standard_genesis_config()), clock=ManualClock(), capabilities=caps)
    ex.apply(tx("REWARD_DISTRIBUTE", "bot", {"recipient": BOB, "amount": 10}))
    assert ex.balance_of(BOB) == 10

    with pytest.raises(AuthorizationError):
        ex.apply(tx("REWARD_DISTRIBUTE", ADMIN, {"recipient": BOB, "amount": 10}))


def test_unknown_tx_type_is_rejected(ex) -> None:
    with pytest.raises(ApplyError) as ei:
        ex.apply(tx("MINT", ADMIN, {"to": ADMIN, "amount": 1}))
    assert (ei.value.code, ei.value.reason) == ("invalid_tx", "unknown_tx_type")


@pytest.mark.parametrize(
    "payload",
    [
        {"to": BOB, "amount": -1},
        {"to": BOB},
        {"to": BOB, "amount": 1, "memo": "extra keys are rejected"},
    ],
)
def test_payload_schema_is_strict(ex, payload: dict) -> None:
    with pytest.raises(ValidationError) as ei:
        ex.apply(tx("TRANSFER", ALICE, payload))
    assert ei.value.reason == "schema_invalid"
    assert ei.value.details["errors"]


def test_missing_signer_is_rejected(ex) -> None:
    with pytest.raises(ValidationError):
        ex.apply(tx("TRANSFER", "", {"to": BOB, "amount": 1}))


@pytest.mark.parametrize(
    "env",
    [
        {"tx_type": "TRANSFER", "signer": ALICE, "nonce": True, "payload": {"to": BOB, "amount": 1}},
        {"tx_type": "TRANSFER", "signer": ALICE, "nonce": "x", "payload": {"to": BOB, "amount": 1}},
        {"tx_type": "TRANSFER", "signer": ALICE, "payload": [["to", BOB]]},
    ],
)
def test_malformed_envelope_is_rejected(ex, env: dict) -> None:
    with pytest.raises(ValidationError) as ei:
        ex.apply(env)
    assert ei.value.reason == "schema_invalid"
