# tests/test_apply_atomic.py
from __future__ import annotations

import copy

import pytest

from gatekeep.runtime.apply.deployment import init_deployment_state
from gatekeep.runtime.apply.token import init_token_state
from gatekeep.runtime.domain_apply import ApplyError, apply_tx, apply_tx_atomic
from gatekeep.runtime.tx_admission_types import TxEnvelope


def _env(tx_type: str, payload: dict, signer: str = "admin", nonce: int = 1) -> TxEnvelope:
    return TxEnvelope(tx_type=tx_type, signer=signer, nonce=nonce, payload=payload)


def _token_state() -> dict:
    return init_token_state(admin="admin", name="T", symbol="T", initial_supply=1000, max_amount=100)


def test_failed_delegated_transfer_leaves_state_untouched() -> None:
    st = _token_state()
    apply_tx_atomic(st, _env("TOKEN_APPROVE", {"spender": "sp", "amount": 50}))
    apply_tx_atomic(st, _env("TOKEN_BLACKLIST_SET", {"account": "bob", "flag": True}, nonce=2))
    before = copy.deepcopy(st)

    # allowance is spent before the gate rejects; the snapshot is discarded
    with pytest.raises(ApplyError) as e:
        apply_tx_atomic(st, _env("TOKEN_TRANSFER_FROM", {"owner": "admin", "recipient": "bob", "amount": 10}, signer="sp"))
    assert e.value.reason == "recipient_blacklisted"
    assert st == before


def test_non_atomic_apply_would_leak_partial_mutation() -> None:
    st = _token_state()
    apply_tx(st, _env("TOKEN_APPROVE", {"spender": "sp", "amount": 50}))
    apply_tx(st, _env("TOKEN_BLACKLIST_SET", {"account": "bob", "flag": True}, nonce=2))

    with pytest.raises(ApplyError):
        apply_tx(st, _env("TOKEN_TRANSFER_FROM", {"owner": "admin", "recipient": "bob", "amount": 10}, signer="sp"))
    assert st["balances"]["allowances"]["admin"]["sp"] == 40


def test_commit_is_in_place() -> None:
    st = _token_state()
    alias = st
    meta = apply_tx_atomic(st, _env("TOKEN_TRANSFER", {"recipient": "carol", "amount": 5}))
    assert meta["applied"] == "TOKEN_TRANSFER"
    assert alias["balances"]["by_account"]["carol"] == 5


def test_dict_envelopes_are_accepted() -> None:
    st = init_deployment_state(admin="admin")
    meta = apply_tx_atomic(st, {"tx_type": "DEPLOYMENTS_PAUSE", "signer": "admin", "nonce": 1, "payload": {}})
    assert meta["pause_state"] == "PAUSED"


def test_unknown_tx_type_fails_closed() -> None:
    with pytest.raises(ApplyError) as e:
        apply_tx({}, _env("NOT_A_TX", {}))
    assert e.value.code == "tx_unimplemented"
    assert e.value.reason == "tx_type_not_implemented"


def test_missing_tx_type() -> None:
    with pytest.raises(ApplyError) as e:
        apply_tx({}, _env("", {}))
    assert e.value.reason == "missing_tx_type"


def test_tx_against_the_wrong_component() -> None:
    st = init_deployment_state(admin="admin")
    before = copy.deepcopy(st)
    with pytest.raises(ApplyError) as e:
        apply_tx_atomic(st, _env("TOKEN_TRANSFER", {"recipient": "carol", "amount": 1}))
    assert e.value.reason == "token_not_initialized"
    assert st == before


def test_uninitialized_component_has_no_admin() -> None:
    with pytest.raises(ApplyError) as e:
        apply_tx({}, _env("DEPLOYMENTS_PAUSE", {}))
    assert e.value.reason == "admin_not_set"


def test_events_carry_nonce() -> None:
    st = init_deployment_state(admin="admin")
    apply_tx_atomic(st, _env("DEPLOYMENTS_PAUSE", {}, nonce=7))
    assert st["events"][-1] == {"event": "Paused", "at_nonce": 7, "account": "admin"}


def test_init_rejects_null_admin_and_negative_limit() -> None:
    with pytest.raises(ApplyError):
        init_token_state(admin="", name="", symbol="", initial_supply=1, max_amount=1)
    with pytest.raises(ApplyError) as e:
        init_token_state(admin="a", name="", symbol="", initial_supply=1, max_amount=-1)
    assert e.value.reason == "invalid_max_amount"
    with pytest.raises(ApplyError):
        init_deployment_state(admin="0x" + "0" * 40)


def test_event_log_is_appended_in_place() -> None:
    st = _token_state()
    log = st["events"]
    first = log[0]
    n = len(log)

    apply_tx_atomic(st, _env("TOKEN_TRANSFER", {"recipient": "carol", "amount": 5}))
    assert st["events"] is log
    assert log[0] is first
    assert len(log) == n + 1

    with pytest.raises(ApplyError):
        apply_tx_atomic(st, _env("TOKEN_TRANSFER", {"recipient": "carol", "amount": 500}, nonce=2))
    assert st["events"] is log
    assert len(log) == n + 1
