# tests/test_deployment_gatekeeper.py
from __future__ import annotations

import hashlib

import pytest

from gatekeep.contracts import DeploymentGatekeeper
from gatekeep.ledger.constants import ZERO_HASH
from gatekeep.runtime.apply.deployment import PauseState
from gatekeep.runtime.config import default_config, with_overrides
from gatekeep.runtime.domain_apply import ApplyError
from gatekeep.runtime.events import CodeHashBanned, CodeHashUnbanned, ContractDeployed, Paused, Unpaused

BLOB = b"\x60\x80\x60\x40\x52"
BLOB_HASH = hashlib.sha256(BLOB).hexdigest()


def _gk(**kw) -> DeploymentGatekeeper:
    return DeploymentGatekeeper("admin", **kw)


def test_initial_state() -> None:
    gk = _gk()
    assert gk.owner == "admin"
    assert gk.pause_state is PauseState.ACTIVE
    assert not gk.paused
    assert not gk.is_banned(BLOB_HASH)
    assert gk.events == ()


def test_pause_scenario() -> None:
    gk = _gk()
    gk.pause("admin")
    assert gk.paused

    with pytest.raises(ApplyError) as e:
        gk.install("alice", BLOB)
    assert e.value.code == "rejected"
    assert e.value.reason == "deployments_paused"

    gk.unpause("admin")
    handle = gk.install("alice", BLOB)
    assert handle.startswith("0x") and len(handle) == 42
    assert gk.code_at(handle) == BLOB
    assert gk.events[-1] == ContractDeployed(caller="alice", handle=handle, code_hash=BLOB_HASH)


def test_pause_is_checked_before_empty_code() -> None:
    gk = _gk()
    gk.pause("admin")
    with pytest.raises(ApplyError) as e:
        gk.install("alice", b"")
    assert e.value.reason == "deployments_paused"


def test_empty_code_rejected() -> None:
    gk = _gk()
    with pytest.raises(ApplyError) as e:
        gk.install("alice", b"")
    assert e.value.code == "invalid_payload"
    assert e.value.reason == "empty_code"


def test_double_ban_fails_once_notified() -> None:
    gk = _gk()
    gk.ban_hash("admin", BLOB_HASH)
    with pytest.raises(ApplyError) as e:
        gk.ban_hash("admin", BLOB_HASH)
    assert e.value.code == "invalid_state"
    assert e.value.reason == "code_hash_already_banned"
    assert [ev for ev in gk.events if isinstance(ev, CodeHashBanned)] == [CodeHashBanned(BLOB_HASH)]


def test_banned_code_cannot_install_until_unbanned() -> None:
    gk = _gk()
    gk.ban_hash("admin", BLOB_HASH)
    assert gk.is_banned(BLOB_HASH)

    with pytest.raises(ApplyError) as e:
        gk.install("alice", BLOB)
    assert e.value.reason == "code_hash_banned"

    gk.unban_hash("admin", BLOB_HASH)
    assert not gk.is_banned(BLOB_HASH)
    assert gk.events[-1] == CodeHashUnbanned(BLOB_HASH)
    assert gk.install("alice", BLOB)


def test_unban_requires_ban() -> None:
    gk = _gk()
    with pytest.raises(ApplyError) as e:
        gk.unban_hash("admin", BLOB_HASH)
    assert e.value.reason == "code_hash_not_banned"
    assert gk.events == ()


def test_null_hash_cannot_be_banned() -> None:
    gk = _gk()
    with pytest.raises(ApplyError) as e:
        gk.ban_hash("admin", ZERO_HASH)
    assert e.value.reason == "null_code_hash"


def test_hash_accepts_0x_prefix_and_uppercase() -> None:
    gk = _gk()
    gk.ban_hash("admin", "0x" + BLOB_HASH.upper())
    assert gk.is_banned(BLOB_HASH)


def test_management_is_admin_only() -> None:
    gk = _gk()
    before = gk.snapshot()
    for call in (
        lambda: gk.ban_hash("mallory", BLOB_HASH),
        lambda: gk.unban_hash("mallory", BLOB_HASH),
        lambda: gk.pause("mallory"),
        lambda: gk.unpause("mallory"),
    ):
        with pytest.raises(ApplyError) as e:
            call()
        assert e.value.reason == "admin_required"
    assert gk.snapshot() == before


@pytest.mark.parametrize("lookalike", ["admin\n", " admin "])
def test_pause_requires_the_exact_admin_identity(lookalike: str) -> None:
    gk = _gk()
    with pytest.raises(ApplyError) as e:
        gk.pause(lookalike)
    assert e.value.reason == "admin_required"
    assert not gk.paused
    assert gk.pause_state is PauseState.ACTIVE


def test_repeated_pause_is_allowed() -> None:
    gk = _gk()
    gk.pause("admin")
    gk.pause("admin")
    assert gk.paused
    gk.unpause("admin")
    gk.unpause("admin")
    assert not gk.paused
    assert [type(ev) for ev in gk.events] == [Paused, Paused, Unpaused, Unpaused]


def test_same_code_gets_distinct_handles() -> None:
    gk = _gk()
    h1 = gk.install("alice", BLOB)
    h2 = gk.install("bob", bytearray(BLOB))
    assert h1 != h2


def test_oversized_code_is_installation_failure() -> None:
    cfg = with_overrides(default_config(), max_code_size=4)
    gk = _gk(cfg=cfg)
    with pytest.raises(ApplyError) as e:
        gk.install("alice", BLOB)
    assert e.value.code == "delegate_failed"
    assert e.value.reason == "installation_failed"
    assert gk.events == ()


def test_custom_installer_receives_exact_bytes() -> None:
    seen = []

    def installer(state, code, creator):
        seen.append(code)
        return "0x" + "ab" * 20

    gk = _gk(installer=installer)
    assert gk.install("alice", BLOB) == "0x" + "ab" * 20
    assert seen == [BLOB]
    assert hashlib.sha256(seen[0]).hexdigest() == BLOB_HASH


@pytest.mark.parametrize("result", ["", None])
def test_installer_without_handle_is_failure(result) -> None:
    gk = _gk(installer=lambda state, code, creator: result)
    with pytest.raises(ApplyError) as e:
        gk.install("alice", BLOB)
    assert e.value.reason == "installation_failed"
    assert gk.events == ()


def test_installer_exception_is_failure() -> None:
    def boom(state, code, creator):
        raise RuntimeError("rejected by runtime")

    gk = _gk(installer=boom)
    with pytest.raises(ApplyError) as e:
        gk.install("alice", BLOB)
    assert e.value.code == "delegate_failed"
    assert e.value.reason == "installation_failed"
