# src/gatekeep/runtime/apply/deployment.py
from __future__ import annotations

"""
Deployment gatekeeper apply semantics.

CODE_INSTALL is open to any caller while deployments are ACTIVE. Checks run
in this order:

  1. pause state is ACTIVE            -> rejected:deployments_paused (before any hashing)
  2. code is non-empty                -> invalid_payload:empty_code
  3. sha256(code) is not banned       -> rejected:code_hash_banned
  4. installer accepts the blob       -> delegate_failed:installation_failed

Ban/unban refuse no-op transitions; pause/unpause do not (a repeated pause
leaves the state unchanged).

State shape:
state["params"]["admin"] = "<acct>"
state["params"]["self_address"] = "<0x...>"
state["deployment"] = {
  "pause_state": "ACTIVE" | "PAUSED",
  "banned": { "<sha256 hex>": bool },
}
"""

import hashlib
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Any, Dict, Optional, Set

from gatekeep.ledger.code_store import InstallError, code_hash, install_code
from gatekeep.ledger.constants import STATE_VERSION, ZERO_HASH, is_null_address
from gatekeep.runtime.apply_context import DEFAULT_CONTEXT, ApplyContext
from gatekeep.runtime.authority import require_admin
from gatekeep.runtime.errors import ApplyError
from gatekeep.runtime.events import (
    CodeHashBanned,
    CodeHashUnbanned,
    ContractDeployed,
    Paused,
    Unpaused,
    emit,
)
from gatekeep.runtime.state_invariants import ensure_state
from gatekeep.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]


class PauseState(str, Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"


@dataclass
class DeploymentApplyError(ApplyError):
    code: str
    reason: str
    details: Optional[Json] = None


def _as_dict(v: Any) -> Json:
    return v if isinstance(v, dict) else {}


def _deployment_root(state: Json) -> Json:
    d = state.get("deployment")
    if not isinstance(d, dict):
        raise DeploymentApplyError("invalid_state", "deployment_not_initialized")
    if not isinstance(d.get("banned"), dict):
        d["banned"] = {}
    d.setdefault("pause_state", PauseState.ACTIVE.value)
    return d


def _normalize_hash(v: Any) -> str:
    s = v.strip().lower() if isinstance(v, str) else ""
    if s.startswith("0x"):
        s = s[2:]
    if len(s) != 64 or any(c not in "0123456789abcdef" for c in s):
        raise DeploymentApplyError("invalid_payload", "invalid_code_hash", {"code_hash": v})
    return s


def _as_code(v: Any) -> bytes:
    if isinstance(v, bytes):
        return v
    if isinstance(v, (bytearray, memoryview)):
        return bytes(v)
    raise DeploymentApplyError("invalid_payload", "invalid_code", {"type": type(v).__name__})


# ---------------------------------------------------------------------------
# Construction + read accessors
# ---------------------------------------------------------------------------


def default_self_address(admin: str) -> str:
    return "0x" + hashlib.sha256(f"gatekeeper:{admin}".encode("utf-8")).hexdigest()[-40:]


def init_deployment_state(*, admin: str, self_address: Optional[str] = None) -> Json:
    admin_s = admin if isinstance(admin, str) else ""
    if is_null_address(admin_s.strip()):
        raise DeploymentApplyError("invalid_payload", "null_admin")

    st = ensure_state({})
    st["version"] = STATE_VERSION
    st["params"]["admin"] = admin_s
    st["params"]["self_address"] = self_address or default_self_address(admin_s)
    st["deployment"] = {"pause_state": PauseState.ACTIVE.value, "banned": {}}
    return st


def pause_state(state: Json) -> PauseState:
    raw = _as_dict(state.get("deployment")).get("pause_state", PauseState.ACTIVE.value)
    return PauseState(raw)


def is_banned(state: Json, code_hash_hex: str) -> bool:
    banned = _as_dict(_as_dict(state.get("deployment")).get("banned"))
    try:
        key = _normalize_hash(code_hash_hex)
    except DeploymentApplyError:
        return False
    return bool(banned.get(key, False))


# ---------------------------------------------------------------------------
# Appliers
# ---------------------------------------------------------------------------


def _apply_code_hash_ban(state: Json, env: TxEnvelope) -> Json:
    require_admin(state, env)
    d = _deployment_root(state)

    h = _normalize_hash(_as_dict(env.payload).get("code_hash"))
    if h == ZERO_HASH:
        raise DeploymentApplyError("invalid_payload", "null_code_hash")
    if bool(d["banned"].get(h, False)):
        raise DeploymentApplyError("invalid_state", "code_hash_already_banned", {"code_hash": h})

    d["banned"][h] = True
    emit(state, CodeHashBanned(code_hash=h), at_nonce=int(env.nonce))
    return {"applied": "CODE_HASH_BAN", "code_hash": h}


def _apply_code_hash_unban(state: Json, env: TxEnvelope) -> Json:
    require_admin(state, env)
    d = _deployment_root(state)

    h = _normalize_hash(_as_dict(env.payload).get("code_hash"))
    if not bool(d["banned"].get(h, False)):
        raise DeploymentApplyError("invalid_state", "code_hash_not_banned", {"code_hash": h})

    d["banned"][h] = False
    emit(state, CodeHashUnbanned(code_hash=h), at_nonce=int(env.nonce))
    return {"applied": "CODE_HASH_UNBAN", "code_hash": h}


def _apply_code_install(state: Json, env: TxEnvelope, ctx: ApplyContext) -> Json:
    d = _deployment_root(state)
    if d["pause_state"] != PauseState.ACTIVE.value:
        raise DeploymentApplyError("rejected", "deployments_paused")

    code = _as_code(_as_dict(env.payload).get("code"))
    if not code:
        raise DeploymentApplyError("invalid_payload", "empty_code")

    h = code_hash(code)
    if bool(d["banned"].get(h, False)):
        raise DeploymentApplyError("rejected", "code_hash_banned", {"code_hash": h})

    creator = str(state["params"].get("self_address") or "")
    installer = ctx.installer or partial(install_code, max_code_size=ctx.max_code_size)
    try:
        # Same object that was hashed; no copy.
        handle = installer(state, code, creator)
    except InstallError:
        raise
    except Exception as e:
        raise DeploymentApplyError(
            "delegate_failed",
            "installation_failed",
            {"error": f"{type(e).__name__}: {e}"},
        ) from e

    if not isinstance(handle, str) or is_null_address(handle):
        raise DeploymentApplyError("delegate_failed", "installation_failed", {"handle": handle})

    emit(state, ContractDeployed(caller=env.signer, handle=handle, code_hash=h), at_nonce=int(env.nonce))
    return {"applied": "CODE_INSTALL", "handle": handle, "code_hash": h}


def _apply_pause(state: Json, env: TxEnvelope) -> Json:
    require_admin(state, env)
    d = _deployment_root(state)

    d["pause_state"] = PauseState.PAUSED.value
    emit(state, Paused(account=env.signer), at_nonce=int(env.nonce))
    return {"applied": "DEPLOYMENTS_PAUSE", "pause_state": d["pause_state"]}


def _apply_unpause(state: Json, env: TxEnvelope) -> Json:
    require_admin(state, env)
    d = _deployment_root(state)

    d["pause_state"] = PauseState.ACTIVE.value
    emit(state, Unpaused(account=env.signer), at_nonce=int(env.nonce))
    return {"applied": "DEPLOYMENTS_UNPAUSE", "pause_state": d["pause_state"]}


DEPLOYMENT_TX_TYPES: Set[str] = {
    "CODE_HASH_BAN",
    "CODE_HASH_UNBAN",
    "CODE_INSTALL",
    "DEPLOYMENTS_PAUSE",
    "DEPLOYMENTS_UNPAUSE",
}


def apply_deployment(state: Json, env: TxEnvelope, ctx: Optional[ApplyContext] = None) -> Optional[Json]:
    t = str(env.tx_type or "").strip().upper()
    if t not in DEPLOYMENT_TX_TYPES:
        return None

    if t == "CODE_HASH_BAN":
        return _apply_code_hash_ban(state, env)
    if t == "CODE_HASH_UNBAN":
        return _apply_code_hash_unban(state, env)
    if t == "CODE_INSTALL":
        return _apply_code_install(state, env, ctx or DEFAULT_CONTEXT)
    if t == "DEPLOYMENTS_PAUSE":
        return _apply_pause(state, env)
    if t == "DEPLOYMENTS_UNPAUSE":
        return _apply_unpause(state, env)

    return None
