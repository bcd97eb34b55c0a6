# src/gatekeep/runtime/authority.py
from __future__ import annotations

"""Administrator capability.

Every component records exactly one administrator at construction time in
state["params"]["admin"]. Management operations call require_admin() as
their first step; there is no role hierarchy and no inherited authority.

The signer is compared exactly as given: it is the same key used for
balances, nonces and blacklist lookups, so " admin " is a different caller.
"""

from typing import Any, Dict

from gatekeep.runtime.errors import ApplyError
from gatekeep.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]


def admin_of(state: Json) -> str:
    params = state.get("params")
    if not isinstance(params, dict):
        return ""
    admin = params.get("admin")
    return admin if isinstance(admin, str) else ""


def require_admin(state: Json, env: TxEnvelope) -> str:
    """Return the administrator id, or raise forbidden:admin_required."""

    admin = admin_of(state)
    signer = getattr(env, "signer", "")
    if not isinstance(signer, str):
        signer = ""
    if not admin:
        # A component without an administrator is uninitialized; nobody may manage it.
        raise ApplyError("invalid_state", "admin_not_set", {"tx_type": env.tx_type})
    if signer != admin:
        raise ApplyError("forbidden", "admin_required", {"tx_type": env.tx_type, "signer": signer})
    return admin


__all__ = ["admin_of", "require_admin"]
