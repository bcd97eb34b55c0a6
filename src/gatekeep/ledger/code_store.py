# src/gatekeep/ledger/code_store.py
from __future__ import annotations

"""Code installation primitive.

install_code() takes a byte blob, files it under a freshly derived handle
and returns that handle. Handles are 20-byte hex addresses derived from the
installing component's own address and its installation nonce, so the same
blob installed twice gets two distinct handles.

State shape:
state["code_store"] = {
  "nonce": int,
  "installed": { "<handle>": {"code": bytes, "code_hash": str, "size": int, "creator": str} },
}
"""

import hashlib
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from gatekeep.ledger.constants import DEFAULT_MAX_CODE_SIZE
from gatekeep.runtime.errors import ApplyError

Json = Dict[str, Any]

# (state, code, creator) -> handle
CodeInstaller = Callable[[Json, bytes, str], str]


@dataclass
class InstallError(ApplyError):
    code: str
    reason: str
    details: Optional[Json] = None


def code_hash(code: bytes) -> str:
    """SHA-256 content fingerprint, 64 lowercase hex chars."""
    return hashlib.sha256(code).hexdigest()


def derive_handle(creator: str, nonce: int) -> str:
    digest = hashlib.sha256(f"{creator}:{int(nonce)}".encode("utf-8")).hexdigest()
    return "0x" + digest[-40:]


def _ensure_root(state: Json) -> Json:
    root = state.get("code_store")
    if not isinstance(root, dict):
        root = {}
        state["code_store"] = root
    root.setdefault("nonce", 0)
    root.setdefault("installed", {})
    return root


def install_code(
    state: Json,
    code: bytes,
    creator: str,
    *,
    max_code_size: int = DEFAULT_MAX_CODE_SIZE,
) -> str:
    """Install `code` and return its handle, or raise InstallError."""

    if len(code) > int(max_code_size):
        raise InstallError(
            "delegate_failed",
            "installation_failed",
            {"cause": "code_too_large", "size": len(code), "max": int(max_code_size)},
        )

    root = _ensure_root(state)
    nonce = int(root["nonce"])
    handle = derive_handle(creator, nonce)
    if handle in root["installed"]:
        raise InstallError("delegate_failed", "installation_failed", {"cause": "handle_collision", "handle": handle})

    root["installed"][handle] = {
        "code": code,
        "code_hash": code_hash(code),
        "size": len(code),
        "creator": creator,
    }
    root["nonce"] = nonce + 1
    return handle


def installed_code(state: Json, handle: str) -> Optional[bytes]:
    root = state.get("code_store")
    if not isinstance(root, dict):
        return None
    rec = (root.get("installed") or {}).get(handle)
    if not isinstance(rec, dict):
        return None
    code = rec.get("code")
    return code if isinstance(code, bytes) else None


__all__ = [
    "CodeInstaller",
    "InstallError",
    "code_hash",
    "derive_handle",
    "install_code",
    "installed_code",
]
