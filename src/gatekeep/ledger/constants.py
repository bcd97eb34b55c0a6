# src/gatekeep/ledger/constants.py
from __future__ import annotations

"""Reserved sentinels shared by both components."""

# "No account". Never a valid party to a transfer or a blacklist target.
ZERO_ADDRESS: str = "0x" + "0" * 40

# Hash of nothing meaningful; cannot be banned.
ZERO_HASH: str = "0" * 64

# Upper bound on installable code (bytes). Overridable via config.
DEFAULT_MAX_CODE_SIZE: int = 49_152

STATE_VERSION: int = 1


def is_null_address(account: object) -> bool:
    if not isinstance(account, str):
        return True
    a = account.strip().lower()
    return a == "" or a == ZERO_ADDRESS


__all__ = [
    "ZERO_ADDRESS",
    "ZERO_HASH",
    "DEFAULT_MAX_CODE_SIZE",
    "STATE_VERSION",
    "is_null_address",
]
