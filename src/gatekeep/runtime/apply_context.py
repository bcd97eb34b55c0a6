# src/gatekeep/runtime/apply_context.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from gatekeep.ledger.code_store import CodeInstaller
from gatekeep.ledger.constants import DEFAULT_MAX_CODE_SIZE


@dataclass(frozen=True)
class ApplyContext:
    """Host-provided collaborators for a single apply call."""

    max_code_size: int = DEFAULT_MAX_CODE_SIZE

    # Overrides the built-in installation primitive (ledger.code_store.install_code).
    installer: Optional[CodeInstaller] = None


DEFAULT_CONTEXT = ApplyContext()
