# src/gatekeep/runtime/apply/__init__.py
"""Domain-specific apply modules.

These modules implement deterministic state transitions for subsets of tx
types. domain_dispatch routes an envelope to the first module that claims it.

NOTE: Keep this package import-safe (no imports of domain_dispatch).
"""

from __future__ import annotations

__all__ = [
    "token",
    "deployment",
]
