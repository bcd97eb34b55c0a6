# src/gatekeep/contracts/__init__.py
"""Caller-facing components.

    from gatekeep.contracts import AccessControlledLedger, DeploymentGatekeeper
"""

from __future__ import annotations

from gatekeep.contracts.deployment import DeploymentGatekeeper
from gatekeep.contracts.token import AccessControlledLedger

__all__ = ["AccessControlledLedger", "DeploymentGatekeeper"]
