# src/gatekeep/runtime/domain_apply.py
# ---------------------------------------------------------------------------
# Public, stable import path for applying tx envelopes.
# ---------------------------------------------------------------------------

from __future__ import annotations

import copy
from typing import Any, Dict, Optional

from gatekeep.runtime.apply_context import ApplyContext
from gatekeep.runtime.domain_dispatch import apply_tx
from gatekeep.runtime.errors import ApplyError
from gatekeep.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]


def apply_tx_atomic(state: Json, env: Any, ctx: Optional[ApplyContext] = None) -> Json:
    """Apply a tx with fail-atomic semantics.

    On success:
      - state is updated as if apply_tx() ran directly.

    On ApplyError:
      - state remains unchanged (registries, balances and event log alike).

    Appliers validate and mutate interleaved, so they run on a deep copy.
    The event log is append-only and is not copied: the call emits into a
    fresh list that is appended to the committed log on success.
    """

    env_norm: Any = env
    if isinstance(env, dict):
        env_norm = TxEnvelope.from_json(env)

    log = state.get("events")
    if not isinstance(log, list):
        log = None

    snapshot: Json = {}
    for k, v in state.items():
        snapshot[k] = [] if (k == "events" and log is not None) else copy.deepcopy(v)
    meta = apply_tx(snapshot, env_norm, ctx)

    if log is not None:
        log.extend(snapshot.pop("events", None) or [])
        snapshot["events"] = log

    # Commit by replacing contents in-place so callers holding references
    # to `state` see the updated view.
    state.clear()
    state.update(snapshot)
    return meta


__all__ = ["ApplyError", "apply_tx", "apply_tx_atomic", "Json"]
