# src/gatekeep/runtime/domain_dispatch.py

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from gatekeep.runtime.apply.deployment import apply_deployment
from gatekeep.runtime.apply.token import apply_token
from gatekeep.runtime.apply_context import DEFAULT_CONTEXT, ApplyContext
from gatekeep.runtime.errors import ApplyError
from gatekeep.runtime.state_invariants import ensure_state
from gatekeep.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]
ApplyFn = Callable[[Json, Any, Optional[ApplyContext]], Optional[Json]]


def _tx_type(env: Any) -> str:
    if isinstance(env, dict):
        return str(env.get("tx_type", "") or "").strip().upper()
    return str(getattr(env, "tx_type", "") or "").strip().upper()


_APPLIERS: tuple[ApplyFn, ...] = (
    apply_token,
    apply_deployment,
)


def apply_tx(state: Json, env: Any, ctx: Optional[ApplyContext] = None) -> Json:
    """Dispatch a TxEnvelope to the first domain applier that claims it.

    This mutates `state` in place and is NOT atomic on its own; callers that
    need all-or-nothing semantics use domain_apply.apply_tx_atomic().
    """

    ensure_state(state)

    env_norm: Any = env
    if isinstance(env, dict):
        env_norm = TxEnvelope.from_json(env)

    t = _tx_type(env_norm)
    if not t:
        raise ApplyError("invalid_tx", "missing_tx_type", {"tx_type": t})

    for fn in _APPLIERS:
        try:
            out = fn(state, env_norm, ctx or DEFAULT_CONTEXT)
        except ApplyError:
            raise
        except Exception as e:
            code = getattr(e, "code", None)
            reason = getattr(e, "reason", None)
            details = getattr(e, "details", None)

            if code is not None or reason is not None:
                raise ApplyError(
                    str(code or "domain_error"),
                    str(reason or type(e).__name__),
                    details if details is not None else {"tx_type": t, "domain": fn.__name__},
                ) from e

            raise ApplyError(
                "domain_error",
                type(e).__name__,
                {"tx_type": t, "domain": fn.__name__, "error": str(e)},
            ) from e

        if out is not None:
            return out

    raise ApplyError("tx_unimplemented", "tx_type_not_implemented", {"tx_type": t})
