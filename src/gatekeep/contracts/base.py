# src/gatekeep/contracts/base.py
from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Optional, Tuple

from gatekeep.runtime.apply_context import ApplyContext
from gatekeep.runtime.authority import admin_of
from gatekeep.runtime.config import GatekeepConfig, apply_log_level, load_config
from gatekeep.runtime.domain_apply import ApplyError, apply_tx_atomic
from gatekeep.runtime.events import Event, events_from_state
from gatekeep.runtime.structured_logging import log_event
from gatekeep.runtime.tx_admission import admit_tx
from gatekeep.runtime.tx_admission_types import TxEnvelope
from gatekeep.tx.canon import TxIndex, default_tx_index

Json = Dict[str, Any]


class Component:
    """Owns one component state and runs calls against it one at a time.

    Each call is admitted, then applied with apply_tx_atomic(); the caller
    either sees every effect of the call or none of them.
    """

    logger_name = "gatekeep"

    def __init__(
        self,
        state: Json,
        *,
        cfg: Optional[GatekeepConfig] = None,
        canon: Optional[TxIndex] = None,
        ctx: Optional[ApplyContext] = None,
    ) -> None:
        self._state = state
        self._cfg = cfg or load_config()
        apply_log_level(self._cfg)
        self._canon = canon or default_tx_index()
        self._ctx = ctx or ApplyContext(max_code_size=self._cfg.max_code_size)
        self._log = logging.getLogger(self.logger_name)

    # -- reads ---------------------------------------------------------------

    @property
    def owner(self) -> str:
        return admin_of(self._state)

    @property
    def events(self) -> Tuple[Event, ...]:
        return tuple(events_from_state(self._state))

    def snapshot(self) -> Json:
        return copy.deepcopy(self._state)

    def nonce_of(self, account: str) -> int:
        acct = self._state.get("accounts", {}).get(account)
        if not isinstance(acct, dict):
            return 0
        return int(acct.get("nonce", 0) or 0)

    # -- calls ---------------------------------------------------------------

    def _submit(self, signer: str, tx_type: str, payload: Json) -> Json:
        env = TxEnvelope(
            tx_type=tx_type,
            signer=str(signer or ""),
            nonce=self.nonce_of(str(signer or "")) + 1,
            payload=payload,
        )

        verdict = admit_tx(env, canon=self._canon, cfg=self._cfg)
        if not verdict.ok:
            self._rejected(env, verdict.code, verdict.reason, stage="admission")
            raise ApplyError(verdict.code, verdict.reason, verdict.details)

        try:
            meta = apply_tx_atomic(self._state, env, self._ctx)
        except ApplyError as e:
            self._rejected(env, e.code, e.reason, stage="apply")
            raise

        # Nonces only advance for committed calls.
        acct = self._state["accounts"].setdefault(env.signer, {})
        acct["nonce"] = int(env.nonce)

        log_event(self._log, "tx_applied", tx_type=env.tx_type, signer=env.signer, nonce=env.nonce)
        return meta

    def _rejected(self, env: TxEnvelope, code: str, reason: str, *, stage: str) -> None:
        log_event(
            self._log,
            "tx_rejected",
            level=logging.WARNING,
            stage=stage,
            tx_type=env.tx_type,
            signer=env.signer,
            code=code,
            reason=reason,
        )
