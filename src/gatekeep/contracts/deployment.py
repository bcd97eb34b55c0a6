# src/gatekeep/contracts/deployment.py
from __future__ import annotations

from typing import Optional, Union

from gatekeep.contracts.base import Component
from gatekeep.ledger.code_store import CodeInstaller, installed_code
from gatekeep.runtime.apply import deployment as deployment_apply
from gatekeep.runtime.apply.deployment import PauseState
from gatekeep.runtime.apply_context import ApplyContext
from gatekeep.runtime.config import GatekeepConfig, load_config

Blob = Union[bytes, bytearray, memoryview]


class DeploymentGatekeeper(Component):
    """Authorizes code installation by content hash, with a global pause switch.

    `install` is open to anyone while ACTIVE; everything else is admin-only.
    A custom `installer` replaces the built-in installation primitive.
    """

    logger_name = "gatekeep.deployment"

    def __init__(
        self,
        admin: str,
        *,
        self_address: Optional[str] = None,
        installer: Optional[CodeInstaller] = None,
        cfg: Optional[GatekeepConfig] = None,
    ) -> None:
        conf = cfg or load_config()
        state = deployment_apply.init_deployment_state(admin=admin, self_address=self_address)
        super().__init__(
            state,
            cfg=conf,
            ctx=ApplyContext(max_code_size=conf.max_code_size, installer=installer),
        )

    # -- reads ---------------------------------------------------------------

    @property
    def address(self) -> str:
        return str(self._state["params"].get("self_address", ""))

    @property
    def pause_state(self) -> PauseState:
        return deployment_apply.pause_state(self._state)

    @property
    def paused(self) -> bool:
        return self.pause_state is PauseState.PAUSED

    def is_banned(self, code_hash: str) -> bool:
        return deployment_apply.is_banned(self._state, code_hash)

    def code_at(self, handle: str) -> Optional[bytes]:
        return installed_code(self._state, handle)

    # -- calls ---------------------------------------------------------------

    def ban_hash(self, caller: str, code_hash: str) -> None:
        self._submit(caller, "CODE_HASH_BAN", {"code_hash": code_hash})

    def unban_hash(self, caller: str, code_hash: str) -> None:
        self._submit(caller, "CODE_HASH_UNBAN", {"code_hash": code_hash})

    def install(self, caller: str, code: Blob) -> str:
        blob = code if isinstance(code, bytes) else bytes(code)
        meta = self._submit(caller, "CODE_INSTALL", {"code": blob})
        return str(meta["handle"])

    def pause(self, caller: str) -> None:
        self._submit(caller, "DEPLOYMENTS_PAUSE", {})

    def unpause(self, caller: str) -> None:
        self._submit(caller, "DEPLOYMENTS_UNPAUSE", {})
