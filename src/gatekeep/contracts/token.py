# src/gatekeep/contracts/token.py
from __future__ import annotations

from typing import Optional

from gatekeep.contracts.base import Component
from gatekeep.ledger import balances
from gatekeep.runtime.apply import token as token_apply
from gatekeep.runtime.config import GatekeepConfig


class AccessControlledLedger(Component):
    """Fungible token whose every transfer is gated by a blacklist and a
    per-transfer maximum, both managed by a single administrator.

    The constructing identity (`admin`) receives the whole initial supply.
    Every mutating method takes the caller identity first and raises
    ApplyError on failure without changing any state.
    """

    logger_name = "gatekeep.token"

    def __init__(
        self,
        admin: str,
        *,
        initial_supply: int,
        max_amount: int,
        name: str = "",
        symbol: str = "",
        cfg: Optional[GatekeepConfig] = None,
    ) -> None:
        state = token_apply.init_token_state(
            admin=admin,
            name=name,
            symbol=symbol,
            initial_supply=initial_supply,
            max_amount=max_amount,
        )
        super().__init__(state, cfg=cfg)

    # -- reads ---------------------------------------------------------------

    @property
    def name(self) -> str:
        return str(self._state["token"].get("name", ""))

    @property
    def symbol(self) -> str:
        return str(self._state["token"].get("symbol", ""))

    @property
    def max_amount(self) -> int:
        return token_apply.max_amount(self._state)

    @property
    def total_supply(self) -> int:
        return balances.total_supply(self._state)

    def balance_of(self, account: str) -> int:
        return balances.balance_of(self._state, account)

    def allowance(self, owner: str, spender: str) -> int:
        return balances.allowance(self._state, owner, spender)

    def is_blacklisted(self, account: str) -> bool:
        return token_apply.is_blacklisted(self._state, account)

    # -- transfers -----------------------------------------------------------

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        self._submit(sender, "TOKEN_TRANSFER", {"recipient": recipient, "amount": amount})
        return True

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        self._submit(owner, "TOKEN_APPROVE", {"spender": spender, "amount": amount})
        return True

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> bool:
        self._submit(spender, "TOKEN_TRANSFER_FROM", {"owner": owner, "recipient": recipient, "amount": amount})
        return True

    # -- management ----------------------------------------------------------

    def set_blacklisted(self, caller: str, account: str, flag: bool) -> None:
        self._submit(caller, "TOKEN_BLACKLIST_SET", {"account": account, "flag": flag})

    def set_max_amount(self, caller: str, new_amount: int) -> None:
        self._submit(caller, "TOKEN_MAX_AMOUNT_SET", {"new_amount": new_amount})
