# src/gatekeep/ledger/balances.py
from __future__ import annotations

"""Fungible balance primitive.

The access-controlled token delegates every balance movement here once its
own gates have passed. This module knows nothing about blacklists or limits;
it enforces only its own bookkeeping rules (non-null parties, non-negative
amounts, no overdraft).

State shape:
state["balances"] = {
  "by_account": { "<acct>": int },
  "allowances": { "<owner>": { "<spender>": int } },
  "total_supply": int,
}
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from gatekeep.ledger.constants import ZERO_ADDRESS, is_null_address
from gatekeep.runtime.errors import ApplyError
from gatekeep.runtime.events import Approval, Transfer, emit

Json = Dict[str, Any]


@dataclass
class BalanceError(ApplyError):
    code: str
    reason: str
    details: Optional[Json] = None


def _ensure_root(state: Json) -> Json:
    root = state.get("balances")
    if not isinstance(root, dict):
        root = {}
        state["balances"] = root
    root.setdefault("by_account", {})
    root.setdefault("allowances", {})
    root.setdefault("total_supply", 0)
    return root


def _require_amount(amount: Any) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise BalanceError("invalid_payload", "invalid_amount", {"amount": amount})
    return amount


def balance_of(state: Json, account: str) -> int:
    root = state.get("balances")
    if not isinstance(root, dict):
        return 0
    by = root.get("by_account")
    if not isinstance(by, dict):
        return 0
    return int(by.get(account, 0) or 0)


def total_supply(state: Json) -> int:
    root = state.get("balances")
    if not isinstance(root, dict):
        return 0
    return int(root.get("total_supply", 0) or 0)


def allowance(state: Json, owner: str, spender: str) -> int:
    root = state.get("balances")
    if not isinstance(root, dict):
        return 0
    per_owner = (root.get("allowances") or {}).get(owner)
    if not isinstance(per_owner, dict):
        return 0
    return int(per_owner.get(spender, 0) or 0)


def mint(state: Json, account: str, amount: int, *, at_nonce: int = 0) -> None:
    if is_null_address(account):
        raise BalanceError("delegate_failed", "invalid_receiver", {"recipient": account})
    amt = _require_amount(amount)

    root = _ensure_root(state)
    by = root["by_account"]
    by[account] = int(by.get(account, 0)) + amt
    root["total_supply"] = int(root["total_supply"]) + amt
    emit(state, Transfer(sender=ZERO_ADDRESS, recipient=account, amount=amt), at_nonce=at_nonce)


def transfer(state: Json, sender: str, recipient: str, amount: int, *, at_nonce: int = 0) -> None:
    """Move `amount` from sender to recipient or raise BalanceError."""

    if is_null_address(sender):
        raise BalanceError("delegate_failed", "invalid_sender", {"sender": sender})
    if is_null_address(recipient):
        raise BalanceError("delegate_failed", "invalid_receiver", {"recipient": recipient})
    amt = _require_amount(amount)

    root = _ensure_root(state)
    by = root["by_account"]
    have = int(by.get(sender, 0))
    if have < amt:
        raise BalanceError(
            "delegate_failed",
            "insufficient_balance",
            {"sender": sender, "balance": have, "needed": amt},
        )

    by[sender] = have - amt
    by[recipient] = int(by.get(recipient, 0)) + amt
    emit(state, Transfer(sender=sender, recipient=recipient, amount=amt), at_nonce=at_nonce)


def approve(state: Json, owner: str, spender: str, amount: int, *, at_nonce: int = 0) -> None:
    if is_null_address(owner):
        raise BalanceError("delegate_failed", "invalid_approver", {"owner": owner})
    if is_null_address(spender):
        raise BalanceError("delegate_failed", "invalid_spender", {"spender": spender})
    amt = _require_amount(amount)

    root = _ensure_root(state)
    per_owner = root["allowances"].setdefault(owner, {})
    per_owner[spender] = amt
    emit(state, Approval(owner=owner, spender=spender, amount=amt), at_nonce=at_nonce)


def spend_allowance(state: Json, owner: str, spender: str, amount: int) -> None:
    amt = _require_amount(amount)
    current = allowance(state, owner, spender)
    if current < amt:
        raise BalanceError(
            "delegate_failed",
            "insufficient_allowance",
            {"owner": owner, "spender": spender, "allowance": current, "needed": amt},
        )
    root = _ensure_root(state)
    root["allowances"].setdefault(owner, {})[spender] = current - amt


__all__ = [
    "BalanceError",
    "allowance",
    "approve",
    "balance_of",
    "mint",
    "spend_allowance",
    "total_supply",
    "transfer",
]
