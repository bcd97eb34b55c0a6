# src/gatekeep/runtime/apply/token.py
from __future__ import annotations

"""
Access-controlled token apply semantics.

Every balance movement (direct or delegated) passes through gated_transfer(),
which checks, in order and each with its own reason:

  1. sender is not blacklisted       -> rejected:sender_blacklisted
  2. recipient is not blacklisted    -> rejected:recipient_blacklisted
  3. amount <= max_amount            -> rejected:amount_exceeds_max

and only then delegates to ledger.balances.transfer() unchanged.

Management txs (TOKEN_BLACKLIST_SET, TOKEN_MAX_AMOUNT_SET) are admin-only.

State shape:
state["params"]["admin"] = "<acct>"
state["token"] = {
  "name": str,
  "symbol": str,
  "max_amount": int,
  "blacklist": { "<acct>": bool },
}
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Set

from gatekeep.ledger import balances
from gatekeep.ledger.constants import STATE_VERSION, is_null_address
from gatekeep.runtime.apply_context import ApplyContext
from gatekeep.runtime.authority import require_admin
from gatekeep.runtime.errors import ApplyError
from gatekeep.runtime.events import BlacklistUpdated, MaxAmountUpdated, emit
from gatekeep.runtime.state_invariants import ensure_state
from gatekeep.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]


@dataclass
class TokenApplyError(ApplyError):
    code: str
    reason: str
    details: Optional[Json] = None


def _as_dict(v: Any) -> Json:
    return v if isinstance(v, dict) else {}


def _as_account(v: Any) -> str:
    # Account ids are keys; they are used exactly as given, like env.signer.
    return v if isinstance(v, str) else ""


def _as_amount(v: Any) -> int:
    if isinstance(v, bool) or not isinstance(v, int) or v < 0:
        raise TokenApplyError("invalid_payload", "invalid_amount", {"amount": v})
    return v


def _token_root(state: Json) -> Json:
    tok = state.get("token")
    if not isinstance(tok, dict):
        raise TokenApplyError("invalid_state", "token_not_initialized")
    if not isinstance(tok.get("blacklist"), dict):
        tok["blacklist"] = {}
    return tok


# ---------------------------------------------------------------------------
# Construction + read accessors
# ---------------------------------------------------------------------------


def init_token_state(
    *,
    admin: str,
    name: str,
    symbol: str,
    initial_supply: int,
    max_amount: int,
) -> Json:
    """Build a fresh token state.

    The full initial supply is credited to `admin`. A zero max_amount is
    accepted here; every later update must be strictly positive.
    """
    admin_s = admin if isinstance(admin, str) else ""
    if is_null_address(admin_s.strip()):
        raise TokenApplyError("invalid_payload", "null_admin")
    if isinstance(max_amount, bool) or not isinstance(max_amount, int) or max_amount < 0:
        raise TokenApplyError("invalid_payload", "invalid_max_amount", {"max_amount": max_amount})

    st = ensure_state({})
    st["version"] = STATE_VERSION
    st["params"]["admin"] = admin_s
    st["token"] = {
        "name": str(name),
        "symbol": str(symbol),
        "max_amount": int(max_amount),
        "blacklist": {},
    }
    balances.mint(st, admin_s, _as_amount(initial_supply))
    return st


def is_blacklisted(state: Json, account: str) -> bool:
    bl = _as_dict(_as_dict(state.get("token")).get("blacklist"))
    return bool(bl.get(account, False))


def max_amount(state: Json) -> int:
    return int(_as_dict(state.get("token")).get("max_amount", 0) or 0)


# ---------------------------------------------------------------------------
# Gate
# ---------------------------------------------------------------------------


def gated_transfer(state: Json, sender: str, recipient: str, amount: int, *, at_nonce: int = 0) -> None:
    tok = _token_root(state)
    bl = tok["blacklist"]

    if bool(bl.get(sender, False)):
        raise TokenApplyError("rejected", "sender_blacklisted", {"sender": sender})
    if bool(bl.get(recipient, False)):
        raise TokenApplyError("rejected", "recipient_blacklisted", {"recipient": recipient})

    limit = int(tok.get("max_amount", 0))
    if amount > limit:
        raise TokenApplyError("rejected", "amount_exceeds_max", {"amount": amount, "max_amount": limit})

    balances.transfer(state, sender, recipient, amount, at_nonce=at_nonce)


# ---------------------------------------------------------------------------
# Appliers
# ---------------------------------------------------------------------------


def _apply_transfer(state: Json, env: TxEnvelope) -> Json:
    payload = _as_dict(env.payload)
    recipient = _as_account(payload.get("recipient"))
    amount = _as_amount(payload.get("amount"))

    gated_transfer(state, env.signer, recipient, amount, at_nonce=int(env.nonce))
    return {"applied": "TOKEN_TRANSFER", "sender": env.signer, "recipient": recipient, "amount": amount}


def _apply_approve(state: Json, env: TxEnvelope) -> Json:
    _token_root(state)
    payload = _as_dict(env.payload)
    spender = _as_account(payload.get("spender"))
    amount = _as_amount(payload.get("amount"))

    balances.approve(state, env.signer, spender, amount, at_nonce=int(env.nonce))
    return {"applied": "TOKEN_APPROVE", "owner": env.signer, "spender": spender, "amount": amount}


def _apply_transfer_from(state: Json, env: TxEnvelope) -> Json:
    payload = _as_dict(env.payload)
    owner = _as_account(payload.get("owner"))
    recipient = _as_account(payload.get("recipient"))
    amount = _as_amount(payload.get("amount"))

    # Allowance is spent first; a gate rejection below aborts the whole call
    # and the snapshot (allowance included) is discarded.
    balances.spend_allowance(state, owner, env.signer, amount)
    gated_transfer(state, owner, recipient, amount, at_nonce=int(env.nonce))
    return {
        "applied": "TOKEN_TRANSFER_FROM",
        "spender": env.signer,
        "sender": owner,
        "recipient": recipient,
        "amount": amount,
    }


def _apply_blacklist_set(state: Json, env: TxEnvelope) -> Json:
    require_admin(state, env)
    tok = _token_root(state)

    payload = _as_dict(env.payload)
    account = _as_account(payload.get("account"))
    if is_null_address(account):
        raise TokenApplyError("invalid_payload", "null_account", {"account": payload.get("account")})

    flag = payload.get("flag")
    if not isinstance(flag, bool):
        raise TokenApplyError("invalid_payload", "invalid_flag", {"flag": flag})

    # Re-asserting the current value is allowed and still notifies.
    tok["blacklist"][account] = flag
    emit(state, BlacklistUpdated(account=account, flag=flag), at_nonce=int(env.nonce))
    return {"applied": "TOKEN_BLACKLIST_SET", "account": account, "flag": flag}


def _apply_max_amount_set(state: Json, env: TxEnvelope) -> Json:
    require_admin(state, env)
    tok = _token_root(state)

    payload = _as_dict(env.payload)
    new_amount = payload.get("new_amount")
    if isinstance(new_amount, bool) or not isinstance(new_amount, int):
        raise TokenApplyError("invalid_payload", "invalid_amount", {"new_amount": new_amount})
    if new_amount <= 0:
        raise TokenApplyError("invalid_payload", "max_amount_must_be_positive", {"new_amount": new_amount})

    tok["max_amount"] = new_amount
    emit(state, MaxAmountUpdated(new_amount=new_amount), at_nonce=int(env.nonce))
    return {"applied": "TOKEN_MAX_AMOUNT_SET", "new_amount": new_amount}


TOKEN_TX_TYPES: Set[str] = {
    "TOKEN_TRANSFER",
    "TOKEN_APPROVE",
    "TOKEN_TRANSFER_FROM",
    "TOKEN_BLACKLIST_SET",
    "TOKEN_MAX_AMOUNT_SET",
}


def apply_token(state: Json, env: TxEnvelope, ctx: Optional[ApplyContext] = None) -> Optional[Json]:
    t = str(env.tx_type or "").strip().upper()
    if t not in TOKEN_TX_TYPES:
        return None

    if t == "TOKEN_TRANSFER":
        return _apply_transfer(state, env)
    if t == "TOKEN_APPROVE":
        return _apply_approve(state, env)
    if t == "TOKEN_TRANSFER_FROM":
        return _apply_transfer_from(state, env)
    if t == "TOKEN_BLACKLIST_SET":
        return _apply_blacklist_set(state, env)
    if t == "TOKEN_MAX_AMOUNT_SET":
        return _apply_max_amount_set(state, env)

    return None
