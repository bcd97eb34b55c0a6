from __future__ import annotations

"""Transaction payload schemas.

Shape validation (types, required keys, no unknown keys) for every canon
TxType. Validation is invoked by tx_admission when the config enables
`enforce_tx_schema`.

Semantic rules (positive limits, null targets, authorization) are NOT
expressed here: the apply layer owns them so each failure keeps its own
distinct reason regardless of whether schemas are enforced.
"""

from typing import Any, Dict, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, StrictBool, StrictBytes, StrictInt, StrictStr, ValidationError

Json = Dict[str, Any]


class _StrictModel(BaseModel):
    """Strict model: reject unknown keys."""

    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------------
# Token
# ---------------------------------------------------------------------------


class TokenTransferPayload(_StrictModel):
    recipient: StrictStr
    amount: StrictInt


class TokenApprovePayload(_StrictModel):
    spender: StrictStr
    amount: StrictInt


class TokenTransferFromPayload(_StrictModel):
    owner: StrictStr
    recipient: StrictStr
    amount: StrictInt


class TokenBlacklistSetPayload(_StrictModel):
    account: StrictStr
    flag: StrictBool


class TokenMaxAmountSetPayload(_StrictModel):
    new_amount: StrictInt


# ---------------------------------------------------------------------------
# Deployment
# ---------------------------------------------------------------------------


class CodeHashPayload(_StrictModel):
    code_hash: StrictStr


class CodeInstallPayload(_StrictModel):
    code: StrictBytes


class EmptyPayload(_StrictModel):
    pass


Schema = Type[BaseModel]

_SCHEMA_BY_TX_TYPE: Dict[str, Schema] = {
    "TOKEN_TRANSFER": TokenTransferPayload,
    "TOKEN_APPROVE": TokenApprovePayload,
    "TOKEN_TRANSFER_FROM": TokenTransferFromPayload,
    "TOKEN_BLACKLIST_SET": TokenBlacklistSetPayload,
    "TOKEN_MAX_AMOUNT_SET": TokenMaxAmountSetPayload,
    "CODE_HASH_BAN": CodeHashPayload,
    "CODE_HASH_UNBAN": CodeHashPayload,
    "CODE_INSTALL": CodeInstallPayload,
    "DEPLOYMENTS_PAUSE": EmptyPayload,
    "DEPLOYMENTS_UNPAUSE": EmptyPayload,
}


def schema_for(tx_type: str) -> Optional[Schema]:
    return _SCHEMA_BY_TX_TYPE.get(str(tx_type or "").strip().upper())


def validate_payload(*, tx_type: str, payload: Any) -> Tuple[bool, str, str, Optional[Json]]:
    """Validate payload against its schema.

    Returns: (ok, code, reason, details)
    """
    sch = schema_for(tx_type)
    if sch is None:
        return False, "schema:missing", "no_schema_for_tx_type", {"tx_type": tx_type}

    if not isinstance(payload, dict):
        return False, "schema:payload_not_object", "payload_must_be_object", None

    try:
        sch(**payload)
    except ValidationError as ve:
        errors = [{"loc": list(e.get("loc", ())), "type": e.get("type", "")} for e in ve.errors()]
        return False, "schema:validation_error", "payload_schema_mismatch", {"errors": errors}
    return True, "", "", None


__all__ = ["schema_for", "validate_payload"]
