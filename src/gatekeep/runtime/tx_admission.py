from __future__ import annotations

import json
from typing import Any, Dict, Optional

from gatekeep.runtime.config import GatekeepConfig, default_config
from gatekeep.runtime.tx_admission_types import TxEnvelope, TxVerdict
from gatekeep.runtime.tx_schema import validate_payload
from gatekeep.tx.canon import TxIndex, default_tx_index

Json = Dict[str, Any]


def _jsonable(obj: Any) -> Any:
    # Code blobs are capped by the installer, not by the payload size limit.
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return len(obj)
    if isinstance(obj, dict):
        return {str(k): _jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_jsonable(v) for v in obj]
    return obj


def _json_size_bytes(obj: Any) -> int:
    """Compute JSON byte size. If not serializable, return -1 (unknown)."""
    try:
        return len(json.dumps(_jsonable(obj), separators=(",", ":"), ensure_ascii=False, sort_keys=True).encode("utf-8"))
    except (TypeError, ValueError):
        return -1


def admit_tx(
    env: Any,
    *,
    canon: Optional[TxIndex] = None,
    cfg: Optional[GatekeepConfig] = None,
) -> TxVerdict:
    """Envelope-level checks that run before a tx reaches the apply layer.

    Never raises; the verdict carries the rejection reason.
    """
    idx = canon or default_tx_index()
    conf = cfg or default_config()

    try:
        e = TxEnvelope.from_json(env)
    except (TypeError, ValueError) as ex:
        return TxVerdict.reject("invalid_tx", "malformed_envelope", {"error": str(ex)})

    t = str(e.tx_type or "").strip().upper()
    if not t:
        return TxVerdict.reject("invalid_tx", "missing_tx_type")

    txdef = idx.get(t)
    if txdef is None:
        return TxVerdict.reject("tx_unknown", "tx_type_not_in_canon", {"tx_type": t})

    if not str(e.signer or "").strip():
        return TxVerdict.reject("invalid_tx", "missing_signer", {"tx_type": t})

    if not isinstance(e.payload, dict):
        return TxVerdict.reject("invalid_payload", "payload_must_be_object", {"tx_type": t})

    size = _json_size_bytes(e.payload)
    if size < 0:
        return TxVerdict.reject("invalid_payload", "payload_not_serializable", {"tx_type": t})
    if size > int(conf.max_payload_bytes):
        return TxVerdict.reject(
            "invalid_payload",
            "payload_too_large",
            {"tx_type": t, "size": size, "max": int(conf.max_payload_bytes)},
        )

    if conf.enforce_tx_schema:
        ok, code, reason, details = validate_payload(tx_type=t, payload=e.payload)
        if not ok:
            return TxVerdict.reject(code, reason, details)

    return TxVerdict.admit()


__all__ = ["admit_tx"]
