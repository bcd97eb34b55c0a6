# src/gatekeep/tx/canon.py
from __future__ import annotations

import hashlib
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, TypedDict

import yaml

DEFAULT_CANON_PATH = Path(__file__).resolve().parent / "tx_canon.yaml"


class CanonError(RuntimeError):
    pass


class CanonTxType(TypedDict, total=False):
    """
    Canonical TxType entry.

    total=False so we can carry extra forward-compatible fields
    while validating required fields at load-time.
    """
    id: int
    name: str
    domain: str
    notes: str


@dataclass(frozen=True)
class TxIndex:
    """Normalized TxType index."""

    tx_types: List[CanonTxType]
    by_name: Dict[str, CanonTxType]
    by_id: Dict[int, CanonTxType]
    meta: Dict[str, Any]
    source_sha256: str

    def get(self, name: str) -> Optional[CanonTxType]:
        return self.by_name.get(str(name or "").strip().upper())

    def names_for_domain(self, domain: str) -> List[str]:
        return [t["name"] for t in self.tx_types if t.get("domain") == domain]

    @classmethod
    def load_from_file(cls, path: str | Path) -> "TxIndex":
        return load_tx_canon_yaml(path)


def _sha256_bytes(data: bytes) -> str:
    h = hashlib.sha256()
    h.update(data)
    return h.hexdigest()


def _normalize_id(v: Any) -> Optional[int]:
    if isinstance(v, bool):
        return None
    if isinstance(v, int):
        return v
    if isinstance(v, str) and v.strip().isdigit():
        return int(v.strip())
    return None


def _validate_entry(tx: Any) -> CanonTxType:
    if not isinstance(tx, dict):
        raise CanonError("tx entry must be an object")

    if "name" not in tx:
        raise CanonError("tx entry missing required field: name")
    if "id" not in tx:
        raise CanonError(f"tx '{tx.get('name', '?')}' missing required field: id")

    name = tx.get("name")
    if not isinstance(name, str) or not name.strip():
        raise CanonError("tx entry 'name' must be non-empty string")

    norm_id = _normalize_id(tx.get("id"))
    if norm_id is None:
        raise CanonError(f"tx '{name}' id must be int (or numeric-string)")

    out: CanonTxType = dict(tx)  # type: ignore[assignment]
    out["id"] = norm_id
    out["name"] = name.strip().upper()
    out["domain"] = str(tx.get("domain") or "").strip()
    return out


def load_tx_canon_yaml(path: str | Path = DEFAULT_CANON_PATH) -> TxIndex:
    """Load the YAML canon and return a normalized index.

    Duplicated names or ids mean the canon is malformed and are rejected.
    """
    p = Path(path)
    if not p.is_file():
        raise CanonError(f"canon artifact not found: {p}")

    raw = p.read_bytes()
    try:
        obj = yaml.safe_load(raw.decode("utf-8"))
    except yaml.YAMLError as e:
        raise CanonError(f"failed to parse {p.name}: {e}") from e

    if not isinstance(obj, dict):
        raise CanonError("canon must be a mapping with a 'tx_types' list")

    txs = obj.get("tx_types")
    if not isinstance(txs, list) or not txs:
        raise CanonError("canon does not contain tx entries")

    tx_list: List[CanonTxType] = []
    by_name: Dict[str, CanonTxType] = {}
    by_id: Dict[int, CanonTxType] = {}

    for it in txs:
        tx = _validate_entry(it)
        name = tx["name"]
        tx_id = int(tx["id"])
        if name in by_name:
            raise CanonError(f"duplicate tx name in canon: {name}")
        if tx_id in by_id:
            raise CanonError(f"duplicate tx id in canon: {tx_id}")
        by_name[name] = tx
        by_id[tx_id] = tx
        tx_list.append(tx)

    tx_list.sort(key=lambda t: int(t["id"]))
    meta = {k: v for k, v in obj.items() if k != "tx_types"}
    meta["_source"] = str(p)

    return TxIndex(
        tx_types=tx_list,
        by_name=by_name,
        by_id=by_id,
        meta=meta,
        source_sha256=_sha256_bytes(raw),
    )


@lru_cache(maxsize=1)
def default_tx_index() -> TxIndex:
    """The canon shipped with the package, loaded once."""
    return load_tx_canon_yaml(DEFAULT_CANON_PATH)


__all__ = [
    "CanonError",
    "CanonTxType",
    "TxIndex",
    "DEFAULT_CANON_PATH",
    "default_tx_index",
    "load_tx_canon_yaml",
]
