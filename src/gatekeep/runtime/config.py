# src/gatekeep/runtime/config.py
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

from gatekeep.env import load_dotenv_if_present
from gatekeep.ledger.constants import DEFAULT_MAX_CODE_SIZE

Json = Dict[str, Any]


def _as_int(v: Any, default: int) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        return int(default)


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


def _as_bool(v: Any, default: bool) -> bool:
    if v is None:
        return bool(default)
    if isinstance(v, bool):
        return v
    s = str(v).strip().lower()
    if s in {"1", "true", "yes", "y", "on"}:
        return True
    if s in {"0", "false", "no", "n", "off"}:
        return False
    return bool(default)


@dataclass(frozen=True)
class GatekeepConfig:
    # Level of the "gatekeep" logger tree; applied by apply_log_level().
    log_level: str

    # Reject payloads that do not match their pydantic schema at admission.
    enforce_tx_schema: bool

    # Installation primitive refuses blobs larger than this.
    max_code_size: int

    # Admission cap on the JSON size of non-code payload fields.
    max_payload_bytes: int


_ALLOWED_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def validate_config(cfg: GatekeepConfig) -> None:
    """Fail-fast validation for operator config."""

    if str(cfg.log_level or "").strip().upper() not in _ALLOWED_LEVELS:
        raise ValueError(f"log_level must be one of {_ALLOWED_LEVELS}; got: {cfg.log_level!r}")

    if int(cfg.max_code_size) <= 0:
        raise ValueError(f"max_code_size must be > 0; got: {cfg.max_code_size}")

    if int(cfg.max_payload_bytes) < 256:
        raise ValueError(f"max_payload_bytes must be >= 256; got: {cfg.max_payload_bytes}")


def default_config() -> GatekeepConfig:
    return GatekeepConfig(
        log_level="INFO",
        enforce_tx_schema=True,
        max_code_size=DEFAULT_MAX_CODE_SIZE,
        max_payload_bytes=64 * 1024,
    )


def _from_mapping(raw: Json, d: GatekeepConfig) -> GatekeepConfig:
    return GatekeepConfig(
        log_level=_as_str(raw.get("log_level"), d.log_level).strip().upper(),
        enforce_tx_schema=_as_bool(raw.get("enforce_tx_schema"), d.enforce_tx_schema),
        max_code_size=_as_int(raw.get("max_code_size"), d.max_code_size),
        max_payload_bytes=_as_int(raw.get("max_payload_bytes"), d.max_payload_bytes),
    )


def read_config_file(path: str) -> GatekeepConfig:
    p = Path(path)
    raw = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("gatekeep config must be a JSON object")
    return _from_mapping(raw, default_config())


def _apply_env_overrides(cfg: GatekeepConfig) -> GatekeepConfig:
    env: Json = {
        "log_level": os.environ.get("GATEKEEP_LOG_LEVEL"),
        "enforce_tx_schema": os.environ.get("GATEKEEP_ENFORCE_TX_SCHEMA"),
        "max_code_size": os.environ.get("GATEKEEP_MAX_CODE_SIZE"),
        "max_payload_bytes": os.environ.get("GATEKEEP_MAX_PAYLOAD_BYTES"),
    }
    return _from_mapping({k: v for k, v in env.items() if v is not None}, cfg)


def load_config(*, config_path: Optional[str] = None) -> GatekeepConfig:
    # .env first so GATEKEEP_* vars exist before anything reads them.
    load_dotenv_if_present()

    p = config_path or os.environ.get("GATEKEEP_CONFIG_PATH")
    cfg = read_config_file(p) if p else default_config()
    cfg = _apply_env_overrides(cfg)
    validate_config(cfg)
    return cfg


def apply_log_level(cfg: GatekeepConfig) -> None:
    """Set the level of the "gatekeep" logger tree from `cfg`.

    Handlers are left alone; configure_structured_logging() owns those.
    """
    validate_config(cfg)
    logging.getLogger("gatekeep").setLevel(cfg.log_level.strip().upper())


def with_overrides(cfg: GatekeepConfig, **changes: Any) -> GatekeepConfig:
    out = replace(cfg, **changes)
    validate_config(out)
    return out


__all__ = [
    "GatekeepConfig",
    "apply_log_level",
    "default_config",
    "load_config",
    "read_config_file",
    "validate_config",
    "with_overrides",
]
