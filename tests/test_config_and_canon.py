# tests/test_config_and_canon.py
from __future__ import annotations

import json
import logging
import os
from pathlib import Path

import pytest

from gatekeep import env as gk_env
from gatekeep.contracts import AccessControlledLedger
from gatekeep.runtime.config import GatekeepConfig, default_config, load_config, validate_config, with_overrides
from gatekeep.runtime.apply.deployment import DEPLOYMENT_TX_TYPES
from gatekeep.runtime.apply.token import TOKEN_TX_TYPES
from gatekeep.runtime.structured_logging import configure_structured_logging
from gatekeep.runtime.tx_schema import schema_for
from gatekeep.tx.canon import CanonError, default_tx_index, load_tx_canon_yaml


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    for k in (
        "GATEKEEP_CONFIG_PATH",
        "GATEKEEP_LOG_LEVEL",
        "GATEKEEP_ENFORCE_TX_SCHEMA",
        "GATEKEEP_MAX_CODE_SIZE",
        "GATEKEEP_MAX_PAYLOAD_BYTES",
    ):
        monkeypatch.delenv(k, raising=False)
    monkeypatch.setenv("GATEKEEP_DOTENV_PATH", str(tmp_path / "missing.env"))
    gk_env._reset_for_tests()
    yield
    gk_env._reset_for_tests()


def test_defaults_are_valid() -> None:
    cfg = load_config()
    assert cfg == default_config()
    assert cfg.log_level == "INFO"
    assert cfg.enforce_tx_schema is True


def test_file_then_env_override(tmp_path: Path, monkeypatch) -> None:
    p = tmp_path / "gatekeep.json"
    p.write_text(json.dumps({"max_code_size": 1024, "log_level": "debug"}), encoding="utf-8")
    monkeypatch.setenv("GATEKEEP_MAX_CODE_SIZE", "2048")

    cfg = load_config(config_path=str(p))
    assert cfg.log_level == "DEBUG"
    assert cfg.max_code_size == 2048


def test_dotenv_is_loaded(tmp_path: Path, monkeypatch) -> None:
    dot = tmp_path / ".env"
    dot.write_text("GATEKEEP_LOG_LEVEL=error\n", encoding="utf-8")
    monkeypatch.setenv("GATEKEEP_DOTENV_PATH", str(dot))

    try:
        cfg = load_config()
        assert cfg.log_level == "ERROR"
    finally:
        os.environ.pop("GATEKEEP_LOG_LEVEL", None)


def test_invalid_values_fail_fast() -> None:
    with pytest.raises(ValueError):
        with_overrides(default_config(), log_level="chatty")
    with pytest.raises(ValueError):
        with_overrides(default_config(), max_code_size=0)
    with pytest.raises(ValueError):
        validate_config(
            GatekeepConfig(log_level="INFO", enforce_tx_schema=True, max_code_size=1, max_payload_bytes=16)
        )


def test_config_file_must_be_object(tmp_path: Path) -> None:
    p = tmp_path / "bad.json"
    p.write_text("[]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(config_path=str(p))


def test_canon_matches_appliers_and_schemas() -> None:
    idx = default_tx_index()
    names = {t["name"] for t in idx.tx_types}
    assert names == TOKEN_TX_TYPES | DEPLOYMENT_TX_TYPES
    for n in names:
        assert schema_for(n) is not None
    assert set(idx.names_for_domain("Deployment")) == DEPLOYMENT_TX_TYPES
    assert idx.get("code_install")["id"] == 103
    assert idx.get("code_install")["domain"] == "Deployment"
    assert len(idx.source_sha256) == 64


def test_canon_rejects_duplicates(tmp_path: Path) -> None:
    p = tmp_path / "canon.yaml"
    p.write_text(
        "tx_types:\n  - {id: 1, name: A}\n  - {id: 1, name: B}\n",
        encoding="utf-8",
    )
    with pytest.raises(CanonError):
        load_tx_canon_yaml(p)


def test_canon_rejects_entry_without_id(tmp_path: Path) -> None:
    p = tmp_path / "canon.yaml"
    p.write_text("tx_types:\n  - {name: A, domain: Token}\n", encoding="utf-8")
    with pytest.raises(CanonError):
        load_tx_canon_yaml(p)


def test_structured_logging_is_idempotent() -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    saved_flag = getattr(root, "_gatekeep_configured", None)
    try:
        if hasattr(root, "_gatekeep_configured"):
            delattr(root, "_gatekeep_configured")
        configure_structured_logging("debug")
        configure_structured_logging("warning")
        assert len(root.handlers) == 1
        assert root.level == logging.WARNING
    finally:
        root.handlers = saved_handlers
        root.setLevel(saved_level)
        if saved_flag is None and hasattr(root, "_gatekeep_configured"):
            delattr(root, "_gatekeep_configured")


def test_component_applies_configured_log_level() -> None:
    pkg = logging.getLogger("gatekeep")
    saved = pkg.level
    try:
        cfg = with_overrides(default_config(), log_level="warning")
        AccessControlledLedger("admin", initial_supply=1, max_amount=1, cfg=cfg)
        assert pkg.level == logging.WARNING
        assert not logging.getLogger("gatekeep.token").isEnabledFor(logging.INFO)

        AccessControlledLedger("admin", initial_supply=1, max_amount=1)
        assert pkg.level == logging.INFO
    finally:
        pkg.setLevel(saved)
