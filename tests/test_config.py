from __future__ import annotations

import logging

import pytest

from provset.config import PipelineSettings
from provset.logging_config import setup_logging

ENV_KEYS = (
    "PROVSET_SETUP_HISTORY_LIMIT",
    "PROVSET_VALIDATION_HISTORY_LIMIT",
    "PROVSET_MIGRATION_HISTORY_LIMIT",
    "PROVSET_CONNECT_TIMEOUT",
    "PROVSET_STRICT_NAMES",
    "PROVSET_LOG_LEVEL",
)


def _clear(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults_without_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    _clear(monkeypatch)
    settings = PipelineSettings.from_env()
    assert settings == PipelineSettings()
    assert settings.setup_history_limit == 100
    assert settings.validation_history_limit == 100
    assert settings.migration_history_limit == 50
    assert settings.strict_provider_names is True


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    _clear(monkeypatch)
    monkeypatch.setenv("PROVSET_SETUP_HISTORY_LIMIT", "7")
    monkeypatch.setenv("PROVSET_MIGRATION_HISTORY_LIMIT", "3")
    monkeypatch.setenv("PROVSET_CONNECT_TIMEOUT", "1.5")
    monkeypatch.setenv("PROVSET_STRICT_NAMES", "no")
    monkeypatch.setenv("PROVSET_LOG_LEVEL", "debug")

    settings = PipelineSettings.from_env()

    assert settings.setup_history_limit == 7
    assert settings.migration_history_limit == 3
    assert settings.connect_timeout == 1.5
    assert settings.strict_provider_names is False
    assert settings.log_level == "DEBUG"


def test_malformed_values_fall_back(monkeypatch: pytest.MonkeyPatch) -> None:
    _clear(monkeypatch)
    monkeypatch.setenv("PROVSET_SETUP_HISTORY_LIMIT", "lots")
    monkeypatch.setenv("PROVSET_VALIDATION_HISTORY_LIMIT", "0")
    monkeypatch.setenv("PROVSET_CONNECT_TIMEOUT", "-2")

    settings = PipelineSettings.from_env()

    assert settings.setup_history_limit == 100
    assert settings.validation_history_limit == 1
    assert settings.connect_timeout == 5.0


def test_setup_logging_installs_a_single_handler() -> None:
    logger = logging.getLogger("provset")
    before = list(logger.handlers)
    try:
        setup_logging("warning")
        setup_logging("DEBUG")
        added = [
            handler for handler in logger.handlers if getattr(handler, "_provset_console", False)
        ]
        assert len(added) == 1
        assert logger.level == logging.DEBUG
        assert added[0].level == logging.DEBUG

        setup_logging("not-a-level")
        assert logger.level == logging.INFO
    finally:
        for handler in list(logger.handlers):
            if handler not in before:
                logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)
