from __future__ import annotations

import os
from dataclasses import dataclass


def _parse_bool(raw: str | None, default: bool = False) -> bool:
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _parse_int(raw: str | None, default: int, *, minimum: int = 1) -> int:
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return max(minimum, value)


def _parse_float(raw: str | None, default: float) -> float:
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


@dataclass(frozen=True)
class PipelineSettings:
    """Tunables shared by the setup, migration and validation managers."""

    setup_history_limit: int = 100
    validation_history_limit: int = 100
    migration_history_limit: int = 50
    connect_timeout: float = 5.0
    strict_provider_names: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "PipelineSettings":
        return cls(
            setup_history_limit=_parse_int(
                os.environ.get("PROVSET_SETUP_HISTORY_LIMIT"), 100
            ),
            validation_history_limit=_parse_int(
                os.environ.get("PROVSET_VALIDATION_HISTORY_LIMIT"), 100
            ),
            migration_history_limit=_parse_int(
                os.environ.get("PROVSET_MIGRATION_HISTORY_LIMIT"), 50
            ),
            connect_timeout=_parse_float(
                os.environ.get("PROVSET_CONNECT_TIMEOUT"), 5.0
            ),
            strict_provider_names=_parse_bool(
                os.environ.get("PROVSET_STRICT_NAMES"), True
            ),
            log_level=(os.environ.get("PROVSET_LOG_LEVEL") or "INFO").strip().upper(),
        )
