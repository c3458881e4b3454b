"""
ledger_config -- single public entrypoint for ledger settings.

``get_active_settings()`` loads the packaged ``defaults.yaml`` (or a given
file), validates it, and emits a ``LEDGER_CONFIG_TRACE`` log record with the
settings checksum so every run can be tied to the exact values it used.

Failure modes:
    - ``FileNotFoundError`` -- the settings file does not exist.
    - ``ValueError`` -- unknown keys or invalid values.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ledger_config.settings import LedgerSettings, load_settings, parse_settings

_logger = logging.getLogger("ledger_kernel.config")

DEFAULT_SETTINGS_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_settings(config_path: Path | str | None = None) -> LedgerSettings:
    """Load, validate and trace the active ledger settings."""
    path = Path(config_path) if config_path is not None else DEFAULT_SETTINGS_PATH
    settings = load_settings(path)

    _logger.info(
        "LEDGER_CONFIG_TRACE",
        extra={
            "trace_type": "LEDGER_CONFIG_TRACE",
            "config_path": str(path),
            "checksum": settings.checksum,
            "default_currency": settings.default_currency,
            "due_soon_days": settings.due_soon_days,
            "max_conflict_retries": settings.max_conflict_retries,
            "lock_timeout_seconds": settings.lock_timeout_seconds,
        },
    )
    return settings


__all__ = [
    "DEFAULT_SETTINGS_PATH",
    "LedgerSettings",
    "get_active_settings",
    "load_settings",
    "parse_settings",
]
