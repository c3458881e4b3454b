"""
Settings (``ledger_config.settings``).

Responsibility
--------------
Loads a YAML settings file and parses it into the frozen
``LedgerSettings`` dataclass consumed by the case ledger service.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or out-of-range values  -> ``ValueError`` with the key name.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from ledger_kernel.domain.currency import CurrencyRegistry


@dataclass(frozen=True)
class LedgerSettings:
    """
    Runtime knobs for the case ledger.

    Attributes:
        default_currency: ISO 4217 code used when a case is created without
            one.
        due_soon_days: An unpaid installment due within this many days of
            today is DUE rather than PLANNED.
        max_conflict_retries: How many times a mutation is re-read and
            re-applied after a version conflict before ConflictError.
        lock_timeout_seconds: Bound on waiting for the per-case lock.
    """

    default_currency: str = "VND"
    due_soon_days: int = 3
    max_conflict_retries: int = 3
    lock_timeout_seconds: float = 5.0

    def __post_init__(self) -> None:
        if not isinstance(self.default_currency, str) or not CurrencyRegistry.is_valid(
            self.default_currency
        ):
            raise ValueError(f"default_currency: unknown ISO 4217 code {self.default_currency!r}")
        object.__setattr__(self, "default_currency", self.default_currency.upper().strip())

        for name in ("due_soon_days", "max_conflict_retries"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"{name}: must be a non-negative integer, got {value!r}")

        timeout = self.lock_timeout_seconds
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ValueError(f"lock_timeout_seconds: must be a positive number, got {timeout!r}")

    @property
    def checksum(self) -> str:
        """SHA-256 of the canonical JSON form, for change detection."""
        canonical = json.dumps(asdict(self), sort_keys=True)
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return data


def parse_settings(data: dict[str, Any]) -> LedgerSettings:
    """Build LedgerSettings from a ``ledger:`` section or a flat mapping."""
    section = data.get("ledger", data)
    if not isinstance(section, dict):
        raise ValueError("ledger: expected a mapping")

    known = {f.name for f in fields(LedgerSettings)}
    unknown = sorted(set(section) - known)
    if unknown:
        raise ValueError(f"Unknown ledger settings: {', '.join(unknown)}")
    return LedgerSettings(**section)


def load_settings(path: Path | str) -> LedgerSettings:
    """Load and validate settings from a YAML file."""
    return parse_settings(load_yaml_file(Path(path)))
