"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Reads the packaged defaults, an optional YAML file and the process
environment, merges them, and parses the result into a frozen
``LedgerSettings``.  Callers use ``ledger_config.get_active_config()``;
the functions here are the building blocks behind it.

Architecture position
---------------------
**Config layer**.  No dependency on the kernel.

Invariants enforced
-------------------
* Unknown keys are rejected, never ignored.
* Every value is type- and range-checked; no silent coercion of bad input.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown key or invalid value  -> ``ConfigError``.
"""

from __future__ import annotations

import copy
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import (
    LedgerSettings,
    LoggingSettings,
    MoneySettings,
    NumberingSettings,
    PaginationSettings,
)

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

ENV_CONFIG_FILE = "LEDGER_CONFIG_FILE"
ENV_DATABASE_URL = "LEDGER_DATABASE_URL"
ENV_DATABASE_URL_FALLBACK = "DATABASE_URL"
ENV_LOG_LEVEL = "LEDGER_LOG_LEVEL"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_DOCUMENT_TYPES = ("JOURNAL_ENTRY", "CREDIT_NOTE", "DEBIT_NOTE")

_TOP_LEVEL_KEYS = frozenset({
    "database_url",
    "echo_sql",
    "pool_size",
    "max_overflow",
    "pool_timeout",
    "sqlite_busy_timeout",
    "numbering",
    "money",
    "pagination",
    "logging",
})
_SECTION_KEYS = {
    "numbering": frozenset({"padding", "prefixes"}),
    "money": frozenset({"decimal_places"}),
    "pagination": frozenset({"default_limit", "max_limit"}),
    "logging": frozenset({"level"}),
}


class ConfigError(ValueError):
    """Configuration could not be parsed into LedgerSettings."""


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load one YAML document as a dict (empty file -> empty dict).

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ConfigError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    return data


def env_overrides(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Settings taken from environment variables."""
    environ = os.environ if environ is None else environ
    result: dict[str, Any] = {}
    url = environ.get(ENV_DATABASE_URL) or environ.get(ENV_DATABASE_URL_FALLBACK)
    if url:
        result["database_url"] = url
    level = environ.get(ENV_LOG_LEVEL)
    if level:
        result["logging"] = {"level": level}
    return result


def merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Deep merge; mappings merge key by key, anything else replaces."""
    result = copy.deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(result.get(key), Mapping):
            result[key] = merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _check_keys(data: Mapping[str, Any], allowed: frozenset[str], where: str) -> None:
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ConfigError(f"Unknown {where} key(s): {', '.join(unknown)}")


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, Mapping):
        raise ConfigError(f"{name} must be a mapping")
    _check_keys(section, _SECTION_KEYS[name], name)
    return section


def _int(value: Any, key: str, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{key} must be an integer, got {value!r}")
    if value < minimum:
        raise ConfigError(f"{key} must be >= {minimum}, got {value}")
    return value


def _number(value: Any, key: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ConfigError(f"{key} must be a non-negative number, got {value!r}")
    return float(value)


def _bool(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"{key} must be true or false, got {value!r}")
    return value


def _text(value: Any, key: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{key} must be a non-empty string")
    return value.strip()


def _prefixes(value: Any) -> dict[str, str]:
    if not isinstance(value, Mapping):
        raise ConfigError("numbering.prefixes must be a mapping")
    _check_keys(value, frozenset(_DOCUMENT_TYPES), "numbering.prefixes")
    prefixes = {
        doc_type: _text(value.get(doc_type), f"numbering.prefixes.{doc_type}")
        for doc_type in _DOCUMENT_TYPES
    }
    if len(set(prefixes.values())) != len(prefixes):
        raise ConfigError("numbering.prefixes must be distinct")
    return prefixes


def parse_settings(data: Mapping[str, Any], sources: tuple[str, ...] = ()) -> LedgerSettings:
    """
    Parse a fully merged settings mapping.

    Preconditions:
        ``data`` is the packaged defaults merged with any overrides, so
        every key is present.
    Raises:
        ConfigError: on unknown keys or invalid values.
    """
    _check_keys(data, _TOP_LEVEL_KEYS, "top-level")

    numbering = _section(data, "numbering")
    money = _section(data, "money")
    pagination = _section(data, "pagination")
    logging_section = _section(data, "logging")

    default_limit = _int(pagination.get("default_limit"), "pagination.default_limit", 1)
    max_limit = _int(pagination.get("max_limit"), "pagination.max_limit", 1)
    if default_limit > max_limit:
        raise ConfigError("pagination.default_limit must not exceed pagination.max_limit")

    level = _text(logging_section.get("level"), "logging.level").upper()
    if level not in _LOG_LEVELS:
        raise ConfigError(f"logging.level must be one of {', '.join(_LOG_LEVELS)}")

    decimal_places = _int(money.get("decimal_places"), "money.decimal_places", 0)
    if decimal_places > 9:
        raise ConfigError("money.decimal_places must be <= 9")

    return LedgerSettings(
        database_url=_text(data.get("database_url"), "database_url"),
        echo_sql=_bool(data.get("echo_sql"), "echo_sql"),
        pool_size=_int(data.get("pool_size"), "pool_size", 1),
        max_overflow=_int(data.get("max_overflow"), "max_overflow", 0),
        pool_timeout=_int(data.get("pool_timeout"), "pool_timeout", 1),
        sqlite_busy_timeout=_number(data.get("sqlite_busy_timeout"), "sqlite_busy_timeout"),
        numbering=NumberingSettings(
            padding=_int(numbering.get("padding"), "numbering.padding", 1),
            prefixes=_prefixes(numbering.get("prefixes")),
        ),
        money=MoneySettings(decimal_places=decimal_places),
        pagination=PaginationSettings(default_limit=default_limit, max_limit=max_limit),
        logging=LoggingSettings(level=level),
        sources=sources,
    )
