"""
LedgerSettings schema.

Typed, frozen view of the runtime configuration.  YAML documents and
environment overrides are merged by the loader and parsed into these
types; nothing else in the process reads configuration sources.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NumberingSettings:
    """Document number formatting (JE-000001)."""

    padding: int = 6
    prefixes: dict[str, str] = field(
        default_factory=lambda: {
            "JOURNAL_ENTRY": "JE",
            "CREDIT_NOTE": "CN",
            "DEBIT_NOTE": "DN",
        }
    )


@dataclass(frozen=True)
class MoneySettings:
    decimal_places: int = 2


@dataclass(frozen=True)
class PaginationSettings:
    default_limit: int = 10
    max_limit: int = 100


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerSettings:
    """Everything the composition root needs to build a kernel."""

    database_url: str = "sqlite:///ledger.db"
    echo_sql: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    sqlite_busy_timeout: float = 30.0
    numbering: NumberingSettings = field(default_factory=NumberingSettings)
    money: MoneySettings = field(default_factory=MoneySettings)
    pagination: PaginationSettings = field(default_factory=PaginationSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    # Where the settings came from, for the config_loaded trace
    sources: tuple[str, ...] = ()
