"""
Config -> Kernel Bridges.

Functions that convert LedgerSettings into kernel-compatible inputs.  They
live in ledger_config (the producer) so that kernel services never import
configuration.

Usage:
    from ledger_config.bridges import build_database, build_policy

    settings = get_active_config()
    database = build_database(settings)
    policy = build_policy(settings)
"""

from __future__ import annotations

from ledger_config.schema import LedgerSettings
from ledger_kernel.db.engine import LedgerDatabase
from ledger_kernel.domain.policy import LedgerPolicy


def build_policy(settings: LedgerSettings) -> LedgerPolicy:
    """Numbering, money and pagination settings as a LedgerPolicy."""
    return LedgerPolicy(
        number_padding=settings.numbering.padding,
        number_prefixes=dict(settings.numbering.prefixes),
        decimal_places=settings.money.decimal_places,
        default_page_limit=settings.pagination.default_limit,
        max_page_limit=settings.pagination.max_limit,
    )


def build_database(settings: LedgerSettings) -> LedgerDatabase:
    """Connection handle for ``settings.database_url`` with its pool options."""
    return LedgerDatabase.from_url(
        settings.database_url,
        echo=settings.echo_sql,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_timeout=settings.pool_timeout,
        sqlite_busy_timeout=settings.sqlite_busy_timeout,
    )
