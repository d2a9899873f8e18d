"""
Module: ledger_kernel.domain.policy
Responsibility: The handful of tunables the services need at runtime
    (document number formatting, currency precision, page sizes).
Architecture position: Kernel > Domain.  Built by the composition root from
    ``ledger_config.LedgerSettings``; services never import ledger_config.
"""

from dataclasses import dataclass, field

from ledger_kernel.db.types import MONEY_DECIMAL_PLACES


def _default_prefixes() -> dict[str, str]:
    return {
        "JOURNAL_ENTRY": "JE",
        "CREDIT_NOTE": "CN",
        "DEBIT_NOTE": "DN",
    }


@dataclass(frozen=True)
class LedgerPolicy:
    """Runtime policy shared by every kernel component."""

    # Zero padding width for document numbers (JE-000001)
    number_padding: int = 6
    # DocumentType name -> prefix
    number_prefixes: dict[str, str] = field(default_factory=_default_prefixes)
    # Amounts may not be finer than this many decimal places
    decimal_places: int = MONEY_DECIMAL_PLACES
    default_page_limit: int = 10
    max_page_limit: int = 100
