"""
Module: ledger_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors, and
    the pagination helper shared by every list operation.
Architecture position: Kernel > Selectors.  May import from db/, models/
    and domain/.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Read-only access: selectors accept a Session from the caller but never
      add, delete, flush or commit.
    - DTO return convention: selectors return frozen dataclasses, never ORM
      instances.
    - Every query is filtered by tenant_id.
    - Paged queries carry a total ORDER BY so page boundaries are stable.

Failure modes:
    - InvalidPaginationError when page < 1 or limit is outside
      [1, max_page_limit].
"""

from abc import ABC
from typing import Callable, TypeVar

from sqlalchemy import Select, func, or_, select
from sqlalchemy.orm import Session

from ledger_kernel.domain.dtos import Page
from ledger_kernel.domain.policy import LedgerPolicy
from ledger_kernel.domain.validation import optional_text
from ledger_kernel.exceptions import InvalidPaginationError

RowT = TypeVar("RowT")
DtoT = TypeVar("DtoT")


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only
        queries, and return DTOs.  They MUST NOT mutate any data.
    """

    def __init__(self, session: Session, policy: LedgerPolicy | None = None):
        self.session = session
        self.policy = policy or LedgerPolicy()

    def resolve_page(self, page: int, limit: int | None) -> tuple[int, int]:
        """Apply the default limit and validate page/limit bounds."""
        if limit is None:
            limit = self.policy.default_page_limit
        max_limit = self.policy.max_page_limit
        if (
            isinstance(page, bool)
            or not isinstance(page, int)
            or isinstance(limit, bool)
            or not isinstance(limit, int)
            or page < 1
            or limit < 1
            or limit > max_limit
        ):
            raise InvalidPaginationError(page, limit, max_limit)
        return page, limit

    def count(self, stmt: Select) -> int:
        counted = select(func.count()).select_from(stmt.order_by(None).subquery())
        return self.session.execute(counted).scalar_one()

    def paginate(
        self,
        stmt: Select,
        page: int,
        limit: int | None,
        to_dto: Callable[[list[RowT]], list[DtoT]],
        options: tuple = (),
    ) -> Page[DtoT]:
        """
        Run ``stmt`` for one page.

        ``to_dto`` receives the whole page of rows at once so that it can
        batch any follow-up lookups (line counts, payment counts).  Loader
        ``options`` apply to the page query only, not to the count.
        """
        page, limit = self.resolve_page(page, limit)
        total = self.count(stmt)
        page_stmt = stmt.options(*options).limit(limit).offset((page - 1) * limit)
        rows = list(self.session.execute(page_stmt).scalars().all())
        pages = -(-total // limit)
        return Page(
            items=tuple(to_dto(rows)),
            total=total,
            page=page,
            limit=limit,
            pages=pages,
        )


def newest_number_first(column):
    """
    DESC ordering for zero-padded document numbers.

    Numbers grow past the padding width (JE-999999, JE-1000000), so the
    longer number sorts first before the plain string comparison.
    """
    return func.length(column).desc(), column.desc()


def search_clause(term: str | None, *columns):
    """Case-insensitive substring match over any of ``columns``; None if no term."""
    needle = optional_text(term, "search")
    if needle is None:
        return None
    return or_(*(column.icontains(needle, autoescape=True) for column in columns))
