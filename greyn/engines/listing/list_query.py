"""
Shared list capability: {search, filters, page, limit} -> {items, stats, pagination}.

Every admin console (users, rate limits, audit logs, transactions,
activities) resolves its list through these helpers so search escaping,
clamping and page math behave the same everywhere.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, Sequence, TypeVar

from pydantic import BaseModel
from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")

MAX_LIMIT = 100
LIKE_ESCAPE = "\\"

# Filter values the UI sends for "no filter"
_BLANK_FILTER_VALUES = ("", "all", None)


class Pagination(BaseModel):
    """Page window over a filtered result set."""

    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def create(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = math.ceil(total / limit) if total else 1
        return cls(page=page, limit=limit, total=total, total_pages=max(total_pages, 1))


@dataclass
class ListQuery:
    """Normalized list request. Out-of-range paging is clamped rather than rejected."""

    search: Optional[str] = None
    filters: Dict[str, Any] = field(default_factory=dict)
    page: int = 1
    limit: int = 20

    def __post_init__(self) -> None:
        self.search = (self.search or "").strip() or None
        self.page = max(1, int(self.page or 1))
        self.limit = min(MAX_LIMIT, max(1, int(self.limit or 1)))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def filter(self, name: str) -> Any:
        value = self.filters.get(name)
        return None if value in _BLANK_FILTER_VALUES else value


@dataclass
class ListResult(Generic[T]):
    items: List[T]
    stats: Dict[str, Any]
    pagination: Pagination


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so user input matches literally."""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def search_clause(columns: Sequence[Any], term: str):
    """Case-insensitive substring match over any of the columns."""
    pattern = f"%{escape_like(term)}%"
    return or_(*[column.ilike(pattern, escape=LIKE_ESCAPE) for column in columns])


async def count_rows(session: AsyncSession, stmt: Select) -> int:
    """Count rows a select would return, ignoring its ordering."""
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    return (await session.execute(count_stmt)).scalar() or 0


async def fetch_page(session: AsyncSession, stmt: Select, query: ListQuery) -> tuple[list, Pagination]:
    """Run stmt for one page and return (rows, pagination)."""
    total = await count_rows(session, stmt)
    result = await session.execute(stmt.offset(query.offset).limit(query.limit))
    rows = list(result.scalars().all())
    return rows, Pagination.create(query.page, query.limit, total)
