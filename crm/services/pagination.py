"""Offset pagination helpers, including the split-pool variant.

The split-pool view linearizes two buckets of one table end to end: every page
of the first bucket (in its own sort order) comes before any page of the
second bucket, and a page never mixes records from both. When the caller has
already narrowed the request to one bucket the view degrades to ordinary
count + offset/limit pagination.

Counts and the page read are separate statements with no transaction around
them, so a concurrent insert can shift a page by one record.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Generic, Iterable, Literal, Sequence, TypeVar

from sqlalchemy import ColumnElement, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100

T = TypeVar("T")


def _coerce_int(value: Any, default: int) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def normalize_paging(page: Any = None, limit: Any = None) -> tuple[int, int]:
    """Clamp raw ``page``/``limit`` input; zero or unparseable values fall back to defaults."""
    resolved_page = max(1, _coerce_int(page, DEFAULT_PAGE) or DEFAULT_PAGE)
    resolved_limit = _coerce_int(limit, DEFAULT_LIMIT) or DEFAULT_LIMIT
    return resolved_page, min(MAX_LIMIT, max(1, resolved_limit))


def text_search(model: Any, q: str | None, fields: Iterable[str]) -> ColumnElement[bool] | None:
    """Case-insensitive substring match of ``q`` over ``fields``."""
    term = (q or "").strip()
    if not term:
        return None
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{escaped}%"
    return or_(*[getattr(model, name).ilike(pattern, escape="\\") for name in fields])


def resolve_sort(
    model: Any,
    raw: str | None,
    allowed: Iterable[str],
    default: str = "-created_at",
) -> list[ColumnElement]:
    """Translate ``"-created_at"``-style input into ORDER BY clauses.

    Unknown columns fall back to ``default``. The primary key is appended as a
    tie-breaker so offset pages stay stable.
    """
    requested = (raw or "").strip() or default
    descending = requested.startswith("-")
    name = requested.lstrip("-+")
    if name not in set(allowed):
        descending = default.startswith("-")
        name = default.lstrip("-+")
    column = getattr(model, name)
    clauses = [column.desc() if descending else column.asc()]
    if name != "id":
        clauses.append(model.id.desc() if descending else model.id.asc())
    return clauses


@dataclass(frozen=True, slots=True)
class SplitPool:
    """Two mutually exclusive buckets of a table distinguished by one column.

    ``first=None`` makes the first bucket "everything not in the second bucket",
    NULLs included. ``pins`` lists explicit filter values that narrow a request
    to a single bucket; ``None`` accepts any non-empty value.
    """

    field: str
    first: str | None
    second: str
    pins: frozenset[str] | None = None

    def first_condition(self, model: Any) -> ColumnElement[bool]:
        column = getattr(model, self.field)
        if self.first is None:
            return or_(column.is_(None), column != self.second)
        return column == self.first

    def second_condition(self, model: Any) -> ColumnElement[bool]:
        return getattr(model, self.field) == self.second

    def pinned_value(self, value: str | None) -> str | None:
        cleaned = (value or "").strip()
        if not cleaned:
            return None
        if self.pins is None or cleaned in self.pins:
            return cleaned
        logger.debug("Ignoring unrecognized %s filter value %r", self.field, cleaned)
        return None


@dataclass(frozen=True, slots=True)
class PagePlan:
    bucket: Literal["first", "second"] | None
    offset: int
    total: int
    pages: int


def plan_page(count_first: int, count_second: int, page: int, limit: int) -> PagePlan:
    """Decide which bucket serves ``page`` and at which bucket-local offset.

    Each bucket is paged on its own, so a short last page of the first bucket
    still counts as a page and ``pages`` is the sum of both bucket page counts.
    """
    total = count_first + count_second
    first_pages = math.ceil(count_first / limit)
    pages = first_pages + math.ceil(count_second / limit)
    if page > pages:
        return PagePlan(bucket=None, offset=0, total=total, pages=pages)
    if page <= first_pages:
        return PagePlan(bucket="first", offset=(page - 1) * limit, total=total, pages=pages)
    return PagePlan(bucket="second", offset=(page - first_pages - 1) * limit, total=total, pages=pages)


@dataclass(slots=True)
class PageResult(Generic[T]):
    items: list[T]
    total: int
    page: int
    pages: int
    limit: int

    @property
    def has_next_page(self) -> bool:
        return self.page < self.pages

    @property
    def has_prev_page(self) -> bool:
        return self.page > 1


async def _count(db: AsyncSession, model: Any, conditions: Sequence[ColumnElement[bool]]) -> int:
    stmt = select(func.count()).select_from(model).where(*conditions)
    return int((await db.execute(stmt)).scalar_one() or 0)


async def _fetch(
    db: AsyncSession,
    model: Any,
    conditions: Sequence[ColumnElement[bool]],
    order_by: Sequence[ColumnElement],
    offset: int,
    limit: int,
) -> list[Any]:
    stmt = select(model).where(*conditions).order_by(*order_by).offset(offset).limit(limit)
    return list((await db.execute(stmt)).scalars().all())


async def paginate(
    db: AsyncSession,
    model: Any,
    conditions: Sequence[ColumnElement[bool]],
    *,
    page: int,
    limit: int,
    order_by: Sequence[ColumnElement],
) -> PageResult:
    total = await _count(db, model, conditions)
    pages = math.ceil(total / limit)
    items: list[Any] = []
    if page <= pages:
        items = await _fetch(db, model, conditions, order_by, (page - 1) * limit, limit)
    return PageResult(items=items, total=total, page=page, pages=pages, limit=limit)


async def paginate_split(
    db: AsyncSession,
    model: Any,
    conditions: Sequence[ColumnElement[bool]],
    pool: SplitPool,
    *,
    page: int,
    limit: int,
    order_by: Sequence[ColumnElement],
    bucket_value: str | None = None,
) -> PageResult:
    """Paginate ``model`` with ``pool.first`` exhausted before ``pool.second``.

    ``conditions`` must not constrain ``pool.field``; pass the caller's bucket
    filter as ``bucket_value`` instead.
    """
    pinned = pool.pinned_value(bucket_value)
    if pinned is not None:
        column = getattr(model, pool.field)
        return await paginate(
            db, model, [*conditions, column == pinned], page=page, limit=limit, order_by=order_by
        )

    first_conditions = [*conditions, pool.first_condition(model)]
    second_conditions = [*conditions, pool.second_condition(model)]
    count_first = await _count(db, model, first_conditions)
    count_second = await _count(db, model, second_conditions)

    plan = plan_page(count_first, count_second, page, limit)
    items: list[Any] = []
    if plan.bucket == "first":
        items = await _fetch(db, model, first_conditions, order_by, plan.offset, limit)
    elif plan.bucket == "second":
        items = await _fetch(db, model, second_conditions, order_by, plan.offset, limit)

    return PageResult(
        items=items,
        total=plan.total,
        page=page,
        pages=plan.pages,
        limit=limit,
    )
