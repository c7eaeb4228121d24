"""
Shared list engine: paginated, sorted, filtered and searched listing.

Every resource describes what may be sorted, filtered and searched with a
``ListSpec``; ``paginate`` turns caller options into a single filtered
statement, counts it, and fetches one ordered page.
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Any, List, Literal, Mapping, Optional, Sequence

from fastapi import Query
from pydantic import Field
from sqlalchemy import Select, and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from .models import CustomModel

logger = logging.getLogger(__name__)

SortOrder = Literal["asc", "desc"]

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


class ListParams(CustomModel):
    page: int = Field(DEFAULT_PAGE, ge=1)
    limit: int = Field(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT)
    sort: Optional[str] = None
    order: SortOrder = "desc"
    search: Optional[str] = Field(None, min_length=1, max_length=255)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class Pagination(CustomModel):
    page: int
    limit: int
    total: int
    pages: int


@dataclass(frozen=True)
class ListSpec:
    """Per-entity whitelist of sortable, filterable and searchable columns."""
    sort_fields: Mapping[str, ColumnElement]
    default_sort: str
    id_column: ColumnElement
    filter_fields: Mapping[str, ColumnElement] = field(default_factory=dict)
    search_columns: Sequence[ColumnElement] = ()

    def sort_column(self, name: Optional[str], default: Optional[str] = None) -> ColumnElement:
        # unknown sort keys never fail the request; they fall back to the default
        if name and name in self.sort_fields:
            return self.sort_fields[name]
        return self.sort_fields[default or self.default_sort]


@dataclass
class Page:
    items: List[Any]
    pagination: Pagination


def list_params(
    page: int = Query(DEFAULT_PAGE, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    sort: Optional[str] = Query(None),
    order: SortOrder = Query("desc"),
    search: Optional[str] = Query(None, min_length=1, max_length=255),
) -> ListParams:
    return ListParams(page=page, limit=limit, sort=sort, order=order, search=search)


def merge_filters(caller: Mapping[str, Any], preset: Mapping[str, Any]) -> dict:
    """Preset scopes win over caller-supplied values for the same key."""
    merged = dict(caller)
    merged.update(preset)
    return merged


def build_conditions(
    list_spec: ListSpec,
    filters: Mapping[str, Any],
    search: Optional[str] = None,
) -> List[ColumnElement]:
    conditions: List[ColumnElement] = []
    for name, value in filters.items():
        # None means "not provided"; False and 0 are real filter values
        if value is None:
            continue
        column = list_spec.filter_fields.get(name)
        if column is None:
            logger.debug(f"Ignoring unsupported filter '{name}'")
            continue
        conditions.append(column == value)

    if search and list_spec.search_columns:
        pattern = f"%{search}%"
        conditions.append(or_(*(column.ilike(pattern) for column in list_spec.search_columns)))
    return conditions


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


async def paginate(
    db: AsyncSession,
    stmt: Select,
    list_spec: ListSpec,
    params: ListParams,
    filters: Optional[Mapping[str, Any]] = None,
    *,
    default_sort: Optional[str] = None,
) -> Page:
    conditions = build_conditions(list_spec, filters or {}, params.search)
    if conditions:
        stmt = stmt.where(and_(*conditions))

    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = (await db.execute(count_stmt)).scalar_one()

    sort_column = list_spec.sort_column(params.sort, default_sort)
    if params.order == "asc":
        ordering = (sort_column.asc(), list_spec.id_column.asc())
    else:
        ordering = (sort_column.desc(), list_spec.id_column.desc())

    result = await db.execute(
        stmt.order_by(*ordering).limit(params.limit).offset(params.offset)
    )
    items = [dict(row) for row in result.mappings().all()]

    return Page(
        items=items,
        pagination=Pagination(
            page=params.page,
            limit=params.limit,
            total=total,
            pages=page_count(total, params.limit),
        ),
    )
