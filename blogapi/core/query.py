"""
Backend-neutral filter, sort and paging specifications.

Services describe what they want as ``Criterion`` objects combined with
``AnyOf`` / ``AllOf``; ``to_clause`` and ``fetch_page`` translate them into
SQLAlchemy statements. Field names are model attribute names.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import Any, Generic, Optional, Sequence, TypeVar, Union

from sqlalchemy import and_, asc, desc, false, func, or_, select, true
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

T = TypeVar("T")


class Op(str, enum.Enum):
    EQ = "eq"
    NE = "ne"
    IN = "in"
    LT = "lt"
    GT = "gt"
    CONTAINS = "contains"  # case-insensitive substring


@dataclass(frozen=True)
class Criterion:
    field: str
    op: Op
    value: Any


@dataclass(frozen=True)
class AnyOf:
    items: tuple["Spec", ...]


@dataclass(frozen=True)
class AllOf:
    items: tuple["Spec", ...]


Spec = Union[Criterion, AnyOf, AllOf]


def any_of(*items: Optional[Spec]) -> Optional[Spec]:
    present = tuple(i for i in items if i is not None)
    return AnyOf(present) if present else None


def all_of(*items: Optional[Spec]) -> Optional[Spec]:
    present = tuple(i for i in items if i is not None)
    return AllOf(present) if present else None


@dataclass(frozen=True)
class Sort:
    field: str = "created_at"
    descending: bool = True


@dataclass(frozen=True)
class PageRequest:
    number: int = 1
    size: int = 10

    @property
    def offset(self) -> int:
        return (self.number - 1) * self.size


@dataclass
class Page(Generic[T]):
    page: int
    page_size: int
    total_count: int
    items: list[T] = field(default_factory=list)

    @property
    def pages_count(self) -> int:
        return math.ceil(self.total_count / self.page_size) if self.page_size else 0


def _column(model, name: str):
    column = getattr(model, name, None)
    if column is None:
        raise ValueError(f"{model.__name__} has no field {name!r}")
    return column


def to_clause(model, spec: Optional[Spec]) -> ColumnElement[bool]:
    if spec is None:
        return true()
    if isinstance(spec, AnyOf):
        return or_(*(to_clause(model, s) for s in spec.items)) if spec.items else false()
    if isinstance(spec, AllOf):
        return and_(*(to_clause(model, s) for s in spec.items)) if spec.items else true()
    column = _column(model, spec.field)
    if spec.op is Op.EQ:
        return column == spec.value
    if spec.op is Op.NE:
        return column != spec.value
    if spec.op is Op.IN:
        return column.in_(list(spec.value))
    if spec.op is Op.LT:
        return column < spec.value
    if spec.op is Op.GT:
        return column > spec.value
    if spec.op is Op.CONTAINS:
        # escape LIKE wildcards so the term is matched literally
        term = str(spec.value).replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        return func.lower(column).like(f"%{term.lower()}%", escape="\\")
    raise ValueError(f"unsupported operator {spec.op}")


def sortable(model, requested: Optional[str], default: str = "created_at") -> str:
    """Return ``requested`` when it names a column of ``model``, else ``default``."""
    if requested and requested in model.__table__.columns:
        return requested
    return default


async def fetch_page(
    session: AsyncSession,
    model,
    spec: Optional[Spec],
    sort: Sort,
    page: PageRequest,
) -> Page:
    where = to_clause(model, spec)
    total = (await session.execute(select(func.count()).select_from(model).where(where))).scalar_one()
    order = desc if sort.descending else asc
    stmt = (
        select(model)
        .where(where)
        .order_by(order(_column(model, sort.field)))
        .offset(page.offset)
        .limit(page.size)
    )
    rows: Sequence = (await session.execute(stmt)).scalars().all()
    return Page(page=page.number, page_size=page.size, total_count=int(total), items=list(rows))
