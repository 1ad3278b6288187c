"""
Pagination helper shared by listing repositories
"""

from typing import Any, Callable, Dict, Optional, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.errors import ValidationError
from app.domain.models import Page

T = TypeVar("T")

MAX_PAGE_SIZE = 100


def order_clause(
    columns: Dict[str, Any],
    sort_by: Optional[str],
    sort_order: str,
    default: str = "created_at",
):
    """
    Resolve a user-supplied sort key against an allow-list.
    Unknown keys fall back to the default column.
    """
    column = columns.get(sort_by or default, columns[default])
    return column.asc() if sort_order == "asc" else column.desc()


async def paginate(
    session: AsyncSession,
    stmt: Select,
    page: int,
    limit: int,
    to_domain: Callable[[Any], T],
) -> Page[T]:
    if page < 1:
        raise ValidationError("page must be >= 1")
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")

    total = (
        await session.execute(select(func.count()).select_from(stmt.order_by(None).subquery()))
    ).scalar_one()

    result = await session.execute(stmt.offset((page - 1) * limit).limit(limit))
    items = [to_domain(model) for model in result.scalars().all()]
    return Page(items=items, page=page, limit=limit, total=int(total))
