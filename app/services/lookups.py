"""Query helpers shared by the resource services.

Every entity is soft-deleted, so lookups always filter ``deleted_at IS NULL``.
"""

from typing import Any, Iterable, List, Sequence, Tuple, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.schemas.common import PaginationParams

ModelT = TypeVar("ModelT")


def live(model: Type[Any]):
    return model.deleted_at.is_(None)


async def get_live(
    db: AsyncSession,
    model: Type[ModelT],
    entity_id: str,
    *,
    options: Sequence[Any] = (),
    label: str | None = None,
) -> ModelT:
    """Fetch a live row by id or raise ``NotFoundError``.

    ``populate_existing`` refreshes instances already in the identity map so
    eager loaders apply to rows created earlier in the same session.
    """
    stmt = (
        select(model)
        .where(model.id == entity_id, live(model))
        .options(*options)
        .execution_options(populate_existing=True)
    )
    instance = (await db.execute(stmt)).scalar_one_or_none()
    if instance is None:
        raise NotFoundError.for_entity(label or model.__name__, entity_id)
    return instance


async def exists_live(db: AsyncSession, model: Type[Any], entity_id: str) -> bool:
    count = await db.scalar(
        select(func.count()).select_from(model).where(model.id == entity_id, live(model))
    )
    return bool(count)


async def ensure_live(db: AsyncSession, model: Type[Any], entity_id: str, label: str | None = None) -> None:
    if not await exists_live(db, model, entity_id):
        raise NotFoundError.for_entity(label or model.__name__, entity_id)


async def paginate(
    db: AsyncSession,
    model: Type[ModelT],
    params: PaginationParams,
    *,
    where: Iterable[Any] = (),
    order_by: Sequence[Any] = (),
    options: Sequence[Any] = (),
) -> Tuple[List[ModelT], int]:
    conditions = [live(model), *where]
    total = await db.scalar(select(func.count()).select_from(model).where(*conditions)) or 0
    result = await db.execute(
        select(model)
        .where(*conditions)
        .options(*options)
        .order_by(*order_by)
        .offset(params.offset)
        .limit(params.limit)
    )
    return list(result.scalars().all()), total
