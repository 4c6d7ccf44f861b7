from typing import Any, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from devcamper.database import Base
from devcamper.errors import ResourceNotFoundError

ModelT = TypeVar("ModelT", bound=Base)


async def list_resources(session: AsyncSession, model: type[ModelT], **filters: Any) -> list[ModelT]:
    """List rows of ``model`` ordered by id, filtered on equality for non-None values."""
    stmt = select(model).order_by(model.id)  # type: ignore[attr-defined]
    for column, value in filters.items():
        if value is not None:
            stmt = stmt.where(getattr(model, column) == value)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_resource(session: AsyncSession, model: type[ModelT], resource_id: int) -> ModelT:
    obj = await session.get(model, resource_id)
    if obj is None:
        raise ResourceNotFoundError(model.__name__, resource_id)
    return obj
