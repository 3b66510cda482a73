"""
Generic entity repository with read-through caching.

Every mutating method queues the invalidation of the entity's own cache key,
the access-relation namespace and the cached list totals on the unit of
work; they are applied right after commit.
"""
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

from sqlalchemy import select, exists, func
from sqlalchemy.sql import ColumnElement

from app.core import config
from app.core.cache import ACCESS_PREFIX, LIST_TOTAL_PREFIX, entity_key
from app.core.database.base import Base, EntityStatus
from app.core.database.unit_of_work import UnitOfWork
from app.core.errors import NotFoundError
from app.utils import get_logger


log = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class Repository(Generic[ModelT]):
    model: type[ModelT]
    entity_type: str

    def __init__(self, uow: UnitOfWork):
        self.uow = uow
        self.db = uow.session
        self.cache = uow.cache

    async def get(self, entity_id: str) -> ModelT | None:
        return await self.db.get(self.model, entity_id)

    async def require(self, entity_id: str) -> ModelT:
        entity = await self.get(entity_id)
        if entity is None:
            raise NotFoundError(f"{self.entity_type.capitalize()} not found")
        return entity

    async def get_cached(
        self,
        entity_id: str,
        serialize: Callable[[ModelT], Awaitable[dict[str, Any]]],
    ) -> dict[str, Any] | None:
        """Read-through: cached serialized entity, else load and cache it."""
        async def load():
            entity = await self.get(entity_id)
            return None if entity is None else await serialize(entity)

        return await self.cache.remember(
            entity_key(self.entity_type, entity_id), config.ENTITY_CACHE_TTL, load
        )

    async def exists(self, *criteria: ColumnElement[bool]) -> bool:
        result = await self.db.execute(select(exists().where(*criteria)))
        return bool(result.scalar())

    async def count(self, *criteria: ColumnElement[bool]) -> int:
        result = await self.db.execute(select(func.count()).select_from(self.model).where(*criteria))
        return result.scalar() or 0

    async def list_where(self, *criteria: ColumnElement[bool], order_by=None) -> list[ModelT]:
        stmt = select(self.model).where(*criteria)
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    def related_keys(self, entity: ModelT) -> list[str]:
        """Other cache keys whose content depends on this entity."""
        return []

    def invalidate(self, entity: ModelT) -> None:
        self.uow.invalidate(entity_key(self.entity_type, entity.id), *self.related_keys(entity))
        self.uow.invalidate_prefix(ACCESS_PREFIX, LIST_TOTAL_PREFIX)

    async def add(self, entity: ModelT) -> ModelT:
        self.db.add(entity)
        await self.db.flush()
        self.invalidate(entity)
        log.debug("Persisted %s %s", self.entity_type, entity.id)
        return entity

    async def save(self, entity: ModelT) -> ModelT:
        await self.db.flush()
        self.invalidate(entity)
        return entity

    async def deactivate(self, entity: ModelT) -> None:
        entity.status = EntityStatus.INACTIVE
        await self.db.flush()
        self.invalidate(entity)
        log.debug("Deactivated %s %s", self.entity_type, entity.id)

    async def remove(self, entity: ModelT) -> None:
        self.invalidate(entity)
        await self.db.delete(entity)
        await self.db.flush()
        log.debug("Removed %s %s", self.entity_type, entity.id)
