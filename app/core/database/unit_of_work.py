"""
Transaction scope for mutating operations.

One UnitOfWork wraps one top-level operation together with every cascade it
triggers. Cache invalidation and notifications are collected while the
transaction runs and applied only after commit; a rollback discards them.

Usage:
    async with uow.transaction():
        session.add(agency)
        await uow.dispatch(AgencyCreated(agency_id=agency.id, actor=principal))
        uow.invalidate(entity_key("agency", agency.id))
"""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import config
from app.core.cache import CacheBackend
from app.core.errors import ConflictError, InternalError
from app.core.events import EventDispatcher, LifecycleEvent
from app.core.notifications import Notification, Notifier
from app.utils import get_logger


log = get_logger(__name__)


class UnitOfWork:
    def __init__(
        self,
        session: AsyncSession,
        cache: CacheBackend,
        dispatcher: EventDispatcher | None = None,
        notifier: Notifier | None = None,
        hard_delete: bool | None = None,
        timeout: float | None = None,
    ):
        self.session = session
        self.cache = cache
        self.dispatcher = dispatcher or EventDispatcher()
        self.notifier = notifier or Notifier()
        self.hard_delete = config.HARD_DELETE if hard_delete is None else hard_delete
        self.timeout = config.OPERATION_TIMEOUT if timeout is None else timeout
        self._in_transaction = False
        self._keys: set[str] = set()
        self._prefixes: set[str] = set()
        self._notifications: list[Notification] = []

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    def invalidate(self, *keys: str) -> None:
        self._keys.update(keys)

    def invalidate_prefix(self, *prefixes: str) -> None:
        self._prefixes.update(prefixes)

    def notify(self, notification: Notification) -> None:
        self._notifications.append(notification)

    async def dispatch(self, event: LifecycleEvent) -> None:
        await self.dispatcher.dispatch(event, self)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["UnitOfWork"]:
        """
        Re-entrant: an inner block joins the outer transaction and leaves
        commit, rollback and side effects to it.
        """
        if self._in_transaction:
            yield self
            return

        self._in_transaction = True
        try:
            async with asyncio.timeout(self.timeout):
                yield self
                await self.session.commit()
        except TimeoutError:
            log.error("Operation exceeded %ss, rolling back", self.timeout)
            await self._rollback()
            raise InternalError("The operation took too long and was cancelled")
        except IntegrityError:
            log.warning("Unique or foreign key constraint violated, rolling back", exc_info=True)
            await self._rollback()
            raise ConflictError("The change conflicts with existing data")
        except SQLAlchemyError:
            log.exception("Persistence failure, rolling back")
            await self._rollback()
            raise InternalError("The operation could not be completed")
        except BaseException:
            await self._rollback()
            raise
        finally:
            self._in_transaction = False

        await self._after_commit()

    async def _rollback(self) -> None:
        self._keys.clear()
        self._prefixes.clear()
        self._notifications.clear()
        try:
            await self.session.rollback()
        except SQLAlchemyError:
            log.exception("Rollback failed")

    async def _after_commit(self) -> None:
        keys, prefixes, notifications = self._keys, self._prefixes, self._notifications
        self._keys, self._prefixes, self._notifications = set(), set(), []

        for key in keys:
            await self.cache.delete(key)
        for prefix in prefixes:
            await self.cache.delete_prefix(prefix)
        if keys or prefixes:
            log.debug("Invalidated %s keys and %s prefixes", len(keys), len(prefixes))

        for notification in notifications:
            self.notifier.schedule(notification)
