"""
In-process lifecycle events and their dispatcher.

Events are pure data. Handlers are registered per event type with a priority
and run sequentially inside the caller's unit of work, so a cascade commits
or rolls back together with the operation that triggered it.

Usage:
    dispatcher = EventDispatcher()
    dispatcher.subscribe(AgencyCreated, create_headquarters_division, priority=10)
    await dispatcher.dispatch(AgencyCreated(agency_id=agency.id, actor=principal), uow)
"""
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from app.utils import get_logger

if TYPE_CHECKING:
    from app.core.database.unit_of_work import UnitOfWork
    from app.features.permissions.capabilities import Principal


log = get_logger(__name__)

Handler = Callable[[Any, "UnitOfWork"], Awaitable[None]]


@dataclass(frozen=True, kw_only=True)
class LifecycleEvent:
    actor: "Principal"

    @property
    def name(self) -> str:
        return type(self).__name__


@dataclass(frozen=True, kw_only=True)
class AgencyCreated(LifecycleEvent):
    agency_id: str
    # Distinct admin for the headquarters division; None means the agency owner
    admin_principal_id: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class AgencyBeforeDeleted(LifecycleEvent):
    agency_id: str
    hard: bool


@dataclass(frozen=True, kw_only=True)
class AgencyDeleted(LifecycleEvent):
    agency_id: str
    hard: bool


@dataclass(frozen=True, kw_only=True)
class DivisionCreated(LifecycleEvent):
    division_id: str
    agency_id: str


@dataclass(frozen=True, kw_only=True)
class DivisionBeforeDeleted(LifecycleEvent):
    division_id: str
    agency_id: str
    hard: bool
    # True when the deletion is part of an agency cascade
    cascade: bool = False


@dataclass(frozen=True, kw_only=True)
class DivisionDeleted(LifecycleEvent):
    division_id: str
    agency_id: str
    hard: bool


@dataclass(frozen=True, kw_only=True)
class EmployeeCreated(LifecycleEvent):
    employee_id: str
    division_id: str
    agency_id: str


@dataclass(frozen=True, kw_only=True)
class EmployeeDeleted(LifecycleEvent):
    employee_id: str
    division_id: str
    agency_id: str
    hard: bool


@dataclass(frozen=True)
class RegisteredHandler:
    handler: Handler
    priority: int
    order: int

    @property
    def name(self) -> str:
        return getattr(self.handler, "__name__", repr(self.handler))


class EventDispatcher:
    """
    Registry of lifecycle handlers.

    Lower priority values run first; equal priorities run in subscription
    order. A handler exception stops the dispatch and propagates to the
    caller, which rolls back the surrounding unit of work. ``*BeforeDeleted``
    handlers use this to veto a deletion.
    """

    def __init__(self):
        self._handlers: dict[type, list[RegisteredHandler]] = defaultdict(list)
        self._count = 0

    def subscribe(self, event_type: type, handler: Handler, priority: int = 100) -> None:
        self._count += 1
        entries = self._handlers[event_type]
        entries.append(RegisteredHandler(handler=handler, priority=priority, order=self._count))
        entries.sort(key=lambda entry: (entry.priority, entry.order))
        log.debug("Subscribed %s to %s (priority %s)", entries[-1].name, event_type.__name__, priority)

    def unsubscribe(self, event_type: type, handler: Handler) -> None:
        self._handlers[event_type] = [
            entry for entry in self._handlers[event_type] if entry.handler is not handler
        ]

    def handlers_for(self, event_type: type) -> list[Handler]:
        return [entry.handler for entry in self._handlers.get(event_type, [])]

    async def dispatch(self, event: LifecycleEvent, uow: "UnitOfWork") -> None:
        entries = list(self._handlers.get(type(event), []))
        if not entries:
            log.debug("No handlers for %s", event.name)
            return
        for entry in entries:
            log.debug("Running %s for %s", entry.name, event.name)
            try:
                await entry.handler(event, uow)
            except Exception as exc:
                log.warning("Handler %s failed for %s: %r", entry.name, event.name, exc)
                raise
            log.debug("Finished %s for %s", entry.name, event.name)
