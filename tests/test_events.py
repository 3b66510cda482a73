"""Tests for the lifecycle event dispatcher."""
import pytest

from app.core.errors import ConflictError
from app.core.events import AgencyCreated, DivisionBeforeDeleted, DivisionDeleted, EventDispatcher
from app.features.lifecycle.handlers import (
    build_dispatcher,
    cascade_division_employees,
    create_headquarters_division,
    release_division_jurisdictions,
)
from app.features.permissions.capabilities import Principal


ACTOR = Principal(id="01HACTOR")


def make_event():
    return AgencyCreated(actor=ACTOR, agency_id="01HAGENCY")


async def test_handlers_run_by_priority_then_subscription_order():
    dispatcher = EventDispatcher()
    calls = []

    def recorder(label):
        async def handler(event, uow):
            calls.append(label)
        handler.__name__ = label
        return handler

    dispatcher.subscribe(AgencyCreated, recorder("late"), priority=50)
    dispatcher.subscribe(AgencyCreated, recorder("first"), priority=10)
    dispatcher.subscribe(AgencyCreated, recorder("second"), priority=10)

    await dispatcher.dispatch(make_event(), None)

    assert calls == ["first", "second", "late"]


async def test_handler_receives_event_and_unit_of_work():
    dispatcher = EventDispatcher()
    seen = []

    async def handler(event, uow):
        seen.append((event.agency_id, uow))

    dispatcher.subscribe(AgencyCreated, handler)
    await dispatcher.dispatch(make_event(), "uow")

    assert seen == [("01HAGENCY", "uow")]


async def test_failing_handler_stops_dispatch_and_propagates():
    dispatcher = EventDispatcher()
    calls = []

    async def veto(event, uow):
        raise ConflictError("Not now")

    async def after(event, uow):
        calls.append("after")

    dispatcher.subscribe(DivisionBeforeDeleted, veto, priority=10)
    dispatcher.subscribe(DivisionBeforeDeleted, after, priority=20)

    event = DivisionBeforeDeleted(actor=ACTOR, division_id="d1", agency_id="a1", hard=False)
    with pytest.raises(ConflictError):
        await dispatcher.dispatch(event, None)
    assert calls == []


async def test_unsubscribe_and_unknown_events():
    dispatcher = EventDispatcher()
    calls = []

    async def handler(event, uow):
        calls.append(event.name)

    dispatcher.subscribe(AgencyCreated, handler)
    dispatcher.unsubscribe(AgencyCreated, handler)

    await dispatcher.dispatch(make_event(), None)
    assert calls == []
    assert dispatcher.handlers_for(DivisionBeforeDeleted) == []


def test_event_name_and_immutability():
    event = make_event()
    assert event.name == "AgencyCreated"
    with pytest.raises(AttributeError):
        event.agency_id = "other"


def test_lifecycle_wiring():
    dispatcher = build_dispatcher()

    assert dispatcher.handlers_for(AgencyCreated) == [create_headquarters_division]
    assert dispatcher.handlers_for(DivisionDeleted) == [
        cascade_division_employees,
        release_division_jurisdictions,
    ]
