"""
Cascade handlers wiring the entity lifecycle together.

    AgencyCreated          -> create the headquarters division
    DivisionCreated        -> create the division admin's employee record
    AgencyDeleted          -> delete every division of the agency
    DivisionBeforeDeleted  -> veto deleting a headquarters with active branches
    DivisionDeleted        -> delete the division's employees, release its jurisdictions

Handlers run inside the triggering unit of work; a failure rolls back the
whole operation, parent included.
"""
from typing import Optional

from app.core.database.unit_of_work import UnitOfWork
from app.core.errors import ConflictError, DependencyError
from app.core.events import (
    AgencyCreated,
    AgencyDeleted,
    DivisionBeforeDeleted,
    DivisionCreated,
    DivisionDeleted,
    EventDispatcher,
)
from app.features.agencies.models import Agency
from app.features.divisions.models import Division, DivisionType
from app.features.divisions.repository import DivisionRepository
from app.features.divisions.service import DivisionService
from app.features.employees.repository import EmployeeRepository
from app.features.employees.service import EmployeeService
from app.features.jurisdictions.service import JurisdictionService
from app.utils import get_logger


log = get_logger(__name__)


async def create_headquarters_division(event: AgencyCreated, uow: UnitOfWork) -> None:
    agency = await uow.session.get(Agency, event.agency_id)
    if agency is None:
        raise DependencyError(f"Agency {event.agency_id} disappeared before its headquarters was created")
    division = await DivisionService(uow).create_headquarters(agency, event.actor, event.admin_principal_id)
    log.info("Headquarters %s ready for agency %s", division.id, agency.id)


async def create_division_admin_employee(event: DivisionCreated, uow: UnitOfWork) -> None:
    division = await uow.session.get(Division, event.division_id)
    if division is None:
        raise DependencyError(f"Division {event.division_id} disappeared before its admin employee was created")
    await EmployeeService(uow).ensure_employee(division, division.admin_principal_id, event.actor)


async def cascade_agency_deletion(event: AgencyDeleted, uow: UnitOfWork) -> None:
    divisions = await DivisionRepository(uow).for_agency(event.agency_id, include_inactive=event.hard)
    # Branches first so the headquarters is always the last one standing
    divisions.sort(key=lambda division: division.type == DivisionType.PUSAT)
    service = DivisionService(uow)
    for division in divisions:
        await service.remove_division(division, event.actor, event.hard, cascade=True)
    log.info("Agency %s cascade removed %s divisions", event.agency_id, len(divisions))


async def guard_headquarters_deletion(event: DivisionBeforeDeleted, uow: UnitOfWork) -> None:
    if event.cascade:
        return
    division = await uow.session.get(Division, event.division_id)
    if division is None or division.type != DivisionType.PUSAT or not division.is_active:
        return
    branches = await DivisionRepository(uow).count_active(event.agency_id, DivisionType.CABANG)
    if branches:
        raise ConflictError(
            f"Cannot delete the headquarters while {branches} active branch divisions exist",
            fields={"division_id": event.division_id},
        )


async def cascade_division_employees(event: DivisionDeleted, uow: UnitOfWork) -> None:
    employees = await EmployeeRepository(uow).for_division(event.division_id, include_inactive=event.hard)
    service = EmployeeService(uow)
    for employee in employees:
        await service.remove_employee(employee, event.actor, event.hard)
    log.info("Division %s cascade removed %s employees", event.division_id, len(employees))


async def release_division_jurisdictions(event: DivisionDeleted, uow: UnitOfWork) -> None:
    await JurisdictionService(uow).release(event.division_id, event.agency_id, event.actor, event.hard)


def build_dispatcher() -> EventDispatcher:
    dispatcher = EventDispatcher()
    dispatcher.subscribe(AgencyCreated, create_headquarters_division, priority=10)
    dispatcher.subscribe(DivisionCreated, create_division_admin_employee, priority=10)
    dispatcher.subscribe(DivisionBeforeDeleted, guard_headquarters_deletion, priority=10)
    dispatcher.subscribe(AgencyDeleted, cascade_agency_deletion, priority=10)
    dispatcher.subscribe(DivisionDeleted, cascade_division_employees, priority=10)
    dispatcher.subscribe(DivisionDeleted, release_division_jurisdictions, priority=20)
    return dispatcher


_dispatcher: Optional[EventDispatcher] = None


def get_dispatcher() -> EventDispatcher:
    """Process-wide dispatcher, built on first use."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = build_dispatcher()
    return _dispatcher
