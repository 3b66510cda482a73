"""
Permission scope filters for list queries.

The base scope restricts rows to what the principal is related to:
- system admin: everything
- agencies: owned, holding a division they administer, or employing them
- divisions: in an owned agency, administered by them, or employing them
- employees: in an owned agency, or in a division they administer or work in

Extra filters registered by integrations are AND-ed after the base scope;
they can narrow results further but never replace it.

Usage:
    def only_aceh(principal, query):
        return Agency.province_code == "11"

    scope_filters.register("agency", only_aceh)
"""
from collections import defaultdict
from collections.abc import Callable
from typing import Optional

from sqlalchemy import select, or_
from sqlalchemy.sql import ColumnElement

from app.core.database.base import EntityStatus
from app.features.agencies.models import Agency
from app.features.divisions.models import Division
from app.features.employees.models import Employee
from app.features.listing.schemas import ListQuery
from app.features.permissions.capabilities import Principal
from app.utils import get_logger


log = get_logger(__name__)

ScopeFilter = Callable[[Principal, ListQuery], Optional[ColumnElement[bool]]]


def _owned_agencies(principal_id: str):
    return select(Agency.id).where(Agency.owning_principal_id == principal_id)


def _administered_divisions(principal_id: str):
    return select(Division.id).where(
        Division.admin_principal_id == principal_id,
        Division.status == EntityStatus.ACTIVE,
    )


def _employing_divisions(principal_id: str):
    return select(Employee.division_id).where(
        Employee.principal_id == principal_id,
        Employee.status == EntityStatus.ACTIVE,
    )


def base_scope(entity_type: str, principal: Principal) -> Optional[ColumnElement[bool]]:
    """None means unrestricted."""
    if principal.is_system_admin:
        return None
    pid = principal.id

    if entity_type == "agency":
        return or_(
            Agency.id.in_(_owned_agencies(pid)),
            Agency.id.in_(
                select(Division.agency_id).where(
                    Division.admin_principal_id == pid, Division.status == EntityStatus.ACTIVE
                )
            ),
            Agency.id.in_(
                select(Employee.agency_id).where(
                    Employee.principal_id == pid, Employee.status == EntityStatus.ACTIVE
                )
            ),
        )
    if entity_type == "division":
        return or_(
            Division.agency_id.in_(_owned_agencies(pid)),
            Division.id.in_(_administered_divisions(pid)),
            Division.id.in_(_employing_divisions(pid)),
        )
    return or_(
        Employee.agency_id.in_(_owned_agencies(pid)),
        Employee.division_id.in_(_administered_divisions(pid)),
        Employee.division_id.in_(_employing_divisions(pid)),
    )


class ScopeFilterRegistry:
    def __init__(self):
        self._filters: dict[str, list[ScopeFilter]] = defaultdict(list)

    def register(self, entity_type: str, scope_filter: ScopeFilter) -> None:
        self._filters[entity_type].append(scope_filter)
        log.info("Registered %s scope filter %s", entity_type, getattr(scope_filter, "__name__", scope_filter))

    def unregister(self, entity_type: str, scope_filter: ScopeFilter) -> None:
        self._filters[entity_type] = [f for f in self._filters[entity_type] if f is not scope_filter]

    def conditions(self, entity_type: str, principal: Principal, query: ListQuery) -> list[ColumnElement[bool]]:
        conditions = []
        for scope_filter in self._filters.get(entity_type, []):
            condition = scope_filter(principal, query)
            if condition is not None:
                conditions.append(condition)
        return conditions


scope_filters = ScopeFilterRegistry()
