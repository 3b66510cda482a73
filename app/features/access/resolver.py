"""
Access resolver: computes a principal's relation to an agency, division or
employee and checks operations against it.

Relations are cached per (principal, entity) for ACCESS_CACHE_TTL seconds.
The system-admin flag is taken from the principal on every call, so only the
structural part of a relation is cached.
"""
from sqlalchemy import select, exists
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import config
from app.core.cache import CacheBackend, access_key
from app.core.database.base import EntityStatus
from app.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from app.features.access import policy
from app.features.access.schemas import AccessRelation
from app.features.agencies.models import Agency
from app.features.divisions.models import Division
from app.features.employees.models import Employee
from app.features.permissions.capabilities import ENTITY_TYPES, Principal
from app.utils import get_logger


log = get_logger(__name__)

_LABELS = {"agency": "Agency", "division": "Division", "employee": "Employee"}


class AccessResolver:
    def __init__(self, db: AsyncSession, cache: CacheBackend, ttl: int | None = None):
        self.db = db
        self.cache = cache
        self.ttl = config.ACCESS_CACHE_TTL if ttl is None else ttl

    async def resolve(self, principal: Principal, entity_type: str, entity_id: str) -> AccessRelation:
        if entity_type not in ENTITY_TYPES:
            raise ValidationError(
                f"Unknown entity type {entity_type}",
                fields={"entity_type": f"Must be one of {', '.join(ENTITY_TYPES)}"},
            )

        async def load():
            relation = await self._compute(principal.id, entity_type, entity_id)
            return relation.model_dump(mode="json")

        data = await self.cache.remember(access_key(principal.id, entity_type, entity_id), self.ttl, load)
        relation = AccessRelation.model_validate(data)
        relation.is_system_admin = principal.is_system_admin
        return relation

    async def _active_employee_exists(self, principal_id: str, **criteria) -> bool:
        stmt = select(exists().where(
            Employee.principal_id == principal_id,
            Employee.status == EntityStatus.ACTIVE,
            *[getattr(Employee, column) == value for column, value in criteria.items()],
        ))
        return bool((await self.db.execute(stmt)).scalar())

    async def _compute(self, principal_id: str, entity_type: str, entity_id: str) -> AccessRelation:
        relation = AccessRelation(principal_id=principal_id, entity_type=entity_type, entity_id=entity_id)

        if entity_type == "agency":
            agency = await self.db.get(Agency, entity_id)
            if agency is None:
                relation.exists = False
                return relation
            relation.agency_id = agency.id
            relation.is_active = agency.is_active
            relation.is_owner = agency.owning_principal_id == principal_id
            division_admin = await self.db.execute(select(exists().where(
                Division.agency_id == agency.id,
                Division.admin_principal_id == principal_id,
                Division.status == EntityStatus.ACTIVE,
            )))
            relation.is_division_admin = bool(division_admin.scalar())
            relation.is_employee = await self._active_employee_exists(principal_id, agency_id=agency.id)
            return relation

        if entity_type == "division":
            division = await self.db.get(Division, entity_id)
            if division is None:
                relation.exists = False
                return relation
            agency = await self.db.get(Agency, division.agency_id)
            relation.agency_id = division.agency_id
            relation.division_id = division.id
            relation.is_active = division.is_active
            relation.is_owner = agency is not None and agency.owning_principal_id == principal_id
            relation.is_division_admin = division.admin_principal_id == principal_id
            relation.is_employee = await self._active_employee_exists(principal_id, division_id=division.id)
            return relation

        employee = await self.db.get(Employee, entity_id)
        if employee is None:
            relation.exists = False
            return relation
        division = await self.db.get(Division, employee.division_id)
        agency = await self.db.get(Agency, employee.agency_id)
        relation.agency_id = employee.agency_id
        relation.division_id = employee.division_id
        relation.is_active = employee.is_active
        relation.is_owner = agency is not None and agency.owning_principal_id == principal_id
        relation.is_division_admin = division is not None and division.admin_principal_id == principal_id
        relation.is_employee = await self._active_employee_exists(principal_id, division_id=employee.division_id)
        relation.is_self = employee.principal_id == principal_id
        return relation

    async def require_view(self, principal: Principal, entity_type: str, entity_id: str) -> AccessRelation:
        """
        Raises NotFoundError both when the entity is absent and when it is not
        visible, so unauthorized callers cannot probe for existence.
        """
        relation = await self.resolve(principal, entity_type, entity_id)
        if not policy.can_view(principal, relation):
            log.debug("Principal %s cannot view %s %s", principal.id, entity_type, entity_id)
            raise NotFoundError(f"{_LABELS[entity_type]} not found")
        return relation

    async def require_update(self, principal: Principal, entity_type: str, entity_id: str) -> AccessRelation:
        relation = await self.require_view(principal, entity_type, entity_id)
        if not policy.can_update(principal, relation):
            raise PermissionDeniedError(f"You do not have permission to update this {entity_type}")
        return relation

    async def require_delete(self, principal: Principal, entity_type: str, entity_id: str) -> AccessRelation:
        relation = await self.require_view(principal, entity_type, entity_id)
        if not policy.can_delete(principal, relation):
            raise PermissionDeniedError(f"You do not have permission to delete this {entity_type}")
        return relation
