"""
Permission-scoped, filtered and paginated entity lists.

Principals without the list capability, or without any relation, get an
empty result rather than an error. Ordering always ends with the primary key
so pages are stable.
"""
from typing import Any

from sqlalchemy import select, func, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import config
from app.core.cache import CacheBackend, list_total_key
from app.core.database.base import EntityStatus
from app.core.errors import ValidationError
from app.features.access import policy
from app.features.access.resolver import AccessResolver
from app.features.agencies.models import Agency
from app.features.agencies.schemas import AgencyResponse
from app.features.divisions.models import Division
from app.features.divisions.schemas import DivisionResponse
from app.features.employees.models import Employee
from app.features.employees.schemas import EmployeeResponse
from app.features.listing.filters import ScopeFilterRegistry, base_scope, scope_filters
from app.features.listing.schemas import ListQuery, ListResult, StatusFilter
from app.features.permissions.capabilities import ENTITY_TYPES, Principal
from app.utils import get_logger


log = get_logger(__name__)

MODELS = {"agency": Agency, "division": Division, "employee": Employee}
RESPONSES = {"agency": AgencyResponse, "division": DivisionResponse, "employee": EmployeeResponse}

SEARCH_COLUMNS = {
    "agency": ("name", "code"),
    "division": ("name", "code"),
    "employee": ("name", "email", "position"),
}
SORT_COLUMNS = {
    "agency": ("name", "code", "status", "created_at"),
    "division": ("name", "code", "type", "status", "created_at"),
    "employee": ("name", "email", "position", "status", "created_at"),
}


def escape_like(term: str) -> str:
    """Treat % and _ in user input literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ListingGateway:
    def __init__(self, db: AsyncSession, cache: CacheBackend, filters: ScopeFilterRegistry = scope_filters):
        self.db = db
        self.cache = cache
        self.filters = filters
        self.access = AccessResolver(db, cache)

    def _status_condition(self, model, principal: Principal, query: ListQuery):
        status = query.status if policy.can_view_inactive(principal) else StatusFilter.ACTIVE
        if status == StatusFilter.ALL:
            return status, None
        return status, model.status == EntityStatus(status.value)

    def _request_conditions(self, entity_type: str, model, query: ListQuery) -> list:
        conditions = []
        if query.search:
            term = f"%{escape_like(query.search.strip().lower())}%"
            conditions.append(or_(*[
                func.lower(getattr(model, column)).like(term, escape="\\")
                for column in SEARCH_COLUMNS[entity_type]
            ]))
        if query.agency_id:
            conditions.append((model.id if entity_type == "agency" else model.agency_id) == query.agency_id)
        if query.division_id and entity_type != "agency":
            conditions.append((model.id if entity_type == "division" else model.division_id) == query.division_id)
        return conditions

    async def _count(self, model, conditions: list) -> int:
        stmt = select(func.count()).select_from(model)
        if conditions:
            stmt = stmt.where(and_(*conditions))
        return (await self.db.execute(stmt)).scalar() or 0

    async def list_entities(self, entity_type: str, principal: Principal, query: ListQuery) -> ListResult:
        if entity_type not in ENTITY_TYPES:
            raise ValidationError(f"Unknown entity type {entity_type}")
        if not policy.can_list(principal, entity_type):
            log.debug("Principal %s lacks list capability for %s", principal.id, entity_type)
            return ListResult()

        model = MODELS[entity_type]
        status, status_condition = self._status_condition(model, principal, query)

        base = [c for c in (base_scope(entity_type, principal), status_condition) if c is not None]
        extra = self.filters.conditions(entity_type, principal, query)
        scope = base + extra

        # Extra filters may depend on the query, so only the base total is cached
        if extra:
            total_count = await self._count(model, scope)
        else:
            scope_key = "global" if principal.is_system_admin else principal.id
            total_count = await self.cache.remember(
                list_total_key(entity_type, scope_key, status.value),
                config.ENTITY_CACHE_TTL,
                lambda: self._count(model, base),
            ) or 0

        conditions = scope + self._request_conditions(entity_type, model, query)
        filtered_count = await self._count(model, conditions)

        order_column = query.order_by if query.order_by in SORT_COLUMNS[entity_type] else "name"
        column = getattr(model, order_column)
        ordering = column.desc() if query.order_dir == "desc" else column.asc()

        stmt = select(model)
        if conditions:
            stmt = stmt.where(and_(*conditions))
        stmt = stmt.order_by(ordering, model.id.asc()).offset(query.start).limit(query.length)
        entities = list((await self.db.execute(stmt)).scalars().all())

        rows = await self._serialize(entity_type, entities, principal)
        return ListResult(rows=rows, total_count=total_count, filtered_count=filtered_count)

    async def _serialize(self, entity_type: str, entities: list, principal: Principal) -> list[dict[str, Any]]:
        counts: dict[str, dict[str, int]] = {}
        if entity_type == "agency" and entities:
            counts = await self._agency_counts([agency.id for agency in entities])

        rows = []
        for entity in entities:
            row = RESPONSES[entity_type].model_validate(entity)
            if entity_type == "agency":
                row.division_count = counts.get("divisions", {}).get(entity.id, 0)
                row.employee_count = counts.get("employees", {}).get(entity.id, 0)
            data = row.model_dump(mode="json")
            relation = await self.access.resolve(principal, entity_type, entity.id)
            data["actions"] = {
                "view": policy.can_view(principal, relation),
                "update": policy.can_update(principal, relation),
                "delete": policy.can_delete(principal, relation),
            }
            rows.append(data)
        return rows

    async def _agency_counts(self, agency_ids: list[str]) -> dict[str, dict[str, int]]:
        counts = {}
        for key, model in (("divisions", Division), ("employees", Employee)):
            result = await self.db.execute(
                select(model.agency_id, func.count(model.id))
                .where(model.agency_id.in_(agency_ids), model.status == EntityStatus.ACTIVE)
                .group_by(model.agency_id)
            )
            counts[key] = {agency_id: count for agency_id, count in result.all()}
        return counts
