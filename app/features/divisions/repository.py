"""
Division persistence.
"""
import random

from sqlalchemy import func

from app.core.cache import entity_key
from app.core.database.base import EntityStatus
from app.core.database.repository import Repository
from app.core.errors import ConflictError
from app.features.divisions.models import Division, DivisionType


CODE_ATTEMPTS = 20


class DivisionRepository(Repository[Division]):
    model = Division
    entity_type = "division"

    def related_keys(self, entity: Division) -> list[str]:
        # Agency responses carry division counts
        return [entity_key("agency", entity.agency_id)]

    async def generate_code(self, agency_code: str) -> str:
        """<agency code>-RR, retried on collision."""
        for _ in range(CODE_ATTEMPTS):
            code = f"{agency_code}-{random.randint(0, 99):02d}"
            if not await self.exists(Division.code == code):
                return code
        for _ in range(CODE_ATTEMPTS):
            code = f"{agency_code}-{random.randint(0, 9999):04d}"
            if not await self.exists(Division.code == code):
                return code
        raise ConflictError(f"Could not allocate a unique division code under {agency_code}")

    async def active_headquarters(self, agency_id: str) -> Division | None:
        divisions = await self.list_where(
            Division.agency_id == agency_id,
            Division.type == DivisionType.PUSAT,
            Division.status == EntityStatus.ACTIVE,
            order_by=Division.created_at,
        )
        return divisions[0] if divisions else None

    async def count_active(self, agency_id: str, division_type: DivisionType | None = None) -> int:
        criteria = [Division.agency_id == agency_id, Division.status == EntityStatus.ACTIVE]
        if division_type is not None:
            criteria.append(Division.type == division_type)
        return await self.count(*criteria)

    async def has_any(self, agency_id: str) -> bool:
        return await self.exists(Division.agency_id == agency_id, Division.status == EntityStatus.ACTIVE)

    async def name_taken(self, agency_id: str, name: str, exclude_id: str | None = None) -> bool:
        criteria = [
            Division.agency_id == agency_id,
            func.lower(Division.name) == name.strip().lower(),
            Division.status == EntityStatus.ACTIVE,
        ]
        if exclude_id:
            criteria.append(Division.id != exclude_id)
        return await self.exists(*criteria)

    async def for_agency(self, agency_id: str, include_inactive: bool = False) -> list[Division]:
        criteria = [Division.agency_id == agency_id]
        if not include_inactive:
            criteria.append(Division.status == EntityStatus.ACTIVE)
        return await self.list_where(*criteria, order_by=Division.created_at)
