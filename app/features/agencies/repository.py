"""
Agency persistence.
"""
import random
import time

from sqlalchemy import select, func

from app.core.database.base import EntityStatus
from app.core.database.repository import Repository
from app.core.errors import ConflictError
from app.features.agencies.models import Agency
from app.features.divisions.models import Division
from app.features.employees.models import Employee
from app.utils import get_logger


log = get_logger(__name__)

CODE_PREFIX = "AGC-"
CODE_ATTEMPTS = 10


class AgencyRepository(Repository[Agency]):
    model = Agency
    entity_type = "agency"

    async def code_exists(self, code: str) -> bool:
        return await self.exists(Agency.code == code)

    async def generate_code(self) -> str:
        """AGC- + last 4 digits of the unix time + 2 random digits."""
        for _ in range(CODE_ATTEMPTS):
            stamp = str(int(time.time()))[-4:]
            code = f"{CODE_PREFIX}{stamp}{random.randint(0, 99):02d}"
            if not await self.code_exists(code):
                return code
        # Busy second: widen the random part
        for _ in range(CODE_ATTEMPTS):
            code = f"{CODE_PREFIX}{str(int(time.time()))[-4:]}{random.randint(0, 9999):04d}"
            if not await self.code_exists(code):
                log.info("Agency code fallback used: %s", code)
                return code
        raise ConflictError("Could not allocate a unique agency code, try again")

    async def name_taken(self, name: str, exclude_id: str | None = None) -> bool:
        criteria = [
            func.lower(Agency.name) == name.strip().lower(),
            Agency.status == EntityStatus.ACTIVE,
        ]
        if exclude_id:
            criteria.append(Agency.id != exclude_id)
        return await self.exists(*criteria)

    async def counts(self, agency_id: str) -> tuple[int, int]:
        """Active division and employee counts."""
        divisions = await self.db.execute(
            select(func.count(Division.id)).where(
                Division.agency_id == agency_id, Division.status == EntityStatus.ACTIVE
            )
        )
        employees = await self.db.execute(
            select(func.count(Employee.id)).where(
                Employee.agency_id == agency_id, Employee.status == EntityStatus.ACTIVE
            )
        )
        return divisions.scalar() or 0, employees.scalar() or 0
