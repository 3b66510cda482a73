"""
Employee persistence.
"""
from sqlalchemy import select, func

from app.core.cache import entity_key
from app.core.database.base import EntityStatus
from app.core.database.repository import Repository
from app.features.employees.models import Employee


class EmployeeRepository(Repository[Employee]):
    model = Employee
    entity_type = "employee"

    def related_keys(self, entity: Employee) -> list[str]:
        # Agency responses carry employee counts
        return [entity_key("agency", entity.agency_id)]

    async def for_principal_in_division(self, principal_id: str, division_id: str) -> Employee | None:
        result = await self.db.execute(
            select(Employee).where(
                Employee.principal_id == principal_id,
                Employee.division_id == division_id,
            )
        )
        return result.scalar_one_or_none()

    async def email_taken(
        self,
        agency_id: str,
        email: str,
        principal_id: str,
        exclude_id: str | None = None,
    ) -> bool:
        """Another principal's active employee in the agency uses this email."""
        criteria = [
            Employee.agency_id == agency_id,
            func.lower(Employee.email) == email.lower(),
            Employee.principal_id != principal_id,
            Employee.status == EntityStatus.ACTIVE,
        ]
        if exclude_id:
            criteria.append(Employee.id != exclude_id)
        return await self.exists(*criteria)

    async def for_division(self, division_id: str, include_inactive: bool = False) -> list[Employee]:
        criteria = [Employee.division_id == division_id]
        if not include_inactive:
            criteria.append(Employee.status == EntityStatus.ACTIVE)
        return await self.list_where(*criteria, order_by=Employee.created_at)
