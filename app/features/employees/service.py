"""
Employee lifecycle.
"""
from typing import Any

from app.core.database.base import EntityStatus
from app.core.database.unit_of_work import UnitOfWork
from app.core.errors import ConflictError, DependencyError, PermissionDeniedError, ValidationError
from app.core.events import EmployeeCreated, EmployeeDeleted
from app.core.notifications import Notification
from app.features.access import policy
from app.features.access.resolver import AccessResolver
from app.features.divisions.models import Division
from app.features.employees.models import Employee
from app.features.employees.repository import EmployeeRepository
from app.features.employees.schemas import EmployeeCreate, EmployeeResponse, EmployeeUpdate
from app.features.permissions.capabilities import AGENCY_EMPLOYEE, AGENCY_ROLES, Principal
from app.features.permissions.dependencies import create_audit_log
from app.features.users.directory import IdentityDirectory
from app.features.users.models import User
from app.utils import get_logger


log = get_logger(__name__)

SYSTEM_NOTES = "Auto-created by system"


class EmployeeService:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow
        self.repo = EmployeeRepository(uow)
        self.access = AccessResolver(uow.session, uow.cache)
        self.directory = IdentityDirectory(uow.session)

    @staticmethod
    async def serialize(employee: Employee) -> dict[str, Any]:
        return EmployeeResponse.model_validate(employee).model_dump(mode="json")

    async def _persist_new_or_reactivated(
        self,
        division: Division,
        user: User,
        existing: Employee | None,
        fields: dict[str, Any],
        actor: Principal,
    ) -> Employee:
        if existing is not None:
            for field, value in fields.items():
                setattr(existing, field, value)
            existing.status = EntityStatus.ACTIVE
            employee = await self.repo.save(existing)
            log.info("Reactivated employee %s in division %s", employee.id, division.id)
        else:
            employee = await self.repo.add(Employee(
                agency_id=division.agency_id,
                division_id=division.id,
                principal_id=user.id,
                created_by=actor.id,
                **fields,
            ))
            log.info("Employee %s created in division %s", employee.id, division.id)

        create_audit_log(
            self.uow.session, actor.id, "create", "employee", employee.id, division.agency_id,
            details={"division_id": division.id, "principal_id": user.id},
        )
        self.uow.notify(Notification(
            topic="employee.created",
            subject=f"You have been added to {division.name}",
            recipient=employee.email,
            data={"employee_id": employee.id, "division_id": division.id},
        ))
        await self.uow.dispatch(EmployeeCreated(
            actor=actor,
            employee_id=employee.id,
            division_id=division.id,
            agency_id=division.agency_id,
        ))
        return employee

    async def create_employee(self, data: EmployeeCreate, actor: Principal) -> Employee:
        relation = await self.access.require_view(actor, "division", data.division_id)
        if not policy.can_create_employee(actor, relation):
            raise PermissionDeniedError("You do not have permission to add employees to this division")

        async with self.uow.transaction():
            division = await self.uow.session.get(Division, data.division_id)
            if not division.is_active:
                raise ValidationError("Cannot add employees to an inactive division")

            if data.user is not None:
                user = await self.directory.create_principal(data.user.email, data.user.name)
            else:
                user = await self.directory.require_user(data.principal_id)

            existing = await self.repo.for_principal_in_division(user.id, division.id)
            if existing is not None and existing.is_active:
                raise ConflictError(
                    "This principal is already an employee of the division",
                    fields={"principal_id": user.id},
                )

            email = str(data.email or user.email)
            if await self.repo.email_taken(division.agency_id, email, user.id):
                raise ConflictError(
                    "Email is already used by another employee of this agency",
                    fields={"email": "Already in use in this agency"},
                )

            if not any(role in AGENCY_ROLES for role in user.roles or []):
                await self.directory.grant_role(user, AGENCY_EMPLOYEE)

            fields = {
                "name": data.name or user.name,
                "email": email,
                "phone": data.phone,
                "position": data.position,
                "notes": data.notes,
            }
            return await self._persist_new_or_reactivated(division, user, existing, fields, actor)

    async def ensure_employee(
        self,
        division: Division,
        principal_id: str | None,
        actor: Principal,
        position: str = "Admin",
    ) -> Employee | None:
        """
        Idempotent system-side creation of an employee row, used for division
        admins. No-op without a principal or when an active row exists.
        """
        if not principal_id:
            log.debug("Division %s has no admin principal, no employee created", division.id)
            return None

        async with self.uow.transaction():
            user = await self.directory.get_user(principal_id)
            if user is None:
                raise DependencyError(f"Principal {principal_id} for division {division.code} does not exist")

            existing = await self.repo.for_principal_in_division(principal_id, division.id)
            if existing is not None and existing.is_active:
                log.debug("Principal %s is already an employee of division %s", principal_id, division.id)
                return existing

            fields = {
                "name": user.name,
                "email": user.email,
                "phone": "-",
                "position": position,
                "notes": SYSTEM_NOTES,
            }
            return await self._persist_new_or_reactivated(division, user, existing, fields, actor)

    async def update_employee(self, employee_id: str, data: EmployeeUpdate, actor: Principal) -> Employee:
        await self.access.require_update(actor, "employee", employee_id)

        async with self.uow.transaction():
            employee = await self.repo.require(employee_id)
            changes = data.model_dump(exclude_unset=True, exclude_none=True)
            if "email" in changes:
                changes["email"] = str(changes["email"])
                if await self.repo.email_taken(
                    employee.agency_id, changes["email"], employee.principal_id, exclude_id=employee.id
                ):
                    raise ConflictError(
                        "Email is already used by another employee of this agency",
                        fields={"email": "Already in use in this agency"},
                    )

            before = {field: getattr(employee, field) for field in changes}
            for field, value in changes.items():
                setattr(employee, field, value)
            await self.repo.save(employee)

            create_audit_log(
                self.uow.session, actor.id, "update", "employee", employee.id, employee.agency_id,
                details={"before": before, "after": changes},
            )
        return employee

    async def delete_employee(self, employee_id: str, actor: Principal, hard: bool | None = None) -> None:
        await self.access.require_delete(actor, "employee", employee_id)
        hard = self.uow.hard_delete if hard is None else hard

        async with self.uow.transaction():
            employee = await self.repo.require(employee_id)
            await self.remove_employee(employee, actor, hard)

    async def remove_employee(self, employee: Employee, actor: Principal, hard: bool) -> None:
        """Delete without permission checks; used by delete_employee and cascades."""
        async with self.uow.transaction():
            employee_id, division_id, agency_id = employee.id, employee.division_id, employee.agency_id
            if hard:
                await self.repo.remove(employee)
            else:
                await self.repo.deactivate(employee)

            create_audit_log(
                self.uow.session, actor.id, "delete", "employee", employee_id, agency_id,
                details={"hard": hard, "division_id": division_id},
            )
            await self.uow.dispatch(EmployeeDeleted(
                actor=actor,
                employee_id=employee_id,
                division_id=division_id,
                agency_id=agency_id,
                hard=hard,
            ))

    async def get_employee(self, employee_id: str, actor: Principal) -> dict[str, Any]:
        await self.access.require_view(actor, "employee", employee_id)
        return await self.repo.get_cached(employee_id, self.serialize)
