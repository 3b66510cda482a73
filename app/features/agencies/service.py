"""
Agency lifecycle: create, update, delete and read.

Creating an agency dispatches AgencyCreated; the lifecycle handlers create
its headquarters division and, through DivisionCreated, the headquarters
employee, all inside the same transaction. Deleting dispatches
AgencyBeforeDeleted (handlers may veto) and AgencyDeleted (handlers cascade
to divisions, their employees and jurisdictions).
"""
from typing import Any

from app.core.database.unit_of_work import UnitOfWork
from app.core.errors import ConflictError, PermissionDeniedError
from app.core.events import AgencyBeforeDeleted, AgencyCreated, AgencyDeleted
from app.core.notifications import Notification
from app.features.access import policy
from app.features.access.resolver import AccessResolver
from app.features.agencies.models import Agency
from app.features.agencies.repository import AgencyRepository
from app.features.agencies.schemas import AgencyCreate, AgencyResponse, AgencyUpdate
from app.features.geo.service import GeoReference
from app.features.permissions.capabilities import AGENCY, Principal
from app.features.permissions.dependencies import create_audit_log
from app.features.users.directory import IdentityDirectory
from app.utils import get_logger


log = get_logger(__name__)


class AgencyService:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow
        self.repo = AgencyRepository(uow)
        self.access = AccessResolver(uow.session, uow.cache)
        self.directory = IdentityDirectory(uow.session)
        self.geo = GeoReference(uow.session)

    async def serialize(self, agency: Agency) -> dict[str, Any]:
        division_count, employee_count = await self.repo.counts(agency.id)
        response = AgencyResponse.model_validate(agency)
        response.division_count = division_count
        response.employee_count = employee_count
        return response.model_dump(mode="json")

    async def _check_name(self, name: str, exclude_id: str | None = None) -> None:
        if await self.repo.name_taken(name, exclude_id):
            raise ConflictError(
                "An agency with this name already exists",
                fields={"name": "Agency name is already in use"},
            )

    async def create_agency(self, data: AgencyCreate, actor: Principal) -> Agency:
        if not policy.can_create_agency(actor):
            raise PermissionDeniedError("You do not have permission to create agencies")

        async with self.uow.transaction():
            await self._check_name(data.name)
            await self.geo.validate_location(data.province_code, data.regency_code)
            if data.admin_principal_id:
                await self.directory.require_user(data.admin_principal_id)

            if data.owner is not None:
                owner = await self.directory.create_principal(data.owner.email, data.owner.name)
            else:
                owner = await self.directory.require_user(data.owning_principal_id or actor.id)
            await self.directory.grant_role(owner, AGENCY)

            agency = Agency(
                code=await self.repo.generate_code(),
                name=data.name.strip(),
                province_code=data.province_code,
                regency_code=data.regency_code,
                owning_principal_id=owner.id,
                created_by=actor.id,
            )
            await self.repo.add(agency)
            log.info("Agency %s (%s) created by %s", agency.id, agency.code, actor.id)

            create_audit_log(
                self.uow.session, actor.id, "create", "agency", agency.id, agency.id,
                details={"name": agency.name, "code": agency.code, "owner": owner.id},
            )
            self.uow.notify(Notification(
                topic="agency.created",
                subject=f"Agency {agency.name} has been registered",
                recipient=owner.email,
                data={"agency_id": agency.id, "code": agency.code},
            ))
            await self.uow.dispatch(AgencyCreated(
                actor=actor,
                agency_id=agency.id,
                admin_principal_id=data.admin_principal_id,
            ))
        return agency

    async def update_agency(self, agency_id: str, data: AgencyUpdate, actor: Principal) -> Agency:
        await self.access.require_update(actor, "agency", agency_id)

        async with self.uow.transaction():
            agency = await self.repo.require(agency_id)
            changes = data.model_dump(exclude_unset=True, exclude_none=True)
            if "name" in changes:
                changes["name"] = changes["name"].strip()
                await self._check_name(changes["name"], exclude_id=agency.id)
            if "province_code" in changes or "regency_code" in changes:
                await self.geo.validate_location(
                    changes.get("province_code", agency.province_code),
                    changes.get("regency_code", agency.regency_code),
                )

            before = {field: getattr(agency, field) for field in changes}
            for field, value in changes.items():
                setattr(agency, field, value)
            await self.repo.save(agency)

            create_audit_log(
                self.uow.session, actor.id, "update", "agency", agency.id, agency.id,
                details={"before": before, "after": changes},
            )
        return agency

    async def delete_agency(self, agency_id: str, actor: Principal, hard: bool | None = None) -> None:
        """Soft (inactive) or hard delete, cascading to every division."""
        await self.access.require_delete(actor, "agency", agency_id)
        hard = self.uow.hard_delete if hard is None else hard

        async with self.uow.transaction():
            agency = await self.repo.require(agency_id)
            await self.uow.dispatch(AgencyBeforeDeleted(actor=actor, agency_id=agency.id, hard=hard))

            if hard:
                await self.repo.remove(agency)
            else:
                await self.repo.deactivate(agency)
            log.info("Agency %s %s by %s", agency_id, "removed" if hard else "deactivated", actor.id)

            create_audit_log(
                self.uow.session, actor.id, "delete", "agency", agency_id, agency_id,
                details={"hard": hard, "code": agency.code},
            )
            await self.uow.dispatch(AgencyDeleted(actor=actor, agency_id=agency_id, hard=hard))

    async def get_agency(self, agency_id: str, actor: Principal) -> dict[str, Any]:
        await self.access.require_view(actor, "agency", agency_id)
        return await self.repo.get_cached(agency_id, self.serialize)
