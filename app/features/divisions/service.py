"""
Division lifecycle.

Type rules for an agency:
- its first division is a headquarters (pusat)
- it has at most one active pusat
- the last active pusat cannot become a branch (cabang)
- a pusat cannot be deleted directly while active cabang divisions exist
  (an agency cascade may delete it)
"""
from typing import Any

from app.core.database.unit_of_work import UnitOfWork
from app.core.errors import ConflictError, PermissionDeniedError, ValidationError
from app.core.events import DivisionBeforeDeleted, DivisionCreated, DivisionDeleted
from app.core.notifications import Notification
from app.features.access import policy
from app.features.access.resolver import AccessResolver
from app.features.agencies.models import Agency
from app.features.divisions.models import Division, DivisionType
from app.features.divisions.repository import DivisionRepository
from app.features.divisions.schemas import DivisionCreate, DivisionResponse, DivisionUpdate
from app.features.employees.service import EmployeeService
from app.features.geo.service import GeoReference
from app.features.jurisdictions.service import JurisdictionService
from app.features.permissions.capabilities import AGENCY_ADMIN_UNIT, Principal
from app.features.permissions.dependencies import create_audit_log
from app.features.users.directory import IdentityDirectory
from app.utils import get_logger


log = get_logger(__name__)

HEADQUARTERS_SUFFIX = "Kantor Pusat"

_LOCATION_FIELDS = ("province_code", "regency_code", "address", "postal_code", "latitude", "longitude")
_CONTACT_FIELDS = ("phone", "email")


class DivisionService:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow
        self.repo = DivisionRepository(uow)
        self.access = AccessResolver(uow.session, uow.cache)
        self.directory = IdentityDirectory(uow.session)
        self.geo = GeoReference(uow.session)
        self.jurisdictions = JurisdictionService(uow)

    @staticmethod
    async def serialize(division: Division) -> dict[str, Any]:
        return DivisionResponse.model_validate(division).model_dump(mode="json")

    async def _check_name(self, agency_id: str, name: str, exclude_id: str | None = None) -> None:
        if await self.repo.name_taken(agency_id, name, exclude_id):
            raise ConflictError(
                "A division with this name already exists in the agency",
                fields={"name": "Division name is already in use"},
            )

    async def _persist(self, agency: Agency, fields: dict[str, Any], actor: Principal,
                       jurisdictions: list[str] | None = None) -> Division:
        division = Division(
            agency_id=agency.id,
            code=await self.repo.generate_code(agency.code),
            created_by=actor.id,
            **fields,
        )
        await self.repo.add(division)
        log.info("Division %s (%s, %s) created in agency %s", division.id, division.code,
                 division.type.value, agency.id)

        admin_id = division.admin_principal_id
        if admin_id and admin_id != agency.owning_principal_id:
            await self.directory.grant_role(await self.directory.require_user(admin_id), AGENCY_ADMIN_UNIT)

        create_audit_log(
            self.uow.session, actor.id, "create", "division", division.id, agency.id,
            details={"name": division.name, "code": division.code, "type": division.type.value},
        )
        self.uow.notify(Notification(
            topic="division.created",
            subject=f"Division {division.name} has been created",
            recipient=division.email,
            data={"division_id": division.id, "agency_id": agency.id},
        ))
        await self.uow.dispatch(DivisionCreated(actor=actor, division_id=division.id, agency_id=agency.id))

        if division.regency_code:
            # The regency is added and marked primary by the jurisdiction engine
            await self.jurisdictions.replace(division, jurisdictions or [], [], actor)
        return division

    async def create_division(self, data: DivisionCreate, actor: Principal) -> Division:
        relation = await self.access.require_view(actor, "agency", data.agency_id)
        if not policy.can_create_division(actor, relation):
            raise PermissionDeniedError("You do not have permission to add divisions to this agency")

        async with self.uow.transaction():
            agency = await self.uow.session.get(Agency, data.agency_id)
            if not agency.is_active:
                raise ValidationError("Cannot add divisions to an inactive agency")

            if data.type == DivisionType.CABANG and not await self.repo.has_any(agency.id):
                raise ValidationError(
                    "The first division of an agency must be the headquarters",
                    fields={"type": "Must be pusat"},
                )
            if data.type == DivisionType.PUSAT and await self.repo.active_headquarters(agency.id):
                raise ConflictError(
                    "The agency already has a headquarters division",
                    fields={"type": "Only one active pusat per agency"},
                )
            await self._check_name(agency.id, data.name)
            await self.geo.validate_location(data.province_code, data.regency_code)
            if data.admin_principal_id:
                await self.directory.require_user(data.admin_principal_id)
            if data.jurisdictions and not data.regency_code:
                raise ValidationError(
                    "Jurisdictions require the division's regency",
                    fields={"regency_code": "Required when jurisdictions are given"},
                )

            fields = data.model_dump(include={"name", "type", "admin_principal_id",
                                              *_LOCATION_FIELDS, *_CONTACT_FIELDS})
            fields["name"] = fields["name"].strip()
            return await self._persist(agency, fields, actor, data.jurisdictions)

    async def create_headquarters(
        self,
        agency: Agency,
        actor: Principal,
        admin_principal_id: str | None = None,
    ) -> Division:
        """
        Idempotent: returns the existing active pusat when there is one.
        The admin defaults to the agency owner.
        """
        async with self.uow.transaction():
            existing = await self.repo.active_headquarters(agency.id)
            if existing is not None:
                log.info("Agency %s already has headquarters %s", agency.id, existing.id)
                return existing

            fields = {
                "name": f"{agency.name} {HEADQUARTERS_SUFFIX}",
                "type": DivisionType.PUSAT,
                "province_code": agency.province_code,
                "regency_code": agency.regency_code,
                "admin_principal_id": admin_principal_id or agency.owning_principal_id,
            }
            return await self._persist(agency, fields, actor)

    async def update_division(self, division_id: str, data: DivisionUpdate, actor: Principal) -> Division:
        await self.access.require_update(actor, "division", division_id)

        async with self.uow.transaction():
            division = await self.repo.require(division_id)
            changes = data.model_dump(exclude_unset=True, exclude_none=True)

            if "name" in changes:
                changes["name"] = changes["name"].strip()
                await self._check_name(division.agency_id, changes["name"], exclude_id=division.id)

            new_type = changes.get("type")
            if new_type is not None and new_type != division.type:
                if new_type == DivisionType.CABANG:
                    if await self.repo.count_active(division.agency_id, DivisionType.PUSAT) <= 1:
                        raise ValidationError(
                            "The agency's only headquarters cannot become a branch",
                            fields={"type": "At least one pusat is required"},
                        )
                elif await self.repo.active_headquarters(division.agency_id) is not None:
                    raise ConflictError(
                        "The agency already has a headquarters division",
                        fields={"type": "Only one active pusat per agency"},
                    )

            if "province_code" in changes or "regency_code" in changes:
                await self.geo.validate_location(
                    changes.get("province_code", division.province_code),
                    changes.get("regency_code", division.regency_code),
                )
            if "admin_principal_id" in changes:
                await self.directory.require_user(changes["admin_principal_id"])

            before = {field: getattr(division, field) for field in changes}
            old_regency = division.regency_code
            old_admin = division.admin_principal_id
            for field, value in changes.items():
                setattr(division, field, value)
            await self.repo.save(division)

            if division.regency_code and division.regency_code != old_regency:
                current = await self.jurisdictions.current_assignments(division.id)
                codes = [row["territory_code"] for row in current if row["territory_code"] != old_regency]
                await self.jurisdictions.replace(division, codes, [], actor)

            if division.admin_principal_id and division.admin_principal_id != old_admin:
                agency = await self.uow.session.get(Agency, division.agency_id)
                if division.admin_principal_id != agency.owning_principal_id:
                    admin = await self.directory.require_user(division.admin_principal_id)
                    await self.directory.grant_role(admin, AGENCY_ADMIN_UNIT)
                await EmployeeService(self.uow).ensure_employee(division, division.admin_principal_id, actor)

            create_audit_log(
                self.uow.session, actor.id, "update", "division", division.id, division.agency_id,
                details={"before": _jsonable(before), "after": _jsonable(changes)},
            )
        return division

    async def delete_division(self, division_id: str, actor: Principal, hard: bool | None = None) -> None:
        await self.access.require_delete(actor, "division", division_id)
        hard = self.uow.hard_delete if hard is None else hard

        async with self.uow.transaction():
            division = await self.repo.require(division_id)
            await self.remove_division(division, actor, hard, cascade=False)

    async def remove_division(self, division: Division, actor: Principal, hard: bool, cascade: bool) -> None:
        """
        Delete without permission checks. ``cascade`` marks a deletion driven
        by the parent agency, which lifts the headquarters guard.
        """
        async with self.uow.transaction():
            division_id, agency_id = division.id, division.agency_id
            await self.uow.dispatch(DivisionBeforeDeleted(
                actor=actor, division_id=division_id, agency_id=agency_id, hard=hard, cascade=cascade,
            ))

            if hard:
                await self.repo.remove(division)
            else:
                await self.repo.deactivate(division)
            log.info("Division %s %s by %s", division_id, "removed" if hard else "deactivated", actor.id)

            create_audit_log(
                self.uow.session, actor.id, "delete", "division", division_id, agency_id,
                details={"hard": hard, "cascade": cascade, "code": division.code},
            )
            await self.uow.dispatch(DivisionDeleted(
                actor=actor, division_id=division_id, agency_id=agency_id, hard=hard,
            ))

    async def get_division(self, division_id: str, actor: Principal) -> dict[str, Any]:
        await self.access.require_view(actor, "division", division_id)
        return await self.repo.get_cached(division_id, self.serialize)


def _jsonable(values: dict[str, Any]) -> dict[str, Any]:
    return {key: getattr(value, "value", value) for key, value in values.items()}
