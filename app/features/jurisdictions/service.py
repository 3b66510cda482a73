"""
Jurisdiction assignment engine.

Within one agency a territory code belongs to at most one division. A
division's own regency is always assigned and is its only primary
territory. An assignment replaces the division's whole territory set in one
transaction; a clash with another division of the same agency rejects the
whole operation.
"""
from collections.abc import Iterable
from typing import Any

from sqlalchemy import select, delete, update

from app.core import config
from app.core.cache import available_territories_prefix, division_jurisdictions_key
from app.core.database.base import EntityStatus
from app.core.database.unit_of_work import UnitOfWork
from app.core.errors import ConflictError, PermissionDeniedError, ValidationError
from app.features.access import policy
from app.features.access.resolver import AccessResolver
from app.features.agencies.models import Agency
from app.features.divisions.models import Division
from app.features.geo.models import Regency
from app.features.geo.service import GeoReference
from app.features.jurisdictions.models import JurisdictionAssignment
from app.features.permissions.capabilities import Principal
from app.features.permissions.dependencies import create_audit_log
from app.utils import get_logger


log = get_logger(__name__)


class JurisdictionService:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow
        self.db = uow.session
        self.access = AccessResolver(uow.session, uow.cache)
        self.geo = GeoReference(uow.session)

    def _invalidate(self, division_id: str, agency_id: str) -> None:
        self.uow.invalidate(division_jurisdictions_key(division_id))
        self.uow.invalidate_prefix(available_territories_prefix(agency_id))

    async def assign(
        self,
        division_id: str,
        territory_codes: Iterable[str],
        primary_codes: Iterable[str],
        actor: Principal,
    ) -> list[JurisdictionAssignment]:
        relation = await self.access.require_view(actor, "division", division_id)
        if not policy.can_manage_jurisdictions(actor, relation):
            raise PermissionDeniedError("You do not have permission to manage this division's jurisdictions")

        async with self.uow.transaction():
            division = await self.db.get(Division, division_id)
            return await self.replace(division, territory_codes, primary_codes, actor)

    async def replace(
        self,
        division: Division,
        territory_codes: Iterable[str],
        primary_codes: Iterable[str],
        actor: Principal,
    ) -> list[JurisdictionAssignment]:
        """Replace without permission checks; used by assign and by division writes."""
        codes = set(territory_codes)
        primary = set(primary_codes)

        if not primary <= codes:
            extra = ", ".join(sorted(primary - codes))
            raise ValidationError(
                "Primary territories must be part of the assigned territories",
                fields={"primary_codes": f"Not in territory_codes: {extra}"},
            )
        if not division.regency_code:
            raise ValidationError(
                "The division has no regency; set its location before assigning jurisdictions",
                fields={"regency_code": "Required for jurisdiction assignment"},
            )
        if primary and primary != {division.regency_code}:
            raise ValidationError(
                "The primary territory must be the division's own regency",
                fields={"primary_codes": f"Only {division.regency_code} can be primary"},
            )
        codes.add(division.regency_code)

        unknown = await self.geo.unknown_regencies(codes)
        if unknown:
            raise ValidationError(
                "Unknown territory codes",
                fields={"territory_codes": ", ".join(unknown)},
            )

        async with self.uow.transaction():
            clash = await self.db.execute(
                select(JurisdictionAssignment.territory_code, Division.name)
                .join(Division, Division.id == JurisdictionAssignment.division_id)
                .where(
                    Division.agency_id == division.agency_id,
                    Division.id != division.id,
                    JurisdictionAssignment.territory_code.in_(codes),
                    JurisdictionAssignment.status == EntityStatus.ACTIVE,
                )
                .order_by(JurisdictionAssignment.territory_code)
            )
            conflict = clash.first()
            if conflict is not None:
                code, holder = conflict
                raise ConflictError(
                    f"Territory {code} is already assigned to division {holder}",
                    fields={"territory_codes": code},
                )

            await self.db.execute(
                delete(JurisdictionAssignment).where(JurisdictionAssignment.division_id == division.id)
            )
            assignments = [
                JurisdictionAssignment(
                    division_id=division.id,
                    territory_code=code,
                    is_primary=code == division.regency_code,
                    created_by=actor.id,
                )
                for code in sorted(codes)
            ]
            self.db.add_all(assignments)
            await self.db.flush()

            create_audit_log(
                self.db, actor.id, "assign", "jurisdiction", division.id, division.agency_id,
                details={"territory_codes": sorted(codes), "primary": division.regency_code},
            )
            self._invalidate(division.id, division.agency_id)
            log.info("Division %s jurisdictions set to %s", division.id, sorted(codes))
        return assignments

    async def release(self, division_id: str, agency_id: str, actor: Principal, hard: bool) -> None:
        """Remove (hard) or deactivate (soft) every assignment of a division."""
        async with self.uow.transaction():
            if hard:
                await self.db.execute(
                    delete(JurisdictionAssignment).where(JurisdictionAssignment.division_id == division_id)
                )
            else:
                await self.db.execute(
                    update(JurisdictionAssignment)
                    .where(JurisdictionAssignment.division_id == division_id)
                    .values(status=EntityStatus.INACTIVE)
                )
            self._invalidate(division_id, agency_id)
            log.debug("Released jurisdictions of division %s (hard=%s)", division_id, hard)

    async def current_assignments(self, division_id: str) -> list[dict[str, Any]]:
        result = await self.db.execute(
            select(JurisdictionAssignment.territory_code, Regency.name, JurisdictionAssignment.is_primary)
            .outerjoin(Regency, Regency.code == JurisdictionAssignment.territory_code)
            .where(
                JurisdictionAssignment.division_id == division_id,
                JurisdictionAssignment.status == EntityStatus.ACTIVE,
            )
            .order_by(JurisdictionAssignment.is_primary.desc(), JurisdictionAssignment.territory_code)
        )
        return [
            {"territory_code": code, "name": name, "is_primary": is_primary}
            for code, name, is_primary in result.all()
        ]

    async def list_for_division(self, division_id: str, actor: Principal) -> list[dict[str, Any]]:
        await self.access.require_view(actor, "division", division_id)
        return await self.uow.cache.remember(
            division_jurisdictions_key(division_id),
            config.ENTITY_CACHE_TTL,
            lambda: self.current_assignments(division_id),
        ) or []

    async def available_territories(
        self,
        agency_id: str,
        actor: Principal,
        division_id: str | None = None,
    ) -> list[dict[str, Any]]:
        """
        Regencies of the agency's province not held by another division of
        the agency. In edit mode (``division_id``) the division's own
        territories stay available.
        """
        await self.access.require_view(actor, "agency", agency_id)

        async def load():
            agency = await self.db.get(Agency, agency_id)
            if agency is None or not agency.province_code:
                return []
            taken = (
                select(JurisdictionAssignment.territory_code)
                .join(Division, Division.id == JurisdictionAssignment.division_id)
                .where(
                    Division.agency_id == agency_id,
                    JurisdictionAssignment.status == EntityStatus.ACTIVE,
                )
            )
            if division_id:
                taken = taken.where(Division.id != division_id)
            result = await self.db.execute(
                select(Regency.code, Regency.name)
                .where(Regency.province_code == agency.province_code, Regency.code.not_in(taken))
                .order_by(Regency.name)
            )
            return [{"code": code, "name": name} for code, name in result.all()]

        key = available_territories_prefix(agency_id) + (division_id or "new")
        return await self.uow.cache.remember(key, config.ENTITY_CACHE_TTL, load) or []
