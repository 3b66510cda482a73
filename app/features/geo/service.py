"""
Geo reference lookups used to validate agency, division and jurisdiction codes.
"""
from collections.abc import Iterable
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ValidationError
from app.features.geo.models import Province, Regency


class GeoReference:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def lookup_province(self, code: str) -> Province:
        province = await self.db.get(Province, code)
        if province is None:
            raise ValidationError("Unknown province", fields={"province_code": f"Unknown province code {code}"})
        return province

    async def lookup_regency(self, code: str) -> Regency:
        regency = await self.db.get(Regency, code)
        if regency is None:
            raise ValidationError("Unknown regency", fields={"regency_code": f"Unknown regency code {code}"})
        return regency

    async def validate_location(self, province_code: str | None, regency_code: str | None) -> None:
        """A regency, when given, must belong to the given province."""
        if province_code:
            await self.lookup_province(province_code)
        if regency_code:
            regency = await self.lookup_regency(regency_code)
            if province_code and regency.province_code != province_code:
                raise ValidationError(
                    "Regency does not belong to the province",
                    fields={"regency_code": f"Regency {regency_code} is not in province {province_code}"},
                )

    async def unknown_regencies(self, codes: Iterable[str]) -> list[str]:
        wanted = set(codes)
        if not wanted:
            return []
        result = await self.db.execute(select(Regency.code).where(Regency.code.in_(wanted)))
        found = set(result.scalars().all())
        return sorted(wanted - found)

    async def list_provinces(self) -> list[Province]:
        result = await self.db.execute(select(Province).order_by(Province.name))
        return list(result.scalars().all())

    async def list_regencies(self, province_code: str | None = None) -> list[Regency]:
        stmt = select(Regency).order_by(Regency.name)
        if province_code:
            stmt = stmt.where(Regency.province_code == province_code)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
