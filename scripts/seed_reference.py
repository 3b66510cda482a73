"""
Seed script for reference data.

Run this script after database initialization to create:
- Provinces and regencies used for agency locations and jurisdictions
- Optionally, an administrator principal (ADMIN_EMAIL / ADMIN_NAME)

Usage:
    ADMIN_EMAIL=admin@example.org python -m scripts.seed_reference
"""
import asyncio
import os

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import AsyncSessionLocal, init_db
from app.features.geo.models import Province, Regency
from app.features.permissions.capabilities import ADMINISTRATOR
from app.features.users.directory import IdentityDirectory
from app.utils import get_logger


log = get_logger(__name__)


PROVINCES = {
    "11": "Aceh",
    "12": "Sumatera Utara",
}

REGENCIES = [
    ("1101", "Kabupaten Simeulue", "11"),
    ("1102", "Kabupaten Aceh Singkil", "11"),
    ("1103", "Kabupaten Aceh Selatan", "11"),
    ("1104", "Kabupaten Aceh Tenggara", "11"),
    ("1105", "Kabupaten Aceh Timur", "11"),
    ("1106", "Kabupaten Aceh Tengah", "11"),
    ("1107", "Kabupaten Aceh Barat", "11"),
    ("1108", "Kabupaten Aceh Besar", "11"),
    ("1109", "Kabupaten Pidie", "11"),
    ("1110", "Kabupaten Bireuen", "11"),
    ("1111", "Kabupaten Aceh Utara", "11"),
    ("1171", "Kota Banda Aceh", "11"),
    ("1172", "Kota Sabang", "11"),
    ("1173", "Kota Langsa", "11"),
    ("1174", "Kota Lhokseumawe", "11"),
    ("1201", "Kabupaten Nias", "12"),
    ("1202", "Kabupaten Mandailing Natal", "12"),
    ("1271", "Kota Sibolga", "12"),
    ("1275", "Kota Medan", "12"),
]


async def seed_geo(db: AsyncSession) -> None:
    log.info("Creating provinces and regencies...")
    created = 0
    for code, name in PROVINCES.items():
        if await db.get(Province, code) is None:
            db.add(Province(code=code, name=name))
            created += 1
    for code, name, province_code in REGENCIES:
        if await db.get(Regency, code) is None:
            db.add(Regency(code=code, name=name, province_code=province_code))
            created += 1
    await db.commit()
    log.info("Geo reference ready (%s new rows)", created)


async def seed_admin(db: AsyncSession, email: str, name: str) -> None:
    directory = IdentityDirectory(db)
    user = await directory.find_by_email(email)
    if user is None:
        user = await directory.create_principal(email, name)
    await directory.grant_role(user, ADMINISTRATOR)
    await db.commit()
    log.info("Administrator %s <%s> ready", user.id, email)


async def main():
    log.info("Starting reference data seeding...")
    await init_db()

    async with AsyncSessionLocal() as db:
        try:
            await seed_geo(db)
            admin_email = os.environ.get("ADMIN_EMAIL")
            if admin_email:
                await seed_admin(db, admin_email, os.environ.get("ADMIN_NAME", "Administrator"))
        except Exception:
            log.error("Error seeding reference data", exc_info=True)
            await db.rollback()
            raise
    log.info("Reference data seeding completed")


if __name__ == "__main__":
    asyncio.run(main())
