"""
Geographic reference data: provinces and their regencies.
"""
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, deferred_fk


class Province(Base):
    __tablename__ = "geo_provinces"

    code: Mapped[str] = mapped_column(String(10), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<Province(code={self.code}, name={self.name!r})>"


class Regency(Base):
    """Regency or city. Its code is the territory code used by jurisdictions."""
    __tablename__ = "geo_regencies"

    code: Mapped[str] = mapped_column(String(10), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    province_code: Mapped[str] = mapped_column(
        String(10), deferred_fk("geo_provinces.code"), nullable=False, index=True
    )

    def __repr__(self) -> str:
        return f"<Regency(code={self.code}, name={self.name!r}, province={self.province_code})>"
