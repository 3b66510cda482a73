"""
Division model.
"""
import enum
from sqlalchemy import String, Float, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, TimestampMixin, EntityStatus, deferred_fk, generate_ulid, status_column


class DivisionType(str, enum.Enum):
    """Headquarters (pusat) or branch (cabang)."""
    PUSAT = "pusat"
    CABANG = "cabang"


class Division(Base, TimestampMixin):
    """
    A headquarters or branch unit belonging to exactly one agency.
    """
    __tablename__ = "divisions"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    agency_id: Mapped[str] = mapped_column(
        String(26), deferred_fk("agencies.id"), nullable=False, index=True
    )

    # <agency code>-RR
    code: Mapped[str] = mapped_column(String(30), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[DivisionType] = mapped_column(status_column(DivisionType), nullable=False, index=True)
    status: Mapped[EntityStatus] = mapped_column(
        status_column(EntityStatus), default=EntityStatus.ACTIVE, nullable=False, index=True
    )

    # Location; regency_code is the primary jurisdiction
    province_code: Mapped[str | None] = mapped_column(String(10), nullable=True)
    regency_code: Mapped[str | None] = mapped_column(String(10), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(10), nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Contact
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    admin_principal_id: Mapped[str | None] = mapped_column(
        String(26), deferred_fk("users.id"), nullable=True, index=True
    )
    created_by: Mapped[str | None] = mapped_column(String(26), nullable=True)

    @property
    def is_active(self) -> bool:
        return self.status == EntityStatus.ACTIVE

    @property
    def is_headquarters(self) -> bool:
        return self.type == DivisionType.PUSAT

    def __repr__(self) -> str:
        return f"<Division(id={self.id}, code={self.code}, type={self.type.value})>"
