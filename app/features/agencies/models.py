"""
Agency model.
"""
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, TimestampMixin, EntityStatus, deferred_fk, generate_ulid, status_column


class Agency(Base, TimestampMixin):
    """
    Top-level organizational entity.

    Owns exactly one active headquarters (pusat) division and any number of
    branch (cabang) divisions. Dependent rows are never removed by the
    database; the lifecycle handlers cascade deletes.
    """
    __tablename__ = "agencies"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    # AGC-TTTTRR, generated
    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    status: Mapped[EntityStatus] = mapped_column(
        status_column(EntityStatus), default=EntityStatus.ACTIVE, nullable=False, index=True
    )

    # Location
    province_code: Mapped[str | None] = mapped_column(String(10), nullable=True)
    regency_code: Mapped[str | None] = mapped_column(String(10), nullable=True)

    owning_principal_id: Mapped[str] = mapped_column(
        String(26), deferred_fk("users.id"), nullable=False, index=True
    )
    created_by: Mapped[str | None] = mapped_column(String(26), nullable=True)

    @property
    def is_active(self) -> bool:
        return self.status == EntityStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<Agency(id={self.id}, code={self.code}, name={self.name!r})>"
