"""
Jurisdiction assignment model.
"""
from sqlalchemy import String, Boolean, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, TimestampMixin, EntityStatus, deferred_fk, generate_ulid, status_column


class JurisdictionAssignment(Base, TimestampMixin):
    """
    One territory (regency) code assigned to one division.

    Exclusivity is per agency: among active rows, a territory code belongs to
    at most one division of an agency. It is enforced by the jurisdiction
    service, not by a constraint, because it spans divisions.
    """
    __tablename__ = "agency_jurisdictions"
    __table_args__ = (
        UniqueConstraint("division_id", "territory_code", name="uq_jurisdiction_division_territory"),
    )

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    division_id: Mapped[str] = mapped_column(
        String(26), deferred_fk("divisions.id"), nullable=False, index=True
    )
    territory_code: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[EntityStatus] = mapped_column(
        status_column(EntityStatus), default=EntityStatus.ACTIVE, nullable=False
    )
    created_by: Mapped[str | None] = mapped_column(String(26), nullable=True)

    def __repr__(self) -> str:
        return f"<JurisdictionAssignment(division_id={self.division_id}, code={self.territory_code}, primary={self.is_primary})>"
