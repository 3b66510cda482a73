"""
Employee model.
"""
from sqlalchemy import String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, TimestampMixin, EntityStatus, deferred_fk, generate_ulid, status_column


class Employee(Base, TimestampMixin):
    """
    A person record linking one principal to one division (and through it,
    one agency). A principal has at most one row per division.
    """
    __tablename__ = "agency_employees"
    __table_args__ = (
        UniqueConstraint("division_id", "principal_id", name="uq_employee_division_principal"),
    )

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
    agency_id: Mapped[str] = mapped_column(
        String(26), deferred_fk("agencies.id"), nullable=False, index=True
    )
    division_id: Mapped[str] = mapped_column(
        String(26), deferred_fk("divisions.id"), nullable=False, index=True
    )
    principal_id: Mapped[str] = mapped_column(
        String(26), deferred_fk("users.id"), nullable=False, index=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    position: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[EntityStatus] = mapped_column(
        status_column(EntityStatus), default=EntityStatus.ACTIVE, nullable=False, index=True
    )
    created_by: Mapped[str | None] = mapped_column(String(26), nullable=True)

    @property
    def is_active(self) -> bool:
        return self.status == EntityStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<Employee(id={self.id}, principal_id={self.principal_id}, division_id={self.division_id})>"
