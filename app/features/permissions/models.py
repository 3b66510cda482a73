"""
Audit trail for entity lifecycle changes.
"""
from typing import Any, Dict
from sqlalchemy import String, JSON
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, TimestampMixin, generate_ulid


class AuditLog(Base, TimestampMixin):
    """
    Audit log for agency, division, employee and jurisdiction changes.

    Written inside the same transaction as the change it records, so a
    rolled-back operation leaves no audit row behind.
    """
    __tablename__ = "audit_logs"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    # Actor
    principal_id: Mapped[str | None] = mapped_column(String(26), nullable=True, index=True)

    # Action details
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    resource_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    resource_id: Mapped[str | None] = mapped_column(String(26), nullable=True, index=True)

    # Context
    agency_id: Mapped[str | None] = mapped_column(String(26), nullable=True, index=True)
    details: Mapped[Dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, principal_id={self.principal_id}, action={self.action}, resource={self.resource_type})>"
