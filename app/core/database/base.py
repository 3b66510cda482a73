"""
SQLAlchemy declarative base and common model utilities.

All SQLAlchemy models should inherit from Base.
"""
import enum
from datetime import datetime, timezone

import ulid
from sqlalchemy import DateTime, Enum as SQLEnum, ForeignKey, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def generate_ulid() -> str:
    """Generate a new ULID string."""
    return str(ulid.ulid())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    Usage:
        from app.core.database.base import Base

        class Agency(Base):
            __tablename__ = "agencies"

            id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)
            name: Mapped[str] = mapped_column(String(255))
    """
    pass


class EntityStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


def status_column(enum_cls: type[enum.Enum]) -> SQLEnum:
    """Stores enum values (not names) as plain strings."""
    return SQLEnum(
        enum_cls,
        values_callable=lambda members: [member.value for member in members],
        native_enum=False,
        length=20,
    )


def deferred_fk(target: str) -> ForeignKey:
    """
    Foreign key checked at commit time and never cascaded by the database.
    Dependent rows are removed by the lifecycle handlers.
    """
    return ForeignKey(target, deferrable=True, initially="DEFERRED")


class TimestampMixin:
    """
    Mixin to add created_at and updated_at timestamps to models.

    Values are also set client-side so they are loaded without a refresh.

    Usage:
        class Agency(Base, TimestampMixin):
            __tablename__ = "agencies"
            id: Mapped[str] = mapped_column(String(26), primary_key=True)
    """
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )
