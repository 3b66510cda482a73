"""
User (principal) model with ULID primary keys.
"""
from datetime import datetime
from sqlalchemy import String, Boolean, JSON
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database.base import Base, TimestampMixin, generate_ulid


class User(Base, TimestampMixin):
    """
    User model representing principals.

    A principal is linked to Appwrite on first login. Principals created
    together with an agency have no Appwrite id until they sign in.
    """
    __tablename__ = "users"

    # Primary key using ULID (Universally Unique Lexicographically Sortable Identifier)
    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    # Appwrite user ID (for linking with Appwrite authentication)
    appwrite_id: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True, index=True)

    # User information
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Global roles, e.g. ["agency"] or ["agency_employee", "agency_admin_unit"]
    roles: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    # Status flags
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Track last login
    last_login_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email!r})>"
