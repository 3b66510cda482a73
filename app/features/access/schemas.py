"""
Access relation between a principal and a target entity.
"""
import enum
from pydantic import BaseModel


class AccessType(str, enum.Enum):
    SYSTEM_ADMIN = "system_admin"
    OWNER = "owner"
    DIVISION_ADMIN = "division_admin"
    EMPLOYEE = "employee"
    NONE = "none"


class AccessRelation(BaseModel):
    """
    How a principal relates to one agency, division or employee.

    ``access_type`` is the first match of system_admin, owner,
    division_admin, employee. ``is_self`` only applies to employee targets
    and does not affect ``access_type``.
    """
    principal_id: str
    entity_type: str
    entity_id: str
    exists: bool = True
    is_active: bool = True
    agency_id: str | None = None
    division_id: str | None = None
    is_system_admin: bool = False
    is_owner: bool = False
    is_division_admin: bool = False
    is_employee: bool = False
    is_self: bool = False

    @property
    def access_type(self) -> AccessType:
        if self.is_system_admin:
            return AccessType.SYSTEM_ADMIN
        if self.is_owner:
            return AccessType.OWNER
        if self.is_division_admin:
            return AccessType.DIVISION_ADMIN
        if self.is_employee:
            return AccessType.EMPLOYEE
        return AccessType.NONE

    @property
    def is_related(self) -> bool:
        return self.is_owner or self.is_division_admin or self.is_employee or self.is_self


class AccessResponse(BaseModel):
    """Relation plus the operations it allows."""
    principal_id: str
    entity_type: str
    entity_id: str
    is_system_admin: bool
    is_owner: bool
    is_division_admin: bool
    is_employee: bool
    is_self: bool
    access_type: AccessType
    can_view: bool
    can_update: bool
    can_delete: bool
