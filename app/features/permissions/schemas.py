"""
Pydantic schemas for capability and audit log responses.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict


class RoleCapabilities(BaseModel):
    """Capabilities granted by one role."""
    role: str
    capabilities: List[str]


class PrincipalCapabilities(BaseModel):
    """Effective roles and capabilities of the current principal."""
    principal_id: str
    roles: List[str]
    capabilities: List[str]
    is_system_admin: bool


class AuditLogResponse(BaseModel):
    """Schema for audit log response."""
    id: str
    principal_id: Optional[str]
    action: str
    resource_type: str
    resource_id: Optional[str]
    agency_id: Optional[str]
    details: Optional[Dict[str, Any]]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuditLogListResponse(BaseModel):
    """Schema for paginated audit log list."""
    items: List[AuditLogResponse]
    total: int
    page: int
    page_size: int
    pages: int
