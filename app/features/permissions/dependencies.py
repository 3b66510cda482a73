"""
Audit logging helpers and permission dependencies.
"""
from typing import Annotated, Any, Dict, Optional
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import PermissionDeniedError
from app.features.permissions.capabilities import Principal
from app.features.permissions.models import AuditLog
from app.features.users.dependencies import get_principal, require_request_token
from app.utils import get_logger


log = get_logger(__name__)


def create_audit_log(
    db: AsyncSession,
    principal_id: Optional[str],
    action: str,
    resource_type: str,
    resource_id: Optional[str] = None,
    agency_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Add an audit log entry to the current transaction.

    Args:
        db: Database session (the caller's unit of work commits it)
        principal_id: Principal performing the action
        action: Action performed (e.g., "create", "update", "delete", "assign")
        resource_type: Type of resource (e.g., "agency", "division", "jurisdiction")
        resource_id: ID of the resource
        agency_id: Agency context
        details: Changed fields or other context
    """
    audit_log = AuditLog(
        principal_id=principal_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        agency_id=agency_id,
        details=details,
    )
    db.add(audit_log)
    log.info("Audit: principal=%s action=%s resource=%s:%s agency=%s",
             principal_id, action, resource_type, resource_id, agency_id)
    return audit_log


async def require_system_admin(
    principal: Annotated[Principal, Depends(get_principal)]
) -> Principal:
    """Require the administrator role."""
    if not principal.is_system_admin:
        raise PermissionDeniedError("Administrator privileges required")
    return principal


async def require_admin_request(
    principal: Annotated[Principal, Depends(require_request_token)]
) -> Principal:
    """Administrator role plus a valid request token, for admin mutations."""
    return await require_system_admin(principal)
