"""
Capability and audit log API routes.
"""
from typing import Annotated, List, Optional
from fastapi import APIRouter, Depends
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.permissions.capabilities import DEFAULT_REGISTRY, Principal
from app.features.permissions.dependencies import require_system_admin
from app.features.permissions.models import AuditLog
from app.features.permissions.schemas import (
    AuditLogListResponse,
    AuditLogResponse,
    PrincipalCapabilities,
    RoleCapabilities,
)
from app.features.users.dependencies import get_principal


router = APIRouter()


@router.get("/roles", response_model=List[RoleCapabilities])
async def list_roles(
    _principal: Annotated[Principal, Depends(get_principal)]
):
    """List every role with the capabilities it grants."""
    return [
        RoleCapabilities(role=role, capabilities=sorted(caps))
        for role, caps in DEFAULT_REGISTRY.roles.items()
    ]


@router.get("/me", response_model=PrincipalCapabilities)
async def get_my_capabilities(
    principal: Annotated[Principal, Depends(get_principal)]
):
    """Effective roles and capabilities of the current principal."""
    return PrincipalCapabilities(
        principal_id=principal.id,
        roles=sorted(principal.roles),
        capabilities=sorted(principal.capabilities),
        is_system_admin=principal.is_system_admin,
    )


@router.get("/audit-logs", response_model=AuditLogListResponse)
async def list_audit_logs(
    db: Annotated[AsyncSession, Depends(get_db)],
    _admin: Annotated[Principal, Depends(require_system_admin)],
    skip: int = 0,
    limit: int = 50,
    agency_id: Optional[str] = None,
    principal_id: Optional[str] = None,
    action: Optional[str] = None,
    resource_type: Optional[str] = None,
):
    """List audit logs with optional filtering (admin only)."""
    stmt = select(AuditLog)

    if agency_id:
        stmt = stmt.where(AuditLog.agency_id == agency_id)
    if principal_id:
        stmt = stmt.where(AuditLog.principal_id == principal_id)
    if action:
        stmt = stmt.where(AuditLog.action == action)
    if resource_type:
        stmt = stmt.where(AuditLog.resource_type == resource_type)

    count_stmt = select(func.count()).select_from(stmt.subquery())
    total = (await db.execute(count_stmt)).scalar() or 0

    stmt = stmt.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).offset(skip).limit(limit)
    logs = (await db.execute(stmt)).scalars().all()

    pages = (total + limit - 1) // limit if limit > 0 else 0
    page = (skip // limit) + 1 if limit > 0 else 1

    return AuditLogListResponse(
        items=[AuditLogResponse.model_validate(entry) for entry in logs],
        total=total,
        page=page,
        page_size=limit,
        pages=pages,
    )
