"""
User feature routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import config
from app.core.database.engine import get_db
from app.core.errors import NotFoundError, ValidationError
from app.core.security import REQUEST_TOKEN_HEADER, issue_request_token
from app.features.permissions.capabilities import DEFAULT_REGISTRY, Principal
from app.features.permissions.dependencies import create_audit_log, require_admin_request
from app.features.users.models import User
from app.features.users.schemas import RequestTokenResponse, UserResponse, UserUpdate
from app.features.users.dependencies import get_current_user, require_request_token


router = APIRouter(tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(
    user: Annotated[User, Depends(get_current_user)]
):
    """Get current authenticated user's profile."""
    return user


@router.patch("/me", response_model=UserResponse)
async def update_current_user_profile(
    update_data: UserUpdate,
    user: Annotated[User, Depends(get_current_user)],
    _principal: Annotated[Principal, Depends(require_request_token)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Update current user's profile."""
    if update_data.name is not None:
        user.name = update_data.name
    await db.commit()
    return user


@router.get("/me/request-token", response_model=RequestTokenResponse)
async def get_request_token(
    user: Annotated[User, Depends(get_current_user)]
):
    """Issue a request-integrity token for mutating calls."""
    return RequestTokenResponse(
        token=issue_request_token(user.id),
        header=REQUEST_TOKEN_HEADER,
        expires_in=config.REQUEST_TOKEN_TTL,
    )


@router.put("/{user_id}/roles", response_model=UserResponse)
async def set_user_roles(
    user_id: str,
    roles: list[str],
    admin: Annotated[Principal, Depends(require_admin_request)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Replace the global roles of a principal (admin only)."""
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    unknown = [role for role in roles if not DEFAULT_REGISTRY.is_known_role(role)]
    if unknown:
        raise ValidationError("Unknown roles", fields={"roles": ", ".join(unknown)})

    before = list(user.roles or [])
    user.roles = list(dict.fromkeys(roles))
    create_audit_log(db, admin.id, "update_roles", "user", user.id, details={"before": before, "after": user.roles})
    await db.commit()
    return user
