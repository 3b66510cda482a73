"""
FastAPI dependencies for authentication and request integrity.
"""
from typing import Annotated
from datetime import datetime, timezone
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.core.security import verify_request_token
from app.features.permissions.capabilities import Principal
from app.features.users.models import User
from app.features.users.auth import verify_jwt_token, get_appwrite_user
from app.features.users.directory import IdentityDirectory
from app.utils import get_logger


log = get_logger(__name__)
security = HTTPBearer()


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)]
) -> User:
    """
    Get the current authenticated user from JWT token.

    This dependency:
    1. Extracts JWT from Authorization header
    2. Looks up the principal by Appwrite id
    3. Otherwise links a principal created with an agency (same email),
       or creates a new one from the Appwrite account
    4. Updates last_login_at timestamp
    """
    payload = verify_jwt_token(credentials.credentials)
    appwrite_user_id = payload.get("userId")

    if not appwrite_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    result = await db.execute(
        select(User).where(User.appwrite_id == appwrite_user_id)
    )
    user = result.scalar_one_or_none()

    if user is None:
        appwrite_user = await get_appwrite_user(appwrite_user_id)
        email = appwrite_user.get("email", "")
        user = await IdentityDirectory(db).find_by_email(email) if email else None
        if user is None:
            user = User(
                email=email,
                name=appwrite_user.get("name", "Unknown"),
                roles=[],
            )
            db.add(user)
            log.info("Registered principal for Appwrite account %s", appwrite_user_id)
        else:
            log.info("Linked principal %s to Appwrite account %s", user.id, appwrite_user_id)
        user.appwrite_id = appwrite_user_id

    user.last_login_at = datetime.now(timezone.utc)
    await db.commit()

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated",
        )

    return user


async def get_principal(
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
) -> Principal:
    """The acting principal with roles and capabilities resolved."""
    return IdentityDirectory(db).principal_for(user)


async def require_request_token(
    principal: Annotated[Principal, Depends(get_principal)],
    x_request_token: Annotated[str | None, Header()] = None,
) -> Principal:
    """
    Anti-forgery check for mutating routes, run before any domain logic.

    Usage:
        @router.post("/")
        async def create(principal: Principal = Depends(require_request_token)):
            ...
    """
    verify_request_token(x_request_token, principal.id)
    return principal


def get_authorization_header(request) -> str:
    """
    Extract authorization header for rate limiting.
    Used with slowapi Limiter.
    """
    auth = request.headers.get("Authorization", "")
    return auth or "anonymous"
