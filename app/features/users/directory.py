"""
Identity directory: resolves principals to their global roles.
"""
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.features.permissions.capabilities import DEFAULT_REGISTRY, CapabilityRegistry, Principal
from app.features.users.models import User
from app.utils import get_logger


log = get_logger(__name__)


class IdentityDirectory:
    def __init__(self, db: AsyncSession, registry: CapabilityRegistry = DEFAULT_REGISTRY):
        self.db = db
        self.registry = registry

    async def get_user(self, principal_id: str) -> User | None:
        return await self.db.get(User, principal_id)

    async def require_user(self, principal_id: str) -> User:
        user = await self.get_user(principal_id)
        if user is None or not user.is_active:
            raise ValidationError(
                "Unknown principal",
                fields={"principal_id": f"No active principal with id {principal_id}"},
            )
        return user

    async def get_principal_roles(self, principal_id: str) -> list[str]:
        user = await self.get_user(principal_id)
        if user is None:
            raise NotFoundError(f"Principal {principal_id} not found")
        return list(user.roles or [])

    def principal_for(self, user: User) -> Principal:
        return self.registry.principal(user.id, user.roles or [], is_admin=user.is_admin)

    async def get_principal(self, principal_id: str) -> Principal:
        user = await self.get_user(principal_id)
        if user is None:
            raise NotFoundError(f"Principal {principal_id} not found")
        return self.principal_for(user)

    async def find_by_email(self, email: str) -> User | None:
        result = await self.db.execute(
            select(User).where(func.lower(User.email) == email.lower())
        )
        return result.scalar_one_or_none()

    async def create_principal(self, email: str, name: str, roles: list[str] | None = None) -> User:
        """Create a principal inside the caller's transaction."""
        if await self.find_by_email(email) is not None:
            raise ConflictError(
                "A user with this email already exists",
                fields={"email": "Email is already registered"},
            )
        user = User(email=email, name=name, roles=list(roles or []))
        self.db.add(user)
        await self.db.flush()
        log.info("Created principal %s <%s>", user.id, email)
        return user

    async def grant_role(self, user: User, role: str) -> None:
        if not self.registry.is_known_role(role):
            raise ValidationError(f"Unknown role {role}")
        current = list(user.roles or [])
        if role in current:
            return
        # Reassign so the JSON column is flagged as modified
        user.roles = current + [role]
        log.info("Granted role %s to principal %s", role, user.id)
