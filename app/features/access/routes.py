"""
Access resolution route.
"""
from typing import Annotated
from fastapi import APIRouter, Depends

from app.features.access import policy
from app.features.access.dependencies import get_access_resolver
from app.features.access.resolver import AccessResolver
from app.features.access.schemas import AccessResponse
from app.features.permissions.capabilities import Principal
from app.features.users.dependencies import get_principal


router = APIRouter()


@router.get("/{entity_type}/{entity_id}", response_model=AccessResponse)
async def resolve_access(
    entity_type: str,
    entity_id: str,
    principal: Annotated[Principal, Depends(get_principal)],
    resolver: Annotated[AccessResolver, Depends(get_access_resolver)],
):
    """
    The current principal's relation to an entity. Unknown or invisible
    entities resolve to access_type "none" with every operation denied.
    """
    relation = await resolver.resolve(principal, entity_type, entity_id)
    return AccessResponse(
        principal_id=relation.principal_id,
        entity_type=relation.entity_type,
        entity_id=relation.entity_id,
        is_system_admin=relation.is_system_admin,
        is_owner=relation.is_owner,
        is_division_admin=relation.is_division_admin,
        is_employee=relation.is_employee,
        is_self=relation.is_self,
        access_type=relation.access_type,
        can_view=policy.can_view(principal, relation),
        can_update=policy.can_update(principal, relation),
        can_delete=policy.can_delete(principal, relation),
    )
