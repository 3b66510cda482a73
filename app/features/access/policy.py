"""
Allowed-operation predicates over an access relation and the principal's
capabilities.

- only a system admin or the owner may delete an agency
- a division admin may update, but not delete, their own division
- an employee may only view entities in their own division or agency
- inactive entities are visible only with ``view_inactive_entities`` and
  writable only by a system admin
"""
from app.features.access.schemas import AccessRelation
from app.features.permissions.capabilities import ENTITY_CAPABILITIES, VIEW_INACTIVE, Principal


def _cap(entity_type: str, operation: str) -> str:
    return ENTITY_CAPABILITIES[entity_type][operation]


def can_list(principal: Principal, entity_type: str) -> bool:
    return principal.can(_cap(entity_type, "view_list"))


def can_view_inactive(principal: Principal) -> bool:
    return principal.can(VIEW_INACTIVE)


def can_view(principal: Principal, relation: AccessRelation) -> bool:
    if not relation.exists:
        return False
    if not relation.is_active and not can_view_inactive(principal):
        return False
    if principal.is_system_admin:
        return True
    entity_type = relation.entity_type
    if not (principal.can(_cap(entity_type, "view_detail")) or principal.can(_cap(entity_type, "view_own"))):
        return False
    return relation.is_related


def can_update(principal: Principal, relation: AccessRelation) -> bool:
    if not relation.exists:
        return False
    if principal.is_system_admin:
        return True
    if not relation.is_active:
        return False
    entity_type = relation.entity_type
    if principal.can(_cap(entity_type, "edit_all")):
        return True
    if not principal.can(_cap(entity_type, "edit_own")):
        return False
    if entity_type == "agency":
        return relation.is_owner
    if entity_type == "division":
        return relation.is_owner or relation.is_division_admin
    return relation.is_owner or relation.is_division_admin or relation.is_self


def can_delete(principal: Principal, relation: AccessRelation) -> bool:
    if not relation.exists:
        return False
    if principal.is_system_admin:
        return True
    if not relation.is_active:
        return False
    entity_type = relation.entity_type
    if not principal.can(_cap(entity_type, "delete")):
        return False
    if entity_type == "employee":
        return relation.is_owner or relation.is_division_admin
    return relation.is_owner


def can_create_agency(principal: Principal) -> bool:
    return principal.can(_cap("agency", "add"))


def can_create_division(principal: Principal, agency: AccessRelation) -> bool:
    """``agency`` is the principal's relation to the parent agency."""
    if principal.is_system_admin:
        return True
    return agency.is_active and agency.is_owner and principal.can(_cap("division", "add"))


def can_create_employee(principal: Principal, division: AccessRelation) -> bool:
    """``division`` is the principal's relation to the target division."""
    if principal.is_system_admin:
        return True
    if not division.is_active or not principal.can(_cap("employee", "add")):
        return False
    return division.is_owner or division.is_division_admin


def can_manage_jurisdictions(principal: Principal, division: AccessRelation) -> bool:
    if principal.is_system_admin:
        return True
    if not division.is_active or not principal.can(_cap("division", "edit_own")):
        return False
    return division.is_owner or division.is_division_admin
