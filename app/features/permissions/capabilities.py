"""
Role identifiers and the role -> capability mapping.

The mapping is built once at import time and never mutated. It is handed to
the identity directory (to build principals) and to the access resolver.
"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

ENTITY_TYPES = ("agency", "division", "employee")

ADMINISTRATOR = "administrator"

# Agency-side roles
AGENCY = "agency"
AGENCY_EMPLOYEE = "agency_employee"
AGENCY_ADMIN_DINAS = "agency_admin_dinas"
AGENCY_ADMIN_UNIT = "agency_admin_unit"
AGENCY_PENGAWAS = "agency_pengawas"
AGENCY_PENGAWAS_SPESIALIS = "agency_pengawas_spesialis"
AGENCY_KEPALA_UNIT = "agency_kepala_unit"
AGENCY_KEPALA_SEKSI = "agency_kepala_seksi"
AGENCY_KEPALA_BIDANG = "agency_kepala_bidang"
AGENCY_KEPALA_DINAS = "agency_kepala_dinas"

AGENCY_ROLES = (
    AGENCY,
    AGENCY_EMPLOYEE,
    AGENCY_ADMIN_DINAS,
    AGENCY_ADMIN_UNIT,
    AGENCY_PENGAWAS,
    AGENCY_PENGAWAS_SPESIALIS,
    AGENCY_KEPALA_UNIT,
    AGENCY_KEPALA_SEKSI,
    AGENCY_KEPALA_BIDANG,
    AGENCY_KEPALA_DINAS,
)

VIEW_INACTIVE = "view_inactive_entities"


def _plural(entity_type: str) -> str:
    return "agencies" if entity_type == "agency" else f"{entity_type}s"


def entity_capabilities(entity_type: str) -> dict[str, str]:
    """Capability names for one entity type keyed by operation."""
    return {
        "view_list": f"view_{entity_type}_list",
        "view_detail": f"view_{entity_type}_detail",
        "view_own": f"view_own_{entity_type}",
        "add": f"add_{entity_type}",
        "edit_all": f"edit_all_{_plural(entity_type)}",
        "edit_own": f"edit_own_{entity_type}",
        "delete": f"delete_{entity_type}",
    }


ENTITY_CAPABILITIES: Mapping[str, Mapping[str, str]] = MappingProxyType(
    {entity_type: MappingProxyType(entity_capabilities(entity_type)) for entity_type in ENTITY_TYPES}
)

ALL_CAPABILITIES = frozenset(
    [cap for caps in ENTITY_CAPABILITIES.values() for cap in caps.values()] + [VIEW_INACTIVE]
)


def _caps(entity_type: str, *operations: str) -> set[str]:
    return {ENTITY_CAPABILITIES[entity_type][operation] for operation in operations}


_VIEW = ("view_list", "view_detail", "view_own")

_STAFF = _caps("agency", *_VIEW) | _caps("division", *_VIEW) | _caps("employee", *_VIEW, "edit_own")

_UNIT_ADMIN = _STAFF | _caps("division", "edit_own") | _caps("employee", "add", "delete")

_OWNER = (
    _caps("agency", *_VIEW, "edit_own", "delete")
    | _caps("division", *_VIEW, "add", "edit_own", "delete")
    | _caps("employee", *_VIEW, "add", "edit_own", "delete")
)

_DEFAULT_ROLES = {
    ADMINISTRATOR: ALL_CAPABILITIES,
    AGENCY: _OWNER,
    AGENCY_ADMIN_DINAS: _UNIT_ADMIN,
    AGENCY_ADMIN_UNIT: _UNIT_ADMIN,
    AGENCY_EMPLOYEE: _STAFF,
    AGENCY_PENGAWAS: _STAFF,
    AGENCY_PENGAWAS_SPESIALIS: _STAFF,
    AGENCY_KEPALA_UNIT: _STAFF,
    AGENCY_KEPALA_SEKSI: _STAFF,
    AGENCY_KEPALA_BIDANG: _STAFF,
    AGENCY_KEPALA_DINAS: _STAFF,
}


@dataclass(frozen=True)
class Principal:
    """The acting user, passed explicitly to every core operation."""
    id: str
    roles: frozenset[str] = field(default_factory=frozenset)
    capabilities: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_system_admin(self) -> bool:
        return ADMINISTRATOR in self.roles

    def can(self, capability: str) -> bool:
        return self.is_system_admin or capability in self.capabilities


class CapabilityRegistry:
    """Immutable role -> capability set mapping."""

    def __init__(self, roles: Mapping[str, Iterable[str]]):
        self._roles = MappingProxyType({role: frozenset(caps) for role, caps in roles.items()})

    @property
    def roles(self) -> Mapping[str, frozenset[str]]:
        return self._roles

    def capabilities_for(self, roles: Iterable[str]) -> frozenset[str]:
        caps: set[str] = set()
        for role in roles:
            caps |= self._roles.get(role, frozenset())
        return frozenset(caps)

    def is_known_role(self, role: str) -> bool:
        return role in self._roles

    def principal(self, principal_id: str, roles: Iterable[str], is_admin: bool = False) -> Principal:
        role_set = set(roles)
        if is_admin:
            role_set.add(ADMINISTRATOR)
        return Principal(
            id=principal_id,
            roles=frozenset(role_set),
            capabilities=self.capabilities_for(role_set),
        )


DEFAULT_REGISTRY = CapabilityRegistry(_DEFAULT_ROLES)
