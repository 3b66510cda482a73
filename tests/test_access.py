"""Tests for access relations and the operations they allow."""
import pytest

from app.core.cache import access_key
from app.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from app.features.access import policy
from app.features.access.resolver import AccessResolver
from app.features.access.schemas import AccessType
from app.features.agencies.service import AgencyService
from app.features.divisions.models import DivisionType
from app.features.divisions.schemas import DivisionCreate, DivisionUpdate
from app.features.divisions.service import DivisionService
from app.features.employees.schemas import EmployeeCreate, EmployeeUpdate
from app.features.employees.service import EmployeeService
from app.features.permissions.capabilities import ADMINISTRATOR, DEFAULT_REGISTRY


@pytest.fixture
def resolver(session, cache):
    return AccessResolver(session, cache)


@pytest.fixture
def branch_with_staff(uow, owner, disnaker, make_user, principal_of):
    """A branch administered by ``kasi`` with ``staf`` as a plain employee."""
    async def build():
        kasi = await make_user("kasi@disnaker-aceh.go.id", "Kepala Seksi")
        staf = await make_user("staf@disnaker-aceh.go.id", "Staf")
        branch = await DivisionService(uow).create_division(
            DivisionCreate(agency_id=disnaker.id, name="UPTD Singkil", type=DivisionType.CABANG,
                           province_code="11", regency_code="1102", admin_principal_id=kasi.id),
            owner,
        )
        employee = await EmployeeService(uow).create_employee(
            EmployeeCreate(division_id=branch.id, principal_id=staf.id, position="Pengawas"), owner
        )
        return branch, employee, await principal_of(kasi), await principal_of(staf)
    return build


async def test_relation_order(resolver, admin, owner, disnaker):
    admin_relation = await resolver.resolve(admin, "agency", disnaker.id)
    owner_relation = await resolver.resolve(owner, "agency", disnaker.id)

    assert admin_relation.access_type == AccessType.SYSTEM_ADMIN
    assert owner_relation.access_type == AccessType.OWNER
    # The owner also administers and works at the headquarters
    assert owner_relation.is_division_admin
    assert owner_relation.is_employee


async def test_division_admin_and_employee(resolver, disnaker, branch_with_staff):
    branch, employee, kasi, staf = await branch_with_staff()

    kasi_relation = await resolver.resolve(kasi, "division", branch.id)
    assert kasi_relation.access_type == AccessType.DIVISION_ADMIN
    assert policy.can_update(kasi, kasi_relation)
    assert not policy.can_delete(kasi, kasi_relation)

    staf_relation = await resolver.resolve(staf, "division", branch.id)
    assert staf_relation.access_type == AccessType.EMPLOYEE
    assert policy.can_view(staf, staf_relation)
    assert not policy.can_update(staf, staf_relation)

    agency_relation = await resolver.resolve(staf, "agency", disnaker.id)
    assert agency_relation.access_type == AccessType.EMPLOYEE
    assert policy.can_view(staf, agency_relation)
    assert not policy.can_delete(staf, agency_relation)


async def test_employee_can_edit_own_record_only(resolver, uow, disnaker, branch_with_staff):
    branch, employee, kasi, staf = await branch_with_staff()

    self_relation = await resolver.resolve(staf, "employee", employee.id)
    assert self_relation.is_self
    assert self_relation.access_type == AccessType.EMPLOYEE
    assert policy.can_update(staf, self_relation)
    assert not policy.can_delete(staf, self_relation)

    updated = await EmployeeService(uow).update_employee(employee.id, EmployeeUpdate(phone="0651-22334"), staf)
    assert updated.phone == "0651-22334"

    kasi_employee = (await EmployeeService(uow).repo.for_principal_in_division(kasi.id, branch.id)).id
    with pytest.raises(PermissionDeniedError):
        await EmployeeService(uow).update_employee(kasi_employee, EmployeeUpdate(phone="0"), staf)


async def test_division_admin_manages_branch_employees(uow, disnaker, branch_with_staff):
    branch, employee, kasi, staf = await branch_with_staff()

    await DivisionService(uow).update_division(branch.id, DivisionUpdate(phone="0658-21001"), kasi)
    await EmployeeService(uow).delete_employee(employee.id, kasi)

    with pytest.raises(PermissionDeniedError):
        await DivisionService(uow).delete_division(branch.id, kasi)


async def test_fail_closed_for_strangers(resolver, uow, stranger, disnaker):
    relation = await resolver.resolve(stranger, "agency", disnaker.id)

    assert relation.access_type == AccessType.NONE
    assert not policy.can_view(stranger, relation)
    assert not policy.can_update(stranger, relation)
    with pytest.raises(NotFoundError):
        await AgencyService(uow).get_agency(disnaker.id, stranger)


async def test_missing_entities_and_unknown_types(resolver, admin):
    relation = await resolver.resolve(admin, "division", "01HNOTHERE0000000000000000")

    assert not relation.exists
    assert not policy.can_view(admin, relation)
    with pytest.raises(NotFoundError):
        await resolver.require_view(admin, "division", "01HNOTHERE0000000000000000")
    with pytest.raises(ValidationError):
        await resolver.resolve(admin, "province", "11")


async def test_relations_are_cached_and_invalidated_on_write(resolver, cache, uow, owner, stranger_user,
                                                          stranger, disnaker, principal_of):
    key = access_key(stranger.id, "agency", disnaker.id)
    assert (await resolver.resolve(stranger, "agency", disnaker.id)).access_type == AccessType.NONE
    assert await cache.get(key) is not None

    hq_id = (await DivisionService(uow).repo.active_headquarters(disnaker.id)).id
    await EmployeeService(uow).create_employee(EmployeeCreate(division_id=hq_id, principal_id=stranger.id), owner)

    assert await cache.get(key) is None
    colleague = await principal_of(stranger_user)
    assert (await resolver.resolve(colleague, "agency", disnaker.id)).access_type == AccessType.EMPLOYEE


async def test_admin_flag_is_never_cached(resolver, stranger, disnaker):
    await resolver.resolve(stranger, "agency", disnaker.id)
    promoted = DEFAULT_REGISTRY.principal(stranger.id, [ADMINISTRATOR])

    relation = await resolver.resolve(promoted, "agency", disnaker.id)

    assert relation.access_type == AccessType.SYSTEM_ADMIN
    assert policy.can_delete(promoted, relation)


async def test_inactive_entities(resolver, uow, admin, owner, disnaker):
    agency_id = disnaker.id
    await AgencyService(uow).delete_agency(agency_id, owner)

    owner_relation = await resolver.resolve(owner, "agency", agency_id)
    assert not owner_relation.is_active
    assert not policy.can_view(owner, owner_relation)

    admin_relation = await resolver.resolve(admin, "agency", agency_id)
    assert policy.can_view(admin, admin_relation)
    agency = await AgencyService(uow).get_agency(agency_id, admin)
    assert agency["status"] == "inactive"
    assert agency["division_count"] == 0
