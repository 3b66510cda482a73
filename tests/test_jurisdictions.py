"""Tests for jurisdiction assignment and territory exclusivity."""
import pytest
from sqlalchemy import select, func

from app.core.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from app.features.agencies.schemas import AgencyCreate
from app.features.agencies.service import AgencyService
from app.features.divisions.models import Division, DivisionType
from app.features.divisions.schemas import DivisionCreate, DivisionUpdate
from app.features.divisions.service import DivisionService
from app.features.employees.schemas import EmployeeCreate
from app.features.employees.service import EmployeeService
from app.features.jurisdictions.service import JurisdictionService
from app.features.users.schemas import UserCreate


async def headquarters_id(uow, agency_id):
    return (await DivisionService(uow).repo.active_headquarters(agency_id)).id


async def codes_of(service, division_id):
    return [(row["territory_code"], row["is_primary"]) for row in await service.current_assignments(division_id)]


async def test_headquarters_starts_with_its_regency(uow, disnaker):
    service = JurisdictionService(uow)

    assert await codes_of(service, await headquarters_id(uow, disnaker.id)) == [("1101", True)]


async def test_example_scenario(uow, owner, disnaker, session):
    agency_id = disnaker.id
    hq_id = await headquarters_id(uow, agency_id)
    service = JurisdictionService(uow)

    assignments = await service.assign(hq_id, ["1101", "1102"], ["1101"], owner)

    assert len(assignments) == 2
    assert [a.territory_code for a in assignments if a.is_primary] == ["1101"]

    branch = await DivisionService(uow).create_division(
        DivisionCreate(agency_id=agency_id, name="UPTD Aceh Selatan", type=DivisionType.CABANG,
                       province_code="11", regency_code="1103"),
        owner,
    )
    branch_id = branch.id

    with pytest.raises(ConflictError) as exc_info:
        await service.assign(branch_id, ["1101"], [], owner)
    assert "1101" in exc_info.value.message
    assert "Disnaker Aceh Kantor Pusat" in exc_info.value.message

    assert await codes_of(service, branch_id) == [("1103", True)]
    assert await codes_of(service, hq_id) == [("1101", True), ("1102", False)]


async def test_primary_territory_is_always_included(uow, owner, disnaker):
    hq_id = await headquarters_id(uow, disnaker.id)
    service = JurisdictionService(uow)

    await service.assign(hq_id, ["1104", "1105"], [], owner)

    assert await codes_of(service, hq_id) == [("1101", True), ("1104", False), ("1105", False)]


async def test_reassignment_replaces_the_whole_set(uow, owner, disnaker):
    hq_id = await headquarters_id(uow, disnaker.id)
    service = JurisdictionService(uow)

    await service.assign(hq_id, ["1102", "1103"], [], owner)
    await service.assign(hq_id, ["1104"], [], owner)

    assert await codes_of(service, hq_id) == [("1101", True), ("1104", False)]


@pytest.mark.parametrize("codes, primary, field", [
    (["1102"], ["1103"], "primary_codes"),
    (["1101", "1102"], ["1102"], "primary_codes"),
    (["9999"], [], "territory_codes"),
])
async def test_invalid_assignments(uow, owner, disnaker, codes, primary, field):
    hq_id = await headquarters_id(uow, disnaker.id)
    service = JurisdictionService(uow)

    with pytest.raises(ValidationError) as exc_info:
        await service.assign(hq_id, codes, primary, owner)

    assert field in exc_info.value.fields
    assert await codes_of(service, hq_id) == [("1101", True)]


async def test_division_without_regency_cannot_hold_territories(uow, owner, disnaker):
    branch = await DivisionService(uow).create_division(
        DivisionCreate(agency_id=disnaker.id, name="UPTD Keliling", type=DivisionType.CABANG),
        owner,
    )

    with pytest.raises(ValidationError):
        await JurisdictionService(uow).assign(branch.id, ["1104"], [], owner)


async def test_creating_a_division_on_a_held_territory_fails(session, uow, owner, disnaker):
    agency_id = disnaker.id

    with pytest.raises(ConflictError):
        await DivisionService(uow).create_division(
            DivisionCreate(agency_id=agency_id, name="UPTD Simeulue", type=DivisionType.CABANG,
                           province_code="11", regency_code="1101"),
            owner,
        )

    count = await session.execute(select(func.count(Division.id)).where(Division.agency_id == agency_id))
    assert count.scalar() == 1


async def test_exclusivity_is_scoped_to_the_agency(uow, admin, disnaker):
    other = await AgencyService(uow).create_agency(
        AgencyCreate(name="Dinkes Aceh", province_code="11", regency_code="1101",
                     owner=UserCreate(email="kadis@dinkes-aceh.go.id", name="Kepala Dinas Kesehatan")),
        admin,
    )

    service = JurisdictionService(uow)
    assert await codes_of(service, await headquarters_id(uow, other.id)) == [("1101", True)]
    assert await codes_of(service, await headquarters_id(uow, disnaker.id)) == [("1101", True)]


async def test_moving_a_division_moves_its_primary(uow, owner, disnaker):
    service = JurisdictionService(uow)
    branch = await DivisionService(uow).create_division(
        DivisionCreate(agency_id=disnaker.id, name="UPTD Singkil", type=DivisionType.CABANG,
                       province_code="11", regency_code="1102", jurisdictions=["1104"]),
        owner,
    )
    assert await codes_of(service, branch.id) == [("1102", True), ("1104", False)]

    await DivisionService(uow).update_division(branch.id, DivisionUpdate(regency_code="1105"), owner)

    assert await codes_of(service, branch.id) == [("1105", True), ("1104", False)]


async def test_available_territories(uow, owner, disnaker):
    agency_id = disnaker.id
    hq_id = await headquarters_id(uow, agency_id)
    service = JurisdictionService(uow)

    available = [t["code"] for t in await service.available_territories(agency_id, owner)]
    assert "1101" not in available
    assert "1102" in available
    assert "1275" not in available

    await service.assign(hq_id, ["1102"], [], owner)

    available = [t["code"] for t in await service.available_territories(agency_id, owner)]
    assert "1102" not in available
    editing = [t["code"] for t in await service.available_territories(agency_id, owner, hq_id)]
    assert {"1101", "1102"} <= set(editing)


async def test_division_jurisdictions_cache_follows_writes(uow, owner, disnaker):
    hq_id = await headquarters_id(uow, disnaker.id)
    service = JurisdictionService(uow)

    first = await service.list_for_division(hq_id, owner)
    assert [row["territory_code"] for row in first] == ["1101"]
    assert first[0]["name"] == "Kabupaten Simeulue"

    await service.assign(hq_id, ["1103"], [], owner)

    second = await service.list_for_division(hq_id, owner)
    assert [row["territory_code"] for row in second] == ["1101", "1103"]


async def test_assignment_permissions(uow, owner, stranger, disnaker, make_user, principal_of):
    hq_id = await headquarters_id(uow, disnaker.id)
    service = JurisdictionService(uow)

    with pytest.raises(NotFoundError):
        await service.assign(hq_id, ["1102"], [], stranger)

    staff_user = await make_user("staf@disnaker-aceh.go.id", "Staf")
    await EmployeeService(uow).create_employee(
        EmployeeCreate(division_id=hq_id, principal_id=staff_user.id), owner
    )
    staff = await principal_of(staff_user)

    with pytest.raises(PermissionDeniedError):
        await service.assign(hq_id, ["1102"], [], staff)
    assert len(await service.list_for_division(hq_id, staff)) == 1
