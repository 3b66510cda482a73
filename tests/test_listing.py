"""Tests for permission-scoped entity lists."""
import pytest

from app.features.agencies.models import Agency
from app.features.agencies.schemas import AgencyCreate
from app.features.agencies.service import AgencyService
from app.features.divisions.models import DivisionType
from app.features.divisions.schemas import DivisionCreate
from app.features.divisions.service import DivisionService
from app.features.listing.filters import ScopeFilterRegistry
from app.features.listing.gateway import ListingGateway, escape_like
from app.features.listing.schemas import ListQuery, StatusFilter
from app.features.permissions.capabilities import AGENCY_EMPLOYEE
from app.features.users.schemas import UserCreate


@pytest.fixture
def gateway(session, cache):
    return ListingGateway(session, cache)


@pytest.fixture
def dinkes(uow, admin, disnaker):
    async def build():
        return await AgencyService(uow).create_agency(
            AgencyCreate(name="Dinkes Aceh", province_code="11", regency_code="1171",
                         owner=UserCreate(email="kadis@dinkes-aceh.go.id", name="Kepala Dinas Kesehatan")),
            admin,
        )
    return build


async def add_branches(uow, owner, agency_id, names):
    service = DivisionService(uow)
    for name in names:
        await service.create_division(
            DivisionCreate(agency_id=agency_id, name=name, type=DivisionType.CABANG), owner
        )


async def test_admin_sees_everything(gateway, admin, disnaker, dinkes):
    await dinkes()

    result = await gateway.list_entities("agency", admin, ListQuery())

    assert result.total_count == 2
    assert result.filtered_count == 2
    assert [row["name"] for row in result.rows] == ["Dinkes Aceh", "Disnaker Aceh"]
    assert result.rows[0]["actions"] == {"view": True, "update": True, "delete": True}
    assert result.rows[1]["division_count"] == 1
    assert result.rows[1]["employee_count"] == 1


async def test_owner_sees_only_their_agency(gateway, owner, disnaker, dinkes):
    await dinkes()

    result = await gateway.list_entities("agency", owner, ListQuery())

    assert result.total_count == 1
    assert [row["id"] for row in result.rows] == [disnaker.id]
    assert result.rows[0]["actions"] == {"view": True, "update": True, "delete": True}

    divisions = await gateway.list_entities("division", owner, ListQuery())
    assert [row["agency_id"] for row in divisions.rows] == [disnaker.id]


async def test_unrelated_principals_get_empty_results(gateway, stranger, make_user, principal_of, disnaker):
    assert (await gateway.list_entities("agency", stranger, ListQuery())).total_count == 0

    colleague = await principal_of(await make_user("pegawai@dinsos.go.id", roles=[AGENCY_EMPLOYEE]))
    for entity_type in ("agency", "division", "employee"):
        result = await gateway.list_entities(entity_type, colleague, ListQuery())
        assert result.total_count == 0
        assert result.rows == []


async def test_search_narrows_filtered_count_only(gateway, uow, owner, disnaker):
    await add_branches(uow, owner, disnaker.id, ["UPTD Singkil", "UPTD Simeulue", "Balai Latihan Kerja"])

    result = await gateway.list_entities("division", owner, ListQuery(search="uptd"))

    assert result.total_count == 4
    assert result.filtered_count == 2
    assert {row["name"] for row in result.rows} == {"UPTD Singkil", "UPTD Simeulue"}


async def test_pages_are_stable(gateway, uow, owner, disnaker):
    await add_branches(uow, owner, disnaker.id, ["UPTD A", "UPTD B", "UPTD C"])

    seen = []
    for start in range(4):
        page = await gateway.list_entities(
            "division", owner, ListQuery(start=start, length=1, order_by="type")
        )
        seen += [row["id"] for row in page.rows]

    assert len(seen) == len(set(seen)) == 4


async def test_unknown_sort_column_falls_back_to_name(gateway, admin, disnaker, dinkes):
    await dinkes()

    result = await gateway.list_entities("agency", admin, ListQuery(order_by="owning_principal_id", order_dir="desc"))

    assert [row["name"] for row in result.rows] == ["Disnaker Aceh", "Dinkes Aceh"]


async def test_status_filter_requires_view_inactive(gateway, uow, admin, owner, disnaker, dinkes):
    other = await dinkes()
    await AgencyService(uow).delete_agency(other.id, admin)

    inactive = await gateway.list_entities("agency", admin, ListQuery(status=StatusFilter.INACTIVE))
    assert [row["name"] for row in inactive.rows] == ["Dinkes Aceh"]
    everything = await gateway.list_entities("agency", admin, ListQuery(status=StatusFilter.ALL))
    assert everything.total_count == 2

    forced = await gateway.list_entities("agency", owner, ListQuery(status=StatusFilter.INACTIVE))
    assert [row["name"] for row in forced.rows] == ["Disnaker Aceh"]


async def test_parent_filters(gateway, admin, uow, disnaker, dinkes):
    other = await dinkes()

    result = await gateway.list_entities("employee", admin, ListQuery(agency_id=other.id))

    assert result.total_count == 2
    assert result.filtered_count == 1
    assert result.rows[0]["agency_id"] == other.id


async def test_extra_scope_filters_only_narrow(session, cache, admin, owner, disnaker, dinkes):
    await dinkes()
    registry = ScopeFilterRegistry()

    def only_city_agencies(principal, query):
        return Agency.regency_code == "1171"

    registry.register("agency", only_city_agencies)
    gateway = ListingGateway(session, cache, filters=registry)

    assert [row["name"] for row in (await gateway.list_entities("agency", admin, ListQuery())).rows] == ["Dinkes Aceh"]
    assert (await gateway.list_entities("agency", owner, ListQuery())).rows == []

    registry.unregister("agency", only_city_agencies)
    assert [row["id"] for row in (await gateway.list_entities("agency", owner, ListQuery())).rows] == [disnaker.id]


async def test_cached_totals_follow_writes(gateway, admin, disnaker, dinkes):
    assert (await gateway.list_entities("agency", admin, ListQuery())).total_count == 1

    await dinkes()

    assert (await gateway.list_entities("agency", admin, ListQuery())).total_count == 2


async def test_filters_registered_later_apply_to_the_total(session, cache, admin, disnaker, dinkes):
    await dinkes()
    registry = ScopeFilterRegistry()
    gateway = ListingGateway(session, cache, filters=registry)
    assert (await gateway.list_entities("agency", admin, ListQuery())).total_count == 2

    def only_city_agencies(principal, query):
        return Agency.regency_code == "1171"

    registry.register("agency", only_city_agencies)
    result = await gateway.list_entities("agency", admin, ListQuery())

    assert result.total_count == result.filtered_count == 1


async def test_query_dependent_filters_are_counted_per_request(session, cache, admin, disnaker, dinkes):
    await dinkes()
    registry = ScopeFilterRegistry()

    def hide_searched_city(principal, query):
        if query.search:
            return Agency.regency_code != "1171"
        return None

    registry.register("agency", hide_searched_city)
    gateway = ListingGateway(session, cache, filters=registry)

    assert (await gateway.list_entities("agency", admin, ListQuery())).total_count == 2
    searched = await gateway.list_entities("agency", admin, ListQuery(search="aceh"))
    assert searched.total_count == 1
    assert [row["name"] for row in searched.rows] == ["Disnaker Aceh"]


@pytest.mark.parametrize("term", ["%", "_", "Aceh%"])
async def test_search_wildcards_are_literal(gateway, admin, disnaker, dinkes, term):
    await dinkes()

    result = await gateway.list_entities("agency", admin, ListQuery(search=term))

    assert result.total_count == 2
    assert result.filtered_count == 0


def test_escape_like():
    assert escape_like("50%_off\\") == "50\\%\\_off\\\\"
