"""Shared fixtures: in-memory database, cache, unit of work and principals."""
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

from app.core.cache import MemoryCache
from app.core.database.engine import build_engine, build_session_factory, get_db, init_db
from app.core.database.unit_of_work import UnitOfWork
from app.core.notifications import Notification, NotificationSender, Notifier
from app.core.security import REQUEST_TOKEN_HEADER, issue_request_token
from app.features.access.dependencies import get_access_resolver
from app.features.access.resolver import AccessResolver
from app.features.agencies.schemas import AgencyCreate
from app.features.agencies.service import AgencyService
from app.features.geo.models import Province, Regency
from app.features.lifecycle.dependencies import get_uow
from app.features.lifecycle.handlers import build_dispatcher
from app.features.listing.dependencies import get_listing_gateway
from app.features.listing.gateway import ListingGateway
from app.features.users.dependencies import get_current_user
from app.features.users.directory import IdentityDirectory
from app.features.users.models import User
from app.features.users.schemas import UserCreate


ACEH = {
    "1101": "Kabupaten Simeulue",
    "1102": "Kabupaten Aceh Singkil",
    "1103": "Kabupaten Aceh Selatan",
    "1104": "Kabupaten Aceh Tenggara",
    "1105": "Kabupaten Aceh Timur",
    "1171": "Kota Banda Aceh",
}
SUMUT = {
    "1201": "Kabupaten Nias",
    "1275": "Kota Medan",
}

OWNER_EMAIL = "kadis@disnaker-aceh.go.id"


class RecordingSender(NotificationSender):
    def __init__(self):
        self.sent: list[Notification] = []

    async def send(self, notification: Notification) -> None:
        self.sent.append(notification)


@pytest_asyncio.fixture
async def engine():
    test_engine = build_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    await init_db(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture
async def session(engine):
    async with build_session_factory(engine)() as db:
        yield db


@pytest_asyncio.fixture(autouse=True)
async def geo(session):
    session.add_all([Province(code="11", name="Aceh"), Province(code="12", name="Sumatera Utara")])
    session.add_all([Regency(code=code, name=name, province_code="11") for code, name in ACEH.items()])
    session.add_all([Regency(code=code, name=name, province_code="12") for code, name in SUMUT.items()])
    await session.commit()


@pytest.fixture
def cache():
    return MemoryCache()


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def notifier(sender):
    return Notifier(sender, timeout=1)


@pytest.fixture
def dispatcher():
    return build_dispatcher()


@pytest.fixture
def make_uow(session, cache, dispatcher, notifier):
    def factory(hard_delete: bool = False, timeout: float | None = None) -> UnitOfWork:
        return UnitOfWork(session, cache, dispatcher, notifier, hard_delete=hard_delete, timeout=timeout)
    return factory


@pytest.fixture
def uow(make_uow):
    return make_uow()


@pytest.fixture
def make_user(session):
    async def factory(email: str, name: str | None = None, roles=None, is_admin: bool = False) -> User:
        user = User(
            email=email,
            name=name or email.split("@")[0].title(),
            roles=list(roles or []),
            is_admin=is_admin,
        )
        session.add(user)
        await session.commit()
        return user
    return factory


@pytest.fixture
def principal_of(session):
    """Fresh principal for a user; roles may have changed since the last call."""
    async def resolve(user: User):
        return await IdentityDirectory(session).get_principal(user.id)
    return resolve


@pytest_asyncio.fixture
async def admin_user(make_user):
    return await make_user("admin@pemda.go.id", "System Admin", is_admin=True)


@pytest_asyncio.fixture
async def admin(admin_user, principal_of):
    return await principal_of(admin_user)


@pytest_asyncio.fixture
async def stranger_user(make_user):
    return await make_user("stranger@elsewhere.go.id", "Stranger")


@pytest_asyncio.fixture
async def stranger(stranger_user, principal_of):
    return await principal_of(stranger_user)


@pytest_asyncio.fixture
async def disnaker(uow, admin):
    """The "Disnaker Aceh" agency, created by the admin for a new owner."""
    return await AgencyService(uow).create_agency(
        AgencyCreate(
            name="Disnaker Aceh",
            province_code="11",
            regency_code="1101",
            owner=UserCreate(email=OWNER_EMAIL, name="Kepala Dinas"),
        ),
        admin,
    )


@pytest_asyncio.fixture
async def owner_user(disnaker, session):
    return await session.get(User, disnaker.owning_principal_id)


@pytest_asyncio.fixture
async def owner(owner_user, principal_of):
    return await principal_of(owner_user)


class AuthState:
    """Whoever the API client is currently signed in as."""
    user: User | None = None


@pytest.fixture
def auth():
    return AuthState()


@pytest_asyncio.fixture
async def client(session, cache, make_uow, auth):
    from app.main import app, limiter

    async def override_db():
        yield session

    async def override_user():
        return auth.user

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_current_user] = override_user
    app.dependency_overrides[get_uow] = lambda: make_uow()
    app.dependency_overrides[get_listing_gateway] = lambda: ListingGateway(session, cache)
    app.dependency_overrides[get_access_resolver] = lambda: AccessResolver(session, cache)
    limiter.enabled = False

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()
    limiter.enabled = True


@pytest.fixture
def token_headers():
    def build(user: User) -> dict[str, str]:
        return {REQUEST_TOKEN_HEADER: issue_request_token(user.id)}
    return build
