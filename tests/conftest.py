import pytest
from httpx import ASGITransport, AsyncClient

from deal_app.app import create_app
from deal_app.core.breaker import breaker
from deal_app.core.get_db import Base
from deal_app.core.settings import Settings
from deal_app.models.enums import UserRole
from deal_app.models.models import User
from deal_app.repos.users_repo import UsersRepo

PASSWORD = "secret123"


def make_settings(tmp_path, **overrides) -> Settings:
    values = {
        "DATABASE_URL": f"sqlite+aiosqlite:///{tmp_path / 'deals.db'}",
        "JWT_SECRET_KEY": "test-secret-key",
        "RATE_LIMIT_ENABLED": False,
        "LOG_LEVEL": "WARNING",
        "_env_file": None,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture(autouse=True)
def reset_breaker():
    breaker.reset()
    yield
    breaker.reset()


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path)


@pytest.fixture
async def app(settings):
    app = create_app(settings)
    async with app.state.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield app
    await app.state.engine.dispose()


@pytest.fixture
async def db(app):
    async with app.state.sessionmaker() as session:
        yield session


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    async def _make(name=None, role=UserRole.USER):
        counter["n"] += 1
        name = name or f"user{counter['n']}"
        user = User(name=name, email=f"{name.lower()}@example.com", role=role)
        user.set_password(PASSWORD)
        return await UsersRepo(db).create(user)

    return _make


@pytest.fixture
async def seller(make_user):
    return await make_user("Seller")


@pytest.fixture
async def buyer(make_user):
    return await make_user("Buyer")


@pytest.fixture
async def other_buyer(make_user):
    return await make_user("OtherBuyer")


@pytest.fixture
async def stranger(make_user):
    return await make_user("Stranger")
