"""Test fixtures — a fresh in-memory database and app per test.

Pattern:
1. Each test gets its own SQLite (aiosqlite) engine with the schema
   created from the models, so no Postgres is needed.
2. The app is built with create_app(), so each test has its own
   BroadcastHub.
3. get_db and require_staff are overridden; staff routes work without
   minting tokens. Auth tests use unauthenticated_client instead.
"""

import json

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from cafe_orders.auth.dependencies import StaffIdentity, require_staff
from cafe_orders.db.engine import get_db
from cafe_orders.db.models import Base, MenuItem
from cafe_orders.main import create_app
from cafe_orders.realtime.hub import BroadcastHub

TEST_DB_URL = "sqlite+aiosqlite://"


class Recorder:
    """Hub subscriber that keeps every decoded message it receives."""

    def __init__(self):
        self.messages: list[dict] = []

    async def __call__(self, message: str) -> None:
        self.messages.append(json.loads(message))

    @property
    def types(self) -> list[str]:
        return [m["type"] for m in self.messages]


@pytest_asyncio.fixture()
async def engine():
    engine = create_async_engine(
        TEST_DB_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(engine):
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session


@pytest_asyncio.fixture()
async def menu(db_session):
    """Two menu items: a flat white and a croissant."""
    items = [
        MenuItem(id="m1", name="Flat White", price=4.75, category="coffee"),
        MenuItem(id="m2", name="Croissant", price=3.25, category="pastry"),
    ]
    db_session.add_all(items)
    await db_session.commit()
    return {item.id: item for item in items}


@pytest_asyncio.fixture()
async def hub():
    hub = BroadcastHub()
    yield hub
    await hub.close()


@pytest_asyncio.fixture()
async def app():
    app = create_app()
    yield app
    await app.state.hub.close()


def _override_db(app, db_session):
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db


@pytest_asyncio.fixture()
async def client(app, db_session):
    """HTTP client with the database and staff auth overridden."""
    _override_db(app, db_session)
    app.dependency_overrides[require_staff] = lambda: StaffIdentity(
        subject="test-staff", role="admin"
    )

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def unauthenticated_client(app, db_session):
    """HTTP client WITHOUT the auth override — real token checks apply."""
    _override_db(app, db_session)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def recorder():
    return Recorder()
