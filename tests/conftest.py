from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from trip_service.config import Settings
from trip_service.database import Database
from trip_service.main import create_app
from trip_service.services.driver_directory import DriverDirectoryClient, DriverListing
from trip_service.services.payment import ChargeResult, PaymentClient
from trip_service.services.trip_lifecycle import TripLifecycle
from trip_service.store import TripStore


class FakeRedis:
    """Just enough of the redis.asyncio API for the per-trip lock."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.scripts: list[str] = []

    async def set(self, key, value, nx=False, px=None):
        if nx and key in self.data:
            return None
        self.data[key] = value
        return True

    async def get(self, key):
        return self.data.get(key)

    async def delete(self, key):
        return 1 if self.data.pop(key, None) is not None else 0

    def register_script(self, script):
        # The only script in use is the lock release: compare, then delete.
        async def release(keys, args):
            if self.data.get(keys[0]) == args[0]:
                return await self.delete(keys[0])
            return 0

        self.scripts.append(script)
        return release


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite://",
        acceptance_timeout_ms=5000,
        driver_ordering="directory",
        legacy_create_status=False,
        release_driver_on_cancel=False,
    )


@pytest_asyncio.fixture
async def database():
    db = Database("sqlite+aiosqlite://")
    await db.create_schema()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def store(database):
    async with database.session() as session:
        yield TripStore(session)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def directory():
    mock = AsyncMock(spec=DriverDirectoryClient)
    mock.fetch_available.return_value = DriverListing()
    return mock


@pytest.fixture
def payments():
    mock = AsyncMock(spec=PaymentClient)
    mock.charge.return_value = ChargeResult(status="SUCCESS", transaction_id="txn-001")
    return mock


@pytest.fixture
def lifecycle(store, directory, payments, fake_redis, settings):
    return TripLifecycle(
        store=store,
        directory=directory,
        payments=payments,
        redis=fake_redis,
        settings=settings,
    )


@pytest.fixture
def app(settings, database, fake_redis, directory, payments):
    # ASGITransport does not run the lifespan, so wire app.state by hand.
    application = create_app(settings)
    application.state.database = database
    application.state.redis = fake_redis
    application.state.directory = directory
    application.state.payments = payments
    return application


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
