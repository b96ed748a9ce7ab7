"""Shared fixtures: a fixed clock, in-memory SQLite, fake Redis and a fake auth facade."""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from fakeredis import FakeAsyncRedis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import adexpress.models  # noqa: F401  registers the tables
from adexpress.database import Base
from adexpress.schemas.advertisement import Ad
from adexpress.services.advertisement import AdvertisementService
from adexpress.services.storage import ChangeFeed, DatabaseAdStore, RedisAdMirror, TwoTierAdStore
from adexpress.utils.enums import AdCategory, ApprovalStatus

T0 = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)

VALID_FORM = {
    'title': 'Honda City 2018 for sale',
    'subject': 'Well maintained sedan',
    'description': 'Single owner car, full service history, new tyres.',
    'phone_number': '98765 43210',
    'category': 'vehicles',
    'city': 'pune',
    'duration_days': 7,
}


class FixedClock:
    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeAuth:
    def __init__(self, admins=('admin',)):
        self.user_id = None
        self.admins = set(admins)

    def login(self, user_id):
        self.user_id = user_id

    def current_user_id(self):
        return self.user_id

    async def is_admin(self, user_id):
        return user_id in self.admins


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def auth():
    return FakeAuth()


@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    maker = async_sessionmaker(bind=engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)

    @asynccontextmanager
    async def get_session():
        async with maker() as session:
            yield session

    yield get_session
    await engine.dispose()


@pytest.fixture
def locked_session_factory(session_factory):
    """
    One session at a time. The in-memory database has a single connection, so
    concurrent transactions on it would share state.
    """
    lock = asyncio.Lock()

    @asynccontextmanager
    async def get_session():
        async with lock:
            async with session_factory() as session:
                yield session

    return get_session


@pytest.fixture
async def redis_client():
    client = FakeAsyncRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
def database(session_factory):
    return DatabaseAdStore(session_factory)


@pytest.fixture
def mirror(redis_client):
    return RedisAdMirror(redis_client)


@pytest.fixture
def feed(redis_client):
    return ChangeFeed(redis_client)


@pytest.fixture
def store(database, mirror, feed):
    return TwoTierAdStore(database, mirror, feed)


@pytest.fixture
def service(store, auth, clock):
    return AdvertisementService(store, auth, clock)


@pytest.fixture
def make_ad(clock):
    def factory(**overrides) -> Ad:
        now = clock()
        values = {
            'id': str(uuid4()),
            'owner_id': 'owner',
            'title': 'Spacious flat near metro',
            'subject': '2BHK with parking',
            'description': 'Fully furnished flat close to the metro station.',
            'phone_number': '9876543210',
            'category': AdCategory.RENTALS,
            'city': 'Pune',
            'created_at': now,
            'expires_at': now + timedelta(days=30),
            'approved_at': now,
            'approval_status': ApprovalStatus.APPROVED,
        }
        values.update(overrides)
        return Ad(**values)

    return factory
