import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["NOTIFICATION_URL"] = ""
os.environ["REDIS_URL"] = ""

import itertools
from datetime import date, datetime, timedelta, timezone

import pytest
import pytest_asyncio
from fastapi import HTTPException
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.database import get_session
from app.dependencies.auth import get_current_user
from app.main import app
from app.models import (
    Base,
    Booking,
    BookingStatus,
    Owner,
    Property,
    PropertyStatus,
    PropertyType,
    Role,
    User,
    owner_properties,
)
from app.schemas.auth import Actor

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


class Factory:
    """Seeds rows straight into the test database."""

    def __init__(self, db):
        self.db = db
        self.seq = itertools.count(1)

    async def user(self, role=Role.user, email=None) -> User:
        n = next(self.seq)
        user = User(email=email or f"{role.value}{n}@example.com", role=role, verified=True, first_name=f"Test{n}")
        self.db.add(user)
        await self.db.commit()
        return user

    async def owner(self, user=None) -> Owner:
        user = user or await self.user(Role.owner)
        owner = Owner(
            user_id=user.id,
            id_proof_number=f"ID-{next(self.seq)}",
            id_proof_type="Passport",
            id_proof_image_url="https://cdn.example.com/id.jpg",
            verified=True,
        )
        self.db.add(owner)
        await self.db.commit()
        return owner

    async def property(self, owner, **overrides) -> Property:
        n = next(self.seq)
        values = {
            "title": f"Listing {n}",
            "description": "Bright flat close to the park",
            "city": "Pune",
            "state": "MH",
            "address": f"{n} MG Road",
            "country": "India",
            "rent": 1000.0,
            "deposit": 2000.0,
            "property_type": PropertyType.apartment,
            "bedrooms": 2,
            "bathrooms": 1,
            "area": 800.0,
            "amenities": ["wifi"],
            "images": [],
            "status": PropertyStatus.published,
            "created_at": BASE_TIME + timedelta(minutes=n),
            "updated_at": BASE_TIME + timedelta(minutes=n),
        }
        values.update(overrides)
        prop = Property(owner_id=owner.id, **values)
        self.db.add(prop)
        await self.db.flush()
        await self.db.execute(owner_properties.insert().values(owner_id=owner.id, property_id=prop.id, position=n))
        await self.db.commit()
        return prop

    async def booking(self, user, prop, **overrides) -> Booking:
        values = {
            "visit_date": date(2026, 11, 2),
            "time_slot": "10:00-11:00",
            "status": BookingStatus.pending,
        }
        values.update(overrides)
        booking = Booking(user_id=user.id, property_id=prop.id, **values)
        self.db.add(booking)
        await self.db.commit()
        return booking


@pytest.fixture
def factory(db):
    return Factory(db)


def as_actor(user) -> Actor:
    return Actor(id=user.id, role=user.role, email=user.email)


@pytest.fixture
def actor_for():
    return as_actor


@pytest.fixture
def auth_state():
    return {}


@pytest.fixture
def login(auth_state):
    def _login(user):
        auth_state["actor"] = as_actor(user)
    return _login


@pytest_asyncio.fixture
async def client(session_factory, auth_state):
    async def override_session():
        async with session_factory() as session:
            yield session

    async def override_current_user():
        if "actor" not in auth_state:
            raise HTTPException(status_code=401, detail="Access denied. No token provided.")
        return auth_state["actor"]

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_current_user] = override_current_user
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def sent_notifications(monkeypatch):
    sent = []

    async def fake_notify(event, recipient_id, data=None):
        sent.append({"event": event, "recipient_id": recipient_id, "data": data or {}})

    monkeypatch.setattr("app.services.notifications.notify", fake_notify)
    return sent
