"""Pytest configuration and fixtures."""

from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from swiftship.config import settings
from swiftship.db import get_db
from swiftship.db.models import Base
from swiftship.main import app
from swiftship.services.shipments import ShipmentStore


@pytest.fixture
async def db_session():
    """Create an in-memory database session for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def store(db_session):
    return ShipmentStore(db_session)


@pytest.fixture
def shipment_data():
    """Fields for a booked shipment, as passed to the store."""

    def _shipment_data(**overrides):
        data = {
            "sender_name": "Ada Sender",
            "sender_phone": "+1 555 0100",
            "sender_address": "1 Origin Way",
            "sender_city": "Tucson",
            "receiver_name": "Ray Receiver",
            "receiver_phone": "+1 555 0199",
            "receiver_address": "9 Destination Rd",
            "receiver_city": "Denver",
            "weight": Decimal("2.50"),
            "current_location": "Tucson",
            "total_amount": Decimal("27.50"),
        }
        data.update(overrides)
        return data

    return _shipment_data


@pytest.fixture
def make_shipment(store, shipment_data):
    """Create a shipment in the test database."""

    async def _make_shipment(**overrides):
        return await store.create_shipment(**shipment_data(**overrides))

    return _make_shipment


@pytest.fixture
async def client(db_session):
    """HTTP client for the app, backed by the test database."""

    async def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
async def admin_client(client):
    """HTTP client signed in as the configured admin."""
    response = await client.post(
        "/admin/login",
        data={
            "email": settings.admin_email,
            "password": settings.admin_password.get_secret_value(),
        },
    )
    assert response.status_code == 303
    return client
