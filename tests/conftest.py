import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from bson import ObjectId
from fastapi.testclient import TestClient

from haulcalc.main import app
from haulcalc.core.auth import get_current_user
from haulcalc.db.mongo import get_db
from haulcalc.models.haul import ExchangeRateSnapshot, RateQuote
from haulcalc.models.user import UserResponse
from haulcalc.services.tax_engine import TaxPolicy

OWNER_ID = "507f1f77bcf86cd799439011"
OTHER_ID = "507f1f77bcf86cd799439022"


def make_collection():
    """Stand-in for a Motor collection."""
    collection = MagicMock()
    collection.find_one = AsyncMock(return_value=None)
    collection.insert_one = AsyncMock()
    collection.update_one = AsyncMock()
    collection.find_one_and_update = AsyncMock(return_value=None)
    collection.delete_one = AsyncMock()

    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.to_list = AsyncMock(return_value=[])
    collection.find.return_value = cursor
    collection.cursor = cursor
    return collection


@pytest.fixture
def mock_db():
    """Mock MongoDB database with users and hauls collections."""
    collections = {"users": make_collection(), "hauls": make_collection()}
    db = MagicMock()
    db.__getitem__.side_effect = lambda name: collections[name]
    db.users = collections["users"]
    db.hauls = collections["hauls"]
    return db


@pytest.fixture
def rates():
    return ExchangeRateSnapshot(
        official=RateQuote(buy=950.0, sell=1000.0),
        informal=RateQuote(buy=1150.0, sell=1200.0),
    )


@pytest.fixture
def policy():
    return TaxPolicy(
        source_to_usd=0.14,
        postal_surcharge_local=4900.0,
        duty_free_allowance_usd=50.0,
        duty_rate=0.5,
    )


@pytest.fixture
def current_user():
    now = datetime.now(timezone.utc)
    return UserResponse(
        id=OWNER_ID,
        name="Test User",
        username="tester",
        created_at=now,
        updated_at=now
    )


@pytest.fixture
def client(mock_db):
    """Test client backed by the mock database. Startup hooks are not run."""
    app.dependency_overrides[get_db] = lambda: mock_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_client(client, current_user):
    """Test client with authentication overridden to ``current_user``."""
    app.dependency_overrides[get_current_user] = lambda: current_user
    return client


def haul_document(owner_id=OWNER_ID, **overrides):
    """A stored haul document as Motor would return it."""
    now = datetime.now(timezone.utc)
    doc = {
        "_id": ObjectId(),
        "owner_id": ObjectId(owner_id),
        "name": "Spring haul",
        "line_items": [
            {
                "id": "item-1",
                "quantity": 2,
                "name": "Tamper",
                "weight_g": 150.0,
                "unit_price": 40.0,
                "unit_freight": 10.0,
                "unit_price_usd": 7.0,
                "unit_price_local": 8400.0,
                "link": ""
            }
        ],
        "exchange_rates": {
            "official": {"buy": 950.0, "sell": 1000.0},
            "informal": {"buy": 1150.0, "sell": 1200.0},
            "fetched_at": None
        },
        "shipping_usd": 20.0,
        "total_cost": 16800.0,
        "total_weight": 300.0,
        "version": 1,
        "created_at": now,
        "updated_at": now
    }
    doc.update(overrides)
    return doc
