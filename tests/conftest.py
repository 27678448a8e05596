import os

# Must be set before trotropay.src.constants is imported
os.environ["DB_URL"] = "sqlite://"

from decimal import Decimal
from unittest.mock import MagicMock, Mock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from trotropay import setup
from trotropay.api.controller import app_api
from trotropay.main import app
from trotropay.src import getters
from trotropay.src.db import Account, ORMbase, Route, Vehicle, sessionMaker
from trotropay.src.notifier import Notifier
from trotropay.src.urls import URL_ACCOUNT_TOKEN

PIN = "1234"
PASSENGER_PHONE = "0245678901"
MATE_PHONE = "0234567890"
DRIVER_PHONE = "0223456789"
OWNER_PHONE = "0212345678"
CIRCLE_VEHICLE = "GT-1234-20"
TEMA_VEHICLE = "GT-5678-19"
STARTING_BALANCE = Decimal("25.40")

testEngine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
sessionMaker.configure(bind=testEngine)


@pytest.fixture(autouse=True)
def database():
    ORMbase.metadata.create_all(testEngine)
    yield testEngine
    ORMbase.metadata.drop_all(testEngine)


@pytest.fixture(autouse=True)
def mock_redis_client():
    with patch("trotropay.src.redis.redisClient") as client:
        lock = MagicMock()
        lock.acquire.return_value = True
        lock.locked.return_value = True
        lock.owned.return_value = True
        client.lock.return_value = lock
        yield client


@pytest.fixture(autouse=True)
def mock_openobserve():
    with patch("trotropay.src.openobserve.logEvent") as logEvent:
        yield logEvent


@pytest.fixture
def seed(database):
    """Accounts, routes, vehicles and commission rates of the demo data set."""
    setup.initDB()


@pytest.fixture
def session(database):
    session = sessionMaker()
    yield session
    session.close()


@pytest.fixture
def mock_notifier():
    return Mock(spec=Notifier)


@pytest.fixture
def client(mock_notifier):
    app_api.dependency_overrides[getters.notifier] = lambda: mock_notifier
    with TestClient(app) as client:
        yield client
    app_api.dependency_overrides.clear()


def login(client: TestClient, phoneNumber: str, pin: str = PIN) -> dict:
    response = client.post(
        "/api" + URL_ACCOUNT_TOKEN, json={"phoneNumber": phoneNumber, "pin": pin}
    )
    assert response.status_code == 201, response.text
    return {"Authorization": f"Bearer {response.json()['accessToken']}"}


def accountId(phoneNumber: str) -> int:
    with sessionMaker() as session:
        return (
            session.query(Account.id)
            .filter(Account.phone_number == phoneNumber)
            .scalar()
        )


def routeId(name: str) -> int:
    with sessionMaker() as session:
        return session.query(Route.id).filter(Route.name == name).scalar()


def fetchVehicle(vehicleId: str) -> Vehicle:
    with sessionMaker() as session:
        return session.query(Vehicle).filter(Vehicle.vehicle_id == vehicleId).one()


@pytest.fixture
def passenger_headers(client, seed):
    return login(client, PASSENGER_PHONE)


@pytest.fixture
def driver_headers(client, seed):
    return login(client, DRIVER_PHONE)


@pytest.fixture
def mate_headers(client, seed):
    return login(client, MATE_PHONE)


@pytest.fixture
def owner_headers(client, seed):
    return login(client, OWNER_PHONE)
