import os
import uuid
from types import SimpleNamespace

# Settings are read at import time; point them at SQLite before importing app.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret-for-ventasve-delivery-tests"

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlmodel import Session, SQLModel

from app.core.events import EventBus
from app.database import build_engine, get_session
from app.main import app
from app.models.business import Business
from app.models.delivery import DeliveryPerson
from app.models.order import Order
from app.repositories.delivery_repo import DeliveryRepository
from app.repositories.order_repo import OrderRepository
from app.services.delivery_assignment import DeliveryAssignmentService
from app.services.delivery_confirmation import DeliveryConfirmationService
from app.services.delivery_service import DeliveryService
from app.services.driver_availability import DriverAvailabilityTracker
from app.services.order_lifecycle import OrderLifecycle
from app.services.order_service import OrderService

JWT_SECRET = os.environ["JWT_SECRET"]


class RecordingBus(EventBus):
    """EventBus that also keeps every emitted (business_id, event, data)."""

    def __init__(self):
        super().__init__()
        self.emitted: list[tuple[str, str, dict]] = []

    def emit_to_business(self, business_id, event, data):
        self.emitted.append((str(business_id), event, data))
        super().emit_to_business(business_id, event, data)

    def events(self, name: str) -> list[dict]:
        return [data for _, event, data in self.emitted if event == name]


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(session):
    app.dependency_overrides[get_session] = lambda: session
    yield TestClient(app)
    app.dependency_overrides.clear()


# ---- Seed data ----


@pytest.fixture
def business(session):
    biz = Business(name="Arepera La Esquina", slug="arepera-la-esquina")
    session.add(biz)
    session.commit()
    session.refresh(biz)
    return biz


@pytest.fixture
def other_business(session):
    biz = Business(
        name="Panaderia El Sol",
        slug="panaderia-el-sol",
        store_address="Av. Libertador, Caracas",
    )
    session.add(biz)
    session.commit()
    session.refresh(biz)
    return biz


@pytest.fixture
def make_driver(session):
    def _make(business, **overrides):
        fields = {
            "business_id": business.id,
            "name": "Carlos Moto",
            "phone": "0414-5550000",
            "vehicle_type": "MOTORCYCLE",
            "is_available": True,
        }
        fields.update(overrides)
        person = DeliveryPerson(**fields)
        session.add(person)
        session.commit()
        session.refresh(person)
        return person

    return _make


@pytest.fixture
def driver(business, make_driver):
    return make_driver(business)


@pytest.fixture
def make_order(session):
    def _make(business, **overrides):
        fields = {
            "business_id": business.id,
            "customer_id": uuid.uuid4(),
            "total_cents": 2500,
            "payment_method": "CASH_USD",
            "status": "CONFIRMED",
            "shipping_cost_cents": 300,
            "delivery_address": "Calle 5, Los Palos Grandes",
        }
        fields.update(overrides)
        order = Order(**fields)
        session.add(order)
        session.commit()
        session.refresh(order)
        return order

    return _make


# ---- Services wired to a recording bus ----


@pytest.fixture
def bus():
    return RecordingBus()


@pytest.fixture
def services(bus):
    order_repo = OrderRepository()
    delivery_repo = DeliveryRepository()
    lifecycle = OrderLifecycle(order_repo, bus)
    availability = DriverAvailabilityTracker(delivery_repo)
    delivery_service = DeliveryService(order_repo, delivery_repo, availability)

    return SimpleNamespace(
        lifecycle=lifecycle,
        availability=availability,
        delivery=delivery_service,
        orders=OrderService(order_repo, delivery_repo, lifecycle, delivery_service, bus),
        assignment=DeliveryAssignmentService(order_repo, delivery_repo, lifecycle, availability),
        confirmation=DeliveryConfirmationService(order_repo, delivery_repo, lifecycle, availability),
    )


# ---- Auth ----


def make_token(business_id, role: str = "OWNER") -> str:
    return jwt.encode(
        {"sub": str(uuid.uuid4()), "businessId": str(business_id), "role": role},
        JWT_SECRET,
        algorithm="HS256",
    )


@pytest.fixture
def token_for():
    return make_token


@pytest.fixture
def token(business):
    return make_token(business.id)


@pytest.fixture
def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}
