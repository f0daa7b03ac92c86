"""Shared test fixtures and helpers."""

from datetime import datetime, timedelta
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session

from comebookus import models  # noqa: F401
from comebookus.core import utcnow
from comebookus.db import build_engine, get_session
from comebookus.deps import get_dispatcher, get_payment_gateway
from comebookus.locks import ProviderLocks
from comebookus.main import app
from comebookus.models import Service, User
from comebookus.notifications import NotificationDispatcher
from comebookus.payments import PaymentError, PaymentIntentRef
from comebookus.scheduling import SchedulingService


class RecordingSender:
    """Collects outgoing messages instead of delivering them."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.emails: list[tuple[str, str, str]] = []
        self.sms: list[tuple[str, str]] = []

    def send_email(self, from_address, to, subject, body):
        if self.fail:
            raise RuntimeError("email provider down")
        self.emails.append((to, subject, body))

    def send_sms(self, to, body):
        if self.fail:
            raise RuntimeError("sms provider down")
        self.sms.append((to, body))


class FakeGateway:
    def __init__(self):
        self.fail = False
        self.created: list[tuple[int, dict]] = []

    def create_payment_intent(self, amount, metadata):
        if self.fail:
            raise PaymentError("card network unavailable")
        self.created.append((amount, metadata))
        n = len(self.created)
        return PaymentIntentRef(id=f"pi_test_{n}", client_secret=f"pi_test_{n}_secret")


@pytest.fixture
def engine(tmp_path):
    # file-backed so worker threads share one database
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def locks():
    return ProviderLocks(timeout=5.0)


@pytest.fixture
def notices():
    return []


@pytest.fixture
def scheduler(session, locks, notices):
    return SchedulingService(session, locks, notify=notices.append)


def make_provider(session: Session, email: str = "owner@salon.test", **fields) -> User:
    provider = User(
        email=email,
        password_hash="not-a-real-hash",
        name="Alex Owner",
        business_name="Fade & Co",
        **fields,
    )
    session.add(provider)
    session.commit()
    session.refresh(provider)
    return provider


def make_service(
    session: Session,
    provider: User,
    duration: int = 60,
    buffer_time: int = 0,
    price: int = 4500,
    name: str = "Haircut",
    is_active: bool = True,
) -> Service:
    service = Service(
        user_id=provider.id,
        name=name,
        duration=duration,
        buffer_time=buffer_time,
        price=price,
        is_active=is_active,
    )
    session.add(service)
    session.commit()
    session.refresh(service)
    return service


@pytest.fixture
def provider(session):
    return make_provider(session)


def at(hour: int, minute: int = 0, day: Optional[datetime] = None) -> datetime:
    """A fixed instant on the test day (naive UTC)."""
    day = day or datetime(2030, 6, 3)
    return day.replace(hour=hour, minute=minute, second=0, microsecond=0)


def future_at(hour: int, minute: int = 0, days_ahead: int = 2) -> datetime:
    day = utcnow() + timedelta(days=days_ahead)
    return day.replace(hour=hour, minute=minute, second=0, microsecond=0)


# -- API ------------------------------------------------------------------

@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(engine, sender, gateway):
    def _session_override():
        with Session(engine) as session:
            yield session

    dispatcher = NotificationDispatcher(sender=sender, from_address="test@comebookus.test")
    app.dependency_overrides[get_session] = _session_override
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client):
    resp = client.post("/users", json={
        "email": "owner@salon.test",
        "password": "supersecret",
        "name": "Alex Owner",
        "business_name": "Fade & Co",
        "booking_page_slug": "fade-and-co",
    })
    assert resp.status_code == 201
    resp = client.post("/auth/login", data={"username": "owner@salon.test", "password": "supersecret"})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.fixture
def api_service(client, auth_headers):
    resp = client.post("/services", headers=auth_headers, json={
        "name": "Haircut",
        "duration": 60,
        "price": 4500,
    })
    assert resp.status_code == 201
    return resp.json()
