"""
Shared fixtures: in-memory database and order/user factories.
"""
import os

# Settings are read at import time, so the test environment goes first
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-order-portal-0123456789abcdef")

import pytest
from datetime import date
from unittest.mock import MagicMock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from orderportal.db.session import Base
from orderportal.db.models import User, TrackedOrder, AlertRecipient, EmailSetting
from orderportal.services.inventory import InventoryRecord, InventoryLookupError, SHIPMENT, matches_order
from orderportal.services.notifications import NotificationResult


# ============= FIXTURES =============

@pytest.fixture
def db_session():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    def _make(company_name="Acme Corp", email="buyer@acme.test", role="client"):
        counter["n"] += 1
        user = User(
            username=f"user{counter['n']}",
            password_hash="$2b$12$test_hash",
            email=email,
            company_name=company_name,
            role=role,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_order(db_session, make_user):
    def _make(po_number="PO-1", status="pending", date_required=date(2024, 1, 4),
              client_name="Acme Corp", user=None):
        owner = user or make_user()
        order = TrackedOrder(
            user_id=owner.id,
            po_number=po_number,
            date_required=date_required,
            client_name=client_name,
            status=status,
        )
        db_session.add(order)
        db_session.commit()
        db_session.refresh(order)
        return order

    return _make


@pytest.fixture
def add_recipient(db_session):
    def _add(email, is_active=True):
        recipient = AlertRecipient(email=email, is_active=is_active)
        db_session.add(recipient)
        db_session.commit()
        return recipient

    return _add


@pytest.fixture
def set_setting(db_session):
    def _set(key, value):
        db_session.add(EmailSetting(setting_key=key, setting_value=value))
        db_session.commit()

    return _set


@pytest.fixture
def dispatcher():
    """Dispatcher double that reports every send as delivered."""
    mock = MagicMock()
    mock.notify.return_value = NotificationResult(success=True, message_id="<test@localhost>")
    return mock


class FakeInventory:
    """
    Stands in for InventoryClient in engine tests.

    ``records`` are raw inventory payloads; POs listed in ``failing`` raise
    InventoryLookupError as a timed-out lookup would.
    """

    def __init__(self, records=None, failing=()):
        self.records = list(records or [])
        self.failing = set(failing)
        self.calls = []

    async def lookup(self, po_number, client_name=None):
        self.calls.append(po_number)
        if po_number in self.failing:
            raise InventoryLookupError("Timed out fetching /shipments after 10.0s", po_number=po_number)
        for entry in self.records:
            if matches_order(entry, po_number, client_name):
                return InventoryRecord.from_payload(entry, SHIPMENT)
        return None


@pytest.fixture
def fake_inventory():
    return FakeInventory
