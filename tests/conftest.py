"""Pytest fixtures for testing"""

import pytest
from decimal import Decimal
from typing import Any, Callable, Dict, Generator, List
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from procurement_gateway.api.main import create_app
from procurement_gateway.api.dependencies import get_notification_client
from procurement_gateway.config import settings
from procurement_gateway.infrastructure.database.models import Base, Project, Supplier
from procurement_gateway.infrastructure.database.session import get_db
from procurement_gateway.services.ledger import CapitalLedger


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class RecordingNotificationClient:
    """Stands in for the notification webhook; keeps every event it was sent"""

    def __init__(self):
        self.events: List[Dict[str, Any]] = []

    async def send_event(self, payload: Dict[str, Any]) -> None:
        self.events.append(payload)


@pytest.fixture(autouse=True)
def fast_retries(monkeypatch):
    """No backoff sleeps between transaction retries"""
    monkeypatch.setattr(settings, "transaction_backoff_base", 0.0)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory(db: Session) -> sessionmaker:
    """Open extra sessions on the test database, e.g. to act as a concurrent writer"""
    return TestingSessionLocal


@pytest.fixture
def notifications() -> RecordingNotificationClient:
    return RecordingNotificationClient()


@pytest.fixture
def client(db: Session, notifications: RecordingNotificationClient) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_client] = lambda: notifications
    return TestClient(app)


@pytest.fixture
def make_project(db: Session) -> Callable[..., Project]:
    """Factory for projects with given invested and used capital"""

    def _make(invested: str = "100000", used: str = "0", name: str = "Riverside Apartments") -> Project:
        project = CapitalLedger(db).open_project(name, "owner-1", Decimal(invested))
        if Decimal(used):
            project.total_used_capital = Decimal(used)
            project.recompute_balance()
            db.commit()
        return project

    return _make


@pytest.fixture
def funded_project(make_project) -> Project:
    """100,000 invested, 92,000 used: 8,000 (8%) left"""
    return make_project("100000", "92000")


@pytest.fixture
def make_supplier(db: Session) -> Callable[[str], Supplier]:
    def _make(name: str) -> Supplier:
        supplier = Supplier(name=name, status="ACTIVE")
        db.add(supplier)
        db.commit()
        return supplier

    return _make
