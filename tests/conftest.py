"""
Shared test fixtures.

Sets up an isolated SQLite database so tests never touch the real
database. Tables are created before and dropped after every test.
"""

import os

# Must be set before the app (and its engine) is imported
TEST_DATABASE_URL = "sqlite:///./test.db"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ.setdefault("AUDIT_SINK", "log")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from finance_ledger.audit import AuditEvent
from finance_ledger.context import RequestContext
from finance_ledger.main import app
from finance_ledger.models.base import Base, get_db
from finance_ledger.services.chart_of_accounts_service import (
    ChartOfAccountsService,
    STANDARD_TEMPLATE,
)


engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
)

TestSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)

TENANT_ID = "tenant-a"
ACTOR_ID = "user-1"

AUTH_HEADERS = {"X-Actor-Id": ACTOR_ID, "X-Tenant-Id": TENANT_ID}


class RecordingAuditSink:
    """Keeps delivered events in memory."""

    def __init__(self):
        self.events = []

    def record(self, tenant_id, action, entity_type, entity_id, metadata):
        self.events.append(AuditEvent(
            tenant_id=tenant_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            metadata=metadata,
        ))

    @property
    def actions(self):
        return [e.action for e in self.events]


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop them after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """Provide a database session for direct service testing."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def context():
    return RequestContext(actor_id=ACTOR_ID, tenant_id=TENANT_ID)


@pytest.fixture
def other_context():
    """A second tenant, for isolation checks."""
    return RequestContext(actor_id="user-2", tenant_id="tenant-b")


@pytest.fixture
def audit_sink():
    return RecordingAuditSink()


@pytest.fixture
def coa(db_session, context):
    """
    The standard chart of accounts for the test tenant, keyed by
    account number ("1000" Checking, "4000" Sales Revenue, ...).
    """
    service = ChartOfAccountsService(db_session, context)
    accounts = service.apply_template(STANDARD_TEMPLATE)
    db_session.commit()
    return {a.account_number: a for a in accounts}


@pytest.fixture
def client(db_session):
    """
    Provide a test client with the test database.

    The get_db dependency is overridden so the app uses the
    test session.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app, headers=AUTH_HEADERS)
    app.dependency_overrides.clear()
