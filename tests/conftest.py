"""
Shared fixtures: an in-memory SQLite database rebuilt for every test, a
TestClient wired to it, and fake mail/payment collaborators.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("EMAIL_BACKEND", "console")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from skytour.api.deps import get_mailer, get_payment_gateway
from skytour.db.session import Base, get_db
from skytour.main import app
from skytour.services.settings_service import operating_hours_cache

# Register every table on Base.metadata
import skytour.models.audit_log  # noqa: F401
import skytour.models.course  # noqa: F401
import skytour.models.customer  # noqa: F401
import skytour.models.heliport  # noqa: F401
import skytour.models.notification_log  # noqa: F401
import skytour.models.payment  # noqa: F401
import skytour.models.reservation  # noqa: F401
import skytour.models.setting  # noqa: F401
import skytour.models.slot  # noqa: F401

from tests.helpers import FakeGateway, FakeMailer

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def _fresh_operating_hours_cache():
    operating_hours_cache.invalidate()
    yield
    operating_hours_cache.invalidate()


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def client(db, mailer, gateway):
    def _get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()
