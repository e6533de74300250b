"""
Test configuration and fixtures.
"""
import os
from datetime import datetime
from typing import Any, Dict, Generator, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Settings are read at import time, so configure them before importing the app
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTH_JWT_SECRET"] = "restostar-test-signing-secret-0123456789abcdef"
os.environ.pop("OPENAI_API_KEY", None)
os.environ.pop("AUTH_JWT_ISSUER", None)
os.environ.pop("AUTH_JWT_AUDIENCE", None)

from restostar.main import app
from restostar.core.errors import UpstreamError
from restostar.core.security import create_identity_token
from restostar.db.base import Base
from restostar.db.session import get_db
from restostar.models.restaurant import Restaurant
from restostar.models.user import User
from restostar.services.mailer import EmailMessage

import restostar.models  # noqa: F401


# In-memory SQLite shared across connections, with working SAVEPOINTs
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine, "connect")
def _sqlite_on_connect(dbapi_connection, connection_record):
    # Let SQLAlchemy emit BEGIN itself so nested transactions work
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@event.listens_for(engine, "begin")
def _sqlite_on_begin(conn):
    conn.exec_driver_sql("BEGIN")


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Fresh schema and session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """Create test client with database session override."""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


def make_user(db: Session, external_id: str, name: Optional[str] = None, email: Optional[str] = None) -> User:
    user = User(external_id=external_id, name=name, email=email)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_restaurant(db: Session, owner: User, **overrides: Any) -> Restaurant:
    values = dict(
        owner_id=owner.id,
        public_id="k7m2pq9xrt",
        slug="joes-diner",
        name="Joe's Diner",
        review_url="https://g.page/joes-diner/review",
        email_tone="manual",
    )
    values.update(overrides)
    restaurant = Restaurant(**values)
    db.add(restaurant)
    db.commit()
    db.refresh(restaurant)
    return restaurant


def headers_for(external_id: str, **claims: Any) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_identity_token(external_id, **claims)}"}


@pytest.fixture
def owner(db: Session) -> User:
    return make_user(db, "idp|owner-1", name="Olive Owner", email="olive@example.com")


@pytest.fixture
def other_owner(db: Session) -> User:
    return make_user(db, "idp|owner-2", name="Rex Rival", email="rex@example.com")


@pytest.fixture
def restaurant(db: Session, owner: User) -> Restaurant:
    return make_restaurant(db, owner)


@pytest.fixture
def auth_headers(owner: User) -> Dict[str, str]:
    """Bearer token for `owner`, as the identity provider would sign it."""
    return headers_for(owner.external_id)


@pytest.fixture
def other_auth_headers(other_owner: User) -> Dict[str, str]:
    return headers_for(other_owner.external_id)


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 3, 14, 12, 0, 0)


class FakeMailer:
    """Records messages instead of talking to an SMTP server."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[EmailMessage] = []

    def send(self, message: EmailMessage) -> None:
        if self.fail:
            raise UpstreamError("Email send failed: connection refused")
        self.sent.append(message)


class FakeTextClient:
    """Canned text generation responses."""

    def __init__(self, message: Optional[str] = None, payload: Optional[Dict[str, Any]] = None, fail: bool = False):
        self.message = message
        self.payload = payload
        self.fail = fail
        self.prompts: List[str] = []

    @property
    def is_configured(self) -> bool:
        return True

    def generate_message(self, prompt: str, temperature: float = 0.7, max_tokens: int = 400) -> Optional[str]:
        self.prompts.append(prompt)
        return self.message

    def generate_json(self, prompt: str, temperature: float = 0.2) -> Dict[str, Any]:
        self.prompts.append(prompt)
        if self.fail:
            raise UpstreamError("Text generation failed: timeout")
        return self.payload


@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer()
