"""
Pytest fixtures for testing
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from suba.auth import create_access_token, hash_password
from suba.config import Settings
from suba.infrastructure.db import models  # noqa: F401
from suba.infrastructure.db.models import User
from suba.infrastructure.db.session import Base
from suba.main import create_app

TEST_SECRET = "test-secret-key"


@pytest.fixture
def db_engine():
    """In-memory SQLite engine; one shared connection so the app threadpool sees the same data."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Session:
    """Create database session for tests"""
    SessionLocal = sessionmaker(bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        DATABASE_URL="sqlite://",
        SECRET_KEY=TEST_SECRET,
        GEMINI_API_KEY="",
        UPLOAD_DIR=str(tmp_path / "uploads"),
        AVATAR_MAX_BYTES=1024,
    )


@pytest.fixture
def app(settings, db_engine):
    return create_app(settings=settings, engine=db_engine)


@pytest.fixture
def client(app):
    """Test client for the FastAPI app"""
    return TestClient(app)


def _make_user(db_session, full_name, email, currency="NGN") -> User:
    user = User(
        full_name=full_name,
        email=email,
        password_hash=hash_password("secret123"),
        default_currency=currency,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def user(db_session) -> User:
    return _make_user(db_session, "Ada Obi", "ada@example.com")


@pytest.fixture
def other_user(db_session) -> User:
    return _make_user(db_session, "Tunde Bello", "tunde@example.com")


@pytest.fixture
def third_user(db_session) -> User:
    return _make_user(db_session, "Chidi Eze", "chidi@example.com")


@pytest.fixture
def auth_headers(settings):
    """Build ``Authorization`` headers for a user"""
    def _headers(u: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(settings, u.id, u.email)}"}
    return _headers
