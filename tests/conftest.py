"""
Pytest configuration - shared fixtures
"""
import sys
import os
from typing import Generator
from unittest.mock import patch

# Settings are read at import time; keep tests off the real database
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("MOCK_MIN_DELAY", "0")
os.environ.setdefault("MOCK_MAX_DELAY", "0")

# Add backend directory to sys.path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../backend"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from agentchat.core import security
from agentchat.database import Base, get_db
from agentchat.dependencies import get_broadcaster, get_response_generator
from agentchat.limiter import limiter
from agentchat.main import app
from agentchat.models.user import User
from agentchat.models.conversation import Conversation  # noqa: F401
from agentchat.models.api_config import ApiConfig  # noqa: F401
from agentchat.services.broadcaster import Broadcaster
from agentchat.services.conversation_store import ConversationStore
from agentchat.services.response_generator import (
    GenerationResult,
    ResponseGenerator,
    UserProfile,
)


class StubGenerator(ResponseGenerator):
    """Deterministic generator recording every call."""

    def __init__(self, result: GenerationResult = None, exc: Exception = None):
        self.result = result
        self.exc = exc
        self.calls = []

    async def generate(self, history, requester):
        self.calls.append((list(history), requester))
        if self.exc is not None:
            raise self.exc
        if self.result is not None:
            return self.result
        return GenerationResult.success(f"Echo: {history[-1]['content']}")


@pytest.fixture
def test_db() -> Generator[Session, None, None]:
    """Create in-memory SQLite database for testing"""
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)


def make_user(session: Session, email: str, name: str = "Test User", password: str = "Secret123") -> User:
    user = User(
        email=email,
        hashed_password=security.get_password_hash(password),
        name=name,
        role="user",
        preferences={},
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def user(test_db) -> User:
    return make_user(test_db, "alice@example.com", "Alice")


@pytest.fixture
def other_user(test_db) -> User:
    return make_user(test_db, "bob@example.com", "Bob")


@pytest.fixture
def profile(user) -> UserProfile:
    return UserProfile.from_user(user)


@pytest.fixture
def store(test_db) -> ConversationStore:
    return ConversationStore(test_db)


@pytest.fixture
def broadcaster() -> Broadcaster:
    return Broadcaster()


@pytest.fixture
def stub_generator() -> StubGenerator:
    return StubGenerator()


@pytest.fixture
def auth_headers(user):
    token = security.create_access_token({"sub": user.id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def override_get_db(test_db):
    def _get_db():
        yield test_db
    app.dependency_overrides[get_db] = _get_db
    yield
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def override_chat_services(stub_generator, broadcaster):
    app.dependency_overrides[get_response_generator] = lambda: stub_generator
    app.dependency_overrides[get_broadcaster] = lambda: broadcaster
    yield
    app.dependency_overrides.pop(get_response_generator, None)
    app.dependency_overrides.pop(get_broadcaster, None)


@pytest.fixture
def client(override_get_db, override_chat_services) -> TestClient:
    """TestClient against the in-memory database; authenticate via auth_headers."""
    limiter.reset()
    return TestClient(app)


@pytest.fixture
def live_client(override_get_db, override_chat_services):
    """TestClient with a running event loop shared by HTTP and WebSocket calls."""
    with patch("agentchat.main.init_db"):
        with TestClient(app) as test_client:
            yield test_client
