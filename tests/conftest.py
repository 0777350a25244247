"""Pytest configuration and fixtures."""

import os
from urllib.parse import parse_qs

# The application engine is created at import time; keep it off PostgreSQL
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ALLOWED_DOMAIN"] = "blockful.io"

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.config import settings
from app.db.base import Base
from app.db.session import get_db
from app.api.dependencies import get_blob_storage, get_inflight_registry, get_oauth_client
from app.models.user import User
from app.services.identity import GoogleOAuthClient
from app.services.reconciler import InFlightRegistry
from app.services.user_service import UserService
from app.storage.blob_storage import BlobStorage


# In-memory SQLite for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)

# Access token -> Google userinfo response
GOOGLE_PROFILES = {
    "alice-token": {
        "id": "g-alice",
        "email": "alice@blockful.io",
        "name": "Alice",
        "picture": "https://example.com/alice.png",
    },
    "bob-token": {
        "id": "g-bob",
        "email": "bob@blockful.io",
        "name": "Bob",
        "picture": None,
    },
    "outsider-token": {
        "id": "g-eve",
        "email": "eve@example.com",
        "name": "Eve",
    },
}

AUTH_CODES = {"good-code": "alice-token"}
REFRESH_TOKENS = {"good-refresh": "alice-token"}


def google_handler(request: httpx.Request) -> httpx.Response:
    """Fake Google OAuth endpoints."""
    if request.url.path.endswith("/userinfo"):
        token = request.headers.get("Authorization", "").removeprefix("Bearer ")
        profile = GOOGLE_PROFILES.get(token)
        if profile is None:
            return httpx.Response(401, json={"error": "invalid_token"})
        return httpx.Response(200, json=profile)

    if request.url.path == "/token":
        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        if form.get("grant_type") == "authorization_code" and form.get("code") in AUTH_CODES:
            return httpx.Response(200, json={
                "access_token": AUTH_CODES[form["code"]],
                "refresh_token": "good-refresh",
                "expires_in": 3600,
                "token_type": "Bearer",
            })
        if form.get("grant_type") == "refresh_token" and form.get("refresh_token") in REFRESH_TOKENS:
            return httpx.Response(200, json={
                "access_token": REFRESH_TOKENS[form["refresh_token"]],
                "expires_in": 3600,
                "token_type": "Bearer",
            })
        return httpx.Response(400, json={"error": "invalid_grant", "error_description": "Bad credentials"})

    return httpx.Response(404)


class MockBlobStorage(BlobStorage):
    """Mock blob storage for testing."""

    def __init__(self):
        self._storage = {}

    def upload_file(self, key: str, file_obj, content_type: str) -> str:
        self._storage[key] = file_obj.read()
        return key

    def download_file(self, key: str):
        return self._storage.get(key)

    def delete(self, key: str) -> bool:
        if key in self._storage:
            del self._storage[key]
            return True
        return False


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def mock_blob_storage():
    """Create a mock blob storage for testing."""
    return MockBlobStorage()


@pytest.fixture
def oauth_client():
    """Google OAuth client talking to the fake endpoints."""
    return GoogleOAuthClient(settings, transport=httpx.MockTransport(google_handler))


@pytest.fixture
def google_refresh_tokens():
    """Refresh tokens the fake Google token endpoint accepts."""
    return REFRESH_TOKENS


@pytest.fixture
def registry():
    """In-flight registry that forgets finished reconciliations immediately."""
    return InFlightRegistry(grace_seconds=0)


@pytest.fixture
def user_service(db_session):
    return UserService(db_session)


@pytest.fixture(scope="function")
def client(db_session, mock_blob_storage, oauth_client, registry):
    """Create a test client with overridden dependencies."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_storage] = lambda: mock_blob_storage
    app.dependency_overrides[get_oauth_client] = lambda: oauth_client
    app.dependency_overrides[get_inflight_registry] = lambda: registry

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def alice_headers():
    """Authorization headers for an allowed Google account."""
    return {"Authorization": "Bearer alice-token"}


@pytest.fixture
def bob_headers():
    """Authorization headers for a second allowed Google account."""
    return {"Authorization": "Bearer bob-token"}


@pytest.fixture
def alice(client, alice_headers):
    """Provision Alice through her first authenticated request."""
    response = client.get("/auth/me", headers=alice_headers)
    assert response.status_code == 200
    return response.json()["user"]


@pytest.fixture
def inactive_user(db_session):
    """A pre-registered, deactivated account matching Alice's Google profile."""
    user = User(email="alice@blockful.io", google_id="g-alice", name="Alice", is_active=False)
    db_session.add(user)
    db_session.commit()
    return user
