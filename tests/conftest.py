"""
Pytest configuration and fixtures
"""
from ipaddress import ip_address

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.pool import NullPool

from auth.tokens import TokenService
from config.context import AppContext
from config.settings import Settings
from main import create_app, get_client_address
from models.session import build_engine, build_session_factory, create_schema

TEST_JWT_SECRET = "a-very-secure-and-secret-test-key-for-hs256"
CLIENT_IP = "203.0.113.7"


class RecordingDispatcher:
    """Stands in for NotificationDispatcher; keeps every message it is handed"""

    def __init__(self):
        self.messages = []

    def dispatch(self, message):
        self.messages.append(message)

    async def drain(self):
        pass


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        jwt_secret=TEST_JWT_SECRET,
        smtp_host="localhost",
        smtp_username="mailer",
        smtp_password="mailer-password",
        mail_from="Forms <noreply@forms.test>",
    )


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def context(settings, dispatcher) -> AppContext:
    engine = build_engine(settings.database_url, poolclass=NullPool)
    return AppContext(
        settings=settings,
        engine=engine,
        session_factory=build_session_factory(engine),
        tokens=TokenService(settings.jwt_secret),
        dispatcher=dispatcher,
    )


@pytest.fixture
def client(context):
    app = create_app(context)
    app.dependency_overrides[get_client_address] = lambda: ip_address(CLIENT_IP)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def register(client):
    """Sign up and log in a user; returns the Authorization header for them"""
    def _register(email: str, password: str = "strongPassword123") -> dict:
        response = client.post("/api/auth/signup", json={"email": email, "password": password})
        assert response.status_code == 201
        response = client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200
        return {"Authorization": f"Bearer {response.json()['token']}"}
    return _register


@pytest_asyncio.fixture
async def db(tmp_path):
    """Async session over a fresh SQLite schema"""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}", poolclass=NullPool)
    await create_schema(engine)
    session_factory = build_session_factory(engine)
    async with session_factory() as session:
        yield session
    await engine.dispose()
