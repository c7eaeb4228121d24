import os
import sys
from pathlib import Path

import pytest
from httpx import AsyncClient, ASGITransport

# Test environment (applied before news_api is imported)
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("CORS_ORIGINS", "*")
os.environ.setdefault("LOG_LEVEL", "WARNING")

# make 'news_api' importable without an editable install
backend_path = Path(__file__).resolve().parents[1]
if str(backend_path) not in sys.path:
    sys.path.insert(0, str(backend_path))

from news_api.auth.service import create_access_token
from news_api.database import Database
from news_api.database import get_db as real_get_db
from news_api.main import app
from news_api.users import service as user_service
from news_api.users.models import User, UserRole
from news_api.users.schema import UserCreate

DEFAULT_PASSWORD = "secret123"


@pytest.fixture()
async def database():
    # a fresh in-memory database per test
    test_db = Database("sqlite+aiosqlite:///:memory:")
    await test_db.create_all()
    yield test_db
    await test_db.dispose()


@pytest.fixture()
async def db(database):
    async with database.session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
async def override_db(database):
    async def _get_db():
        async with database.session_factory() as session:
            yield session
    app.state.db = database
    app.dependency_overrides[real_get_db] = _get_db
    yield
    app.dependency_overrides.clear()


@pytest.fixture()
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def make_user(database):
    """Factory: insert a user straight through the service layer and return the ORM row."""
    async def _make(
        username: str,
        role: UserRole = UserRole.USER,
        *,
        email: str = None,
        password: str = DEFAULT_PASSWORD,
        is_active: bool = True,
    ) -> User:
        async with database.session_factory() as session:
            data = UserCreate(username=username, email=email or f"{username}@example.com", password=password)
            created = await user_service.create_user(session, data, role=role)
            if not is_active:
                await user_service.update_user(session, created["id"], {"is_active": False})
            return await session.get(User, created["id"])
    return _make


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture()
async def admin(make_user):
    return await make_user("admin", UserRole.ADMIN)


@pytest.fixture()
async def editor(make_user):
    return await make_user("editor", UserRole.EDITOR)


@pytest.fixture()
async def alice(make_user):
    return await make_user("alice")


@pytest.fixture()
async def bob(make_user):
    return await make_user("bob")


@pytest.fixture()
def headers():
    return auth_headers
