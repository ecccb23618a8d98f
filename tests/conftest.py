"""
Pytest configuration and shared fixtures for testing.
Sets up a throw-away SQLite database per test and an HTTP client bound to it.
"""

import os
import tempfile

# Set TEST_MODE before any app imports to disable rate limiting
os.environ["TEST_MODE"] = "1"

# Enable metrics endpoint for testing
os.environ["ENABLE_METRICS"] = "true"

# Configure the app for tests before importing app modules
os.environ["APP_ENV"] = "test"
os.environ["SKIP_ENV_FILE"] = "1"
os.environ["DB_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SESSION_SECRET"] = "test-session-secret-with-at-least-32-characters"
os.environ["CACHE_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"  # Fast hashing in tests
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="universe-uploads-")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import update

from universe_api.db import Database
from universe_api.dependencies import get_db
from universe_api.main import app
from universe_api.models import User


@pytest_asyncio.fixture(scope="function")
async def database(tmp_path):
    """A fresh file-backed SQLite database with every table created from the ORM metadata."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'universe_test.db'}")
    await db.create_all()

    yield db

    await db.drop_all()
    await db.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(database):
    """Create a test HTTP client with the database dependency overridden."""
    app.dependency_overrides[get_db] = lambda: database
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        timeout=30.0,
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def student_payload():
    """Registration body for a student account."""
    return {
        "role": "student",
        "email": "21060001001@stu.yasar.edu.tr",
        "password": "password123",
        "studentNumber": "21060001001",
        "studentName": "Ayse",
        "studentSurname": "Yilmaz",
        "departmentId": 3,
    }


@pytest.fixture
def staff_payload():
    return {
        "role": "staff",
        "email": "mehmet.kaya@yasar.edu.tr",
        "password": "password123",
        "staffName": "Mehmet",
        "staffSurname": "Kaya",
        "departmentId": 3,
    }


@pytest.fixture
def admin_payload():
    return {
        "role": "admin",
        "email": "admin@yasar.edu.tr",
        "password": "password123",
        "adminName": "Deniz",
        "adminSurname": "Demir",
    }


@pytest.fixture
def community_payload():
    return {
        "role": "community",
        "email": "robotics.club@gmail.com",
        "password": "password123",
        "communityName": "Robotics Club",
        "description": "Builds robots",
    }


@pytest.fixture
def register_and_login(client):
    """Register an account and log it in; returns ``(user_id, auth_headers)``."""
    async def _register_and_login(payload: dict) -> tuple[int, dict]:
        registered = await client.post("/auth/register", json=payload)
        assert registered.status_code == 201, registered.text
        login = await client.post(
            "/auth/login", json={"email": payload["email"], "password": payload["password"]}
        )
        assert login.status_code == 200, login.text
        token = login.json()["sessionToken"]
        return registered.json()["userId"], {"Authorization": f"Bearer {token}"}

    return _register_and_login


@pytest_asyncio.fixture
async def auth_headers(register_and_login, student_payload):
    """Bearer headers for a logged-in student."""
    _, headers = await register_and_login(student_payload)
    return headers


@pytest.fixture
def deactivate(database):
    """Mark a user inactive directly in the database."""
    async def _deactivate(user_id: int) -> None:
        async with database.session() as session:
            async with session.begin():
                await session.execute(
                    update(User).where(User.user_id == user_id).values(is_active=False)
                )
    return _deactivate
