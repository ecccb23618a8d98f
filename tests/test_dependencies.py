"""
Tests for the authentication and role authorization dependencies.
"""

from types import SimpleNamespace

import pytest
import pytest_asyncio
from fastapi import Depends, FastAPI
from httpx import ASGITransport, AsyncClient

from universe_api.db import Database
from universe_api.dependencies import AuthContext, get_current_session, get_db, require_role
from universe_api.errors import Forbidden, Unauthorized, register_exception_handlers
from universe_api.main import app
from universe_api.models import Role


def request_with(auth=None):
    state = SimpleNamespace(auth=auth) if auth is not None else SimpleNamespace()
    return SimpleNamespace(state=state)


@pytest.mark.asyncio
class TestRequireRole:
    """Test the role guard in isolation."""

    async def test_allowed_role(self):
        context = AuthContext(user_id=1, role="staff", session_id=3, token="x")
        check = require_role(Role.STAFF, Role.ADMIN)

        assert await check(request_with(context)) is context

    async def test_disallowed_role(self):
        context = AuthContext(user_id=1, role="student", session_id=3, token="x")
        check = require_role(Role.ADMIN)

        with pytest.raises(Forbidden) as exc_info:
            await check(request_with(context))

        assert exc_info.value.message == "Forbidden: Insufficient permissions"

    async def test_unmapped_role_is_forbidden(self):
        context = AuthContext(user_id=1, role="moderator", session_id=3, token="x")
        check = require_role(Role.STUDENT, Role.STAFF, Role.ADMIN, Role.COMMUNITY)

        with pytest.raises(Forbidden):
            await check(request_with(context))

    async def test_missing_auth_context(self):
        check = require_role(Role.ADMIN)

        with pytest.raises(Unauthorized) as exc_info:
            await check(request_with())

        assert exc_info.value.message == "Unauthorized"


@pytest_asyncio.fixture
async def guarded_client(database):
    """A small app with an admin-only route behind both guards."""
    guarded = FastAPI()
    register_exception_handlers(guarded)

    @guarded.get("/admin-only", dependencies=[Depends(get_current_session), Depends(require_role(Role.ADMIN))])
    async def admin_only():
        return {"ok": True}

    # Registration and login go through the real app on the same database
    app.dependency_overrides[get_db] = lambda: database
    guarded.dependency_overrides[get_db] = lambda: database
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as main_client, \
            AsyncClient(transport=ASGITransport(app=guarded), base_url="http://test") as guarded_ac:
        yield main_client, guarded_ac
    app.dependency_overrides.clear()


async def login_as(main_client, payload) -> dict:
    await main_client.post("/auth/register", json=payload)
    login = await main_client.post("/auth/login", json={"email": payload["email"], "password": payload["password"]})
    return {"Authorization": f"Bearer {login.json()['sessionToken']}"}


@pytest.mark.asyncio
async def test_admin_route_allows_admin(guarded_client, admin_payload):
    """Test an admin session passes both guards."""
    main_client, guarded = guarded_client
    headers = await login_as(main_client, admin_payload)

    response = await guarded.get("/admin-only", headers=headers)

    assert response.status_code == 200
    assert response.json() == {"ok": True}


@pytest.mark.asyncio
async def test_admin_route_forbids_student(guarded_client, student_payload):
    """Test a valid non-admin session is forbidden, not unauthorized."""
    main_client, guarded = guarded_client
    headers = await login_as(main_client, student_payload)

    response = await guarded.get("/admin-only", headers=headers)

    assert response.status_code == 403
    assert response.json() == {"error": "Forbidden: Insufficient permissions"}


@pytest.mark.asyncio
async def test_admin_route_without_session(guarded_client):
    """Test the session guard runs first and rejects missing tokens."""
    _, guarded = guarded_client

    response = await guarded.get("/admin-only")

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized: Missing or invalid token"}


@pytest.mark.asyncio
async def test_database_failure_is_not_a_401(tmp_path):
    """Test a session lookup that cannot reach the database yields 500, not 401."""
    broken = Database(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'nowhere.db'}")
    app.dependency_overrides[get_db] = lambda: broken
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app, raise_app_exceptions=False), base_url="http://test"
        ) as ac:
            response = await ac.get("/auth/me", headers={"Authorization": "Bearer " + "ab" * 32})
    finally:
        app.dependency_overrides.clear()
        await broken.dispose()

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


@pytest.mark.asyncio
async def test_health_reports_database_down(tmp_path):
    """Test /health returns 503 when the database is unreachable."""
    broken = Database(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'nowhere.db'}")
    app.dependency_overrides[get_db] = lambda: broken
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.get("/health")
    finally:
        app.dependency_overrides.clear()
        await broken.dispose()

    assert response.status_code == 503
    assert response.json()["status"] == "unhealthy"
    assert response.json()["database"] == "disconnected"
