"""FastAPI dependencies for database access, authentication, and authorization."""

from dataclasses import dataclass

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .crud import select_active_session
from .db import Database
from .errors import Forbidden, Unauthorized
from .models import Role
from .utils import utcnow


def get_db(request: Request) -> Database:
    """Return the Database handle created by the application lifespan."""
    return request.app.state.db


# ==================== Authentication Dependencies ====================

# auto_error=False so a missing header produces our own 401 body
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    """Identity attached to an authenticated request."""
    user_id: int
    role: str  # stored value; may fall outside Role
    session_id: int
    token: str


async def get_current_session(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Database = Depends(get_db),
) -> AuthContext:
    """Resolve the bearer token to an active session. Raises 401 if it does not resolve.

    Database failures are not caught here and surface as 500.
    """
    if credentials is None or not credentials.credentials:
        raise Unauthorized("Unauthorized: Missing or invalid token")

    row = await select_active_session(db, credentials.credentials, utcnow())
    if row is None:
        raise Unauthorized("Unauthorized: Invalid or expired session")

    context = AuthContext(
        user_id=row["user_id"],
        role=row["role"],
        session_id=row["session_id"],
        token=credentials.credentials,
    )
    request.state.auth = context
    return context


# ==================== Authorization Dependencies ====================


def require_role(*allowed_roles: Role):
    """Build a dependency that admits only the given roles.

    It reads the identity stored by ``get_current_session``, so list it after
    that dependency on the route.
    """
    allowed = frozenset(role.value for role in allowed_roles)

    async def check_role(request: Request) -> AuthContext:
        context: AuthContext | None = getattr(request.state, "auth", None)
        if context is None:
            raise Unauthorized("Unauthorized")
        if context.role not in allowed:
            raise Forbidden("Forbidden: Insufficient permissions")
        return context

    return check_role
