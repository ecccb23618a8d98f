"""Business logic layer for accounts, sessions, and the lost & found board.

Service functions validate state, call the CRUD layer, and raise the typed
errors from ``errors`` that the HTTP layer renders.
"""

from typing import assert_never

from .auth import (
    email_token_expiry,
    generate_token,
    hash_password,
    session_expiry,
    verify_password,
)
from .config import settings
from . import crud
from .db import Database
from .errors import Conflict, Forbidden, NotFound, Unauthorized, ValidationError
from .logger import logger
from .models import Admin, Community, ItemKind, Role, Staff, Student
from .schemas import (
    AdminRegistration,
    CommentCreate,
    CommentOut,
    CommunityRegistration,
    CurrentUserResponse,
    FoundItemOut,
    ItemCreate,
    ItemFilters,
    LoginRequest,
    LoginResponse,
    LostItemOut,
    RegistrationPayload,
    RegisterResponse,
    StaffRegistration,
    StudentRegistration,
)
from .utils import ensure_utc, utcnow

# ==================== Helper Functions ====================


def _build_profile(data: RegistrationPayload) -> crud.ProfileRow:
    """Create the role-profile row for a registration payload (user_id is set later)."""
    match data:
        case StudentRegistration():
            return Student(
                student_number=data.student_number,
                student_name=data.student_name,
                student_surname=data.student_surname,
                department_id=data.department_id,
            )
        case StaffRegistration():
            return Staff(
                staff_name=data.staff_name,
                staff_surname=data.staff_surname,
                department_id=data.department_id,
            )
        case AdminRegistration():
            return Admin(admin_name=data.admin_name, admin_surname=data.admin_surname)
        case CommunityRegistration():
            return Community(
                community_name=data.community_name,
                description=data.description,
                contact_email=data.email,
            )
        case _:
            assert_never(data)


def _convert_to_item_out(kind: ItemKind, item, poster_email: str | None = None, image_url: str | None = None):
    """Render an ORM item with its table's column names (lost_item_id, found_date, ...)."""
    common = dict(
        user_id=item.user_id,
        location=item.location,
        description=item.description,
        is_resolved=item.is_resolved,
        resolved_at=item.resolved_at,
        resolved_by_user_id=item.resolved_by_user_id,
        created_at=item.created_at,
        poster_email=poster_email,
        image_url=image_url,
    )
    if kind is ItemKind.LOST:
        return LostItemOut(lost_item_id=item.id, lost_item_name=item.name, lost_date=item.event_date, **common)
    return FoundItemOut(found_item_id=item.id, found_item_name=item.name, found_date=item.event_date, **common)


def _normalize_pagination(limit: int, offset: int) -> tuple[int, int]:
    if limit < 1:
        limit = settings.ITEMS_DEFAULT_LIMIT
    if limit > settings.ITEMS_MAX_LIMIT:
        limit = settings.ITEMS_MAX_LIMIT
    return limit, max(offset, 0)


# ==================== Accounts ====================


async def register_user(db: Database, data: RegistrationPayload) -> RegisterResponse:
    """Create an account with its role profile and a pending email verification token."""
    role = Role(data.role)
    logger.info(f"Registering new {role.value}: {data.email}")

    email_token = generate_token()
    try:
        user_id = await crud.insert_account(
            db,
            email=data.email,
            password_hash=hash_password(data.password),
            role=role,
            profile=_build_profile(data),
            email_token=email_token,
            token_expires_at=email_token_expiry(),
        )
    except ValueError as e:
        logger.warning(f"Registration failed - email already exists: {data.email}")
        raise Conflict("Email already registered") from e

    logger.info(f"User registered successfully: id={user_id} role={role.value}")
    return RegisterResponse(user_id=user_id, email_token=email_token)


async def login_user(db: Database, data: LoginRequest) -> LoginResponse:
    """Check credentials and open a new session."""
    logger.info(f"Login attempt for user: {data.email}")

    user = await crud.select_user_by_email(db, data.email)
    if user is None or not verify_password(data.password, user.password_hash):
        logger.warning(f"Login failed - invalid credentials for: {data.email}")
        raise Unauthorized("Invalid email or password")

    if not user.is_active:
        logger.warning(f"Login failed - account deactivated: {data.email}")
        raise Forbidden("Account is deactivated")

    session_token = generate_token()
    expires_at = session_expiry()
    await crud.insert_session(db, user.user_id, session_token, expires_at)

    logger.info(f"Login successful for user id={user.user_id}")
    return LoginResponse(session_token=session_token, expires_at=expires_at)


async def logout_user(db: Database, session_token: str) -> None:
    """Delete the session. Logging out an unknown token is not an error."""
    removed = await crud.delete_session(db, session_token)
    logger.info(f"Logout: {removed} session(s) removed")


async def verify_email(db: Database, token: str) -> None:
    record = await crud.select_email_token(db, token)
    if record is None:
        raise NotFound("Invalid verification token")
    if record.is_used:
        raise ValidationError("Token already used")
    if ensure_utc(record.expires_at) < utcnow():
        raise ValidationError("Token expired")

    if not await crud.consume_email_token(db, record.email_token_id, record.user_id):
        # Another request consumed it after the read above
        raise ValidationError("Token already used")
    logger.info(f"Email verified for user id={record.user_id}")


async def get_current_user(db: Database, user_id: int) -> CurrentUserResponse:
    """Assemble the account and role profile of an active user."""
    user = await crud.select_active_user(db, user_id)
    if user is None:
        raise NotFound("User not found")

    try:
        role = Role(user.role)
    except ValueError:
        role = None

    profile = await crud.select_profile(db, user.user_id, role) if role is not None else None
    if profile is None:
        logger.warning(f"No profile row for user id={user.user_id} role={user.role}")

    return CurrentUserResponse(
        user_id=user.user_id,
        email=user.email,
        role=user.role,
        is_email_verified=user.is_email_verified,
        profile_image_url=user.profile_image_url or None,
        profile=profile,
    )


# ==================== Lost & Found ====================


async def create_item(db: Database, kind: ItemKind, user_id: int, data: ItemCreate, image_urls: list[str]):
    if data.event_date is None:
        data = data.model_copy(update={"event_date": utcnow()})
    item = await crud.insert_item(db, kind, user_id, data, image_urls)
    logger.info(f"{kind.value.capitalize()} item created: id={item.id} images={len(image_urls)} by user id={user_id}")
    return _convert_to_item_out(kind, item)


async def list_items(db: Database, kind: ItemKind, filters: ItemFilters) -> tuple[list, int]:
    limit, offset = _normalize_pagination(filters.limit, filters.offset)
    filters = filters.model_copy(update={"limit": limit, "offset": offset})
    rows, total = await crud.list_items(db, kind, filters)
    items = [
        _convert_to_item_out(kind, item, poster_email=email, image_url=thumbnail)
        for item, email, thumbnail in rows
    ]
    return items, total


async def resolve_item(db: Database, kind: ItemKind, item_id: int, user_id: int) -> None:
    """Mark an item resolved by ``user_id``. Resolution happens at most once.

    Any authenticated user may resolve any item; there is no ownership check.
    """
    if await crud.mark_item_resolved(db, kind, item_id, user_id, utcnow()):
        logger.info(f"{kind.value.capitalize()} item resolved: id={item_id} by user id={user_id}")
        return

    if await crud.select_item(db, kind, item_id) is None:
        raise NotFound(f"{kind.value.capitalize()} item not found")
    raise Conflict("Item is already resolved", status_code=400)


async def add_comment(db: Database, user_id: int, kind: ItemKind, item_id: int, data: CommentCreate) -> None:
    content = data.content or ""
    if not content.strip():
        raise ValidationError("Comment content is required")
    await crud.insert_comment(db, user_id, kind, item_id, content)


async def get_comments(db: Database, kind: ItemKind, item_id: int) -> list[CommentOut]:
    rows = await crud.select_comments(db, kind, item_id)
    return [CommentOut(**row) for row in rows]


async def get_item_images(db: Database, kind: ItemKind, item_id: int) -> list[str]:
    return await crud.select_item_images(db, kind, item_id)
