# API route definitions (HTTP layer)
# Defines ENDPOINTS

import os
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Body, Depends, File, Form, Path, Query, Request, UploadFile
from fastapi.responses import JSONResponse, Response
from slowapi import Limiter
from slowapi.util import get_remote_address

from . import rooms, services, storage
from .cache import cache_manager
from .config import settings
from .db import Database
from .dependencies import AuthContext, get_current_session, get_db
from .logger import logger
from .models import ItemKind
from .schemas import (
    CommentCreate,
    CommentOut,
    CurrentUserResponse,
    FoundItemCreated,
    FoundItemPage,
    FreeRoomsResponse,
    ImagesResponse,
    ItemCreate,
    ItemFilters,
    LoginRequest,
    LoginResponse,
    LostItemCreated,
    LostItemPage,
    MessageResponse,
    RegisterResponse,
    RegistrationPayload,
    RoomAtTimeResponse,
    RoomOccupancyResponse,
    RoomScheduleResponse,
    VerifyEmailRequest,
)

limiter = Limiter(key_func=get_remote_address)

TIME_PATTERN = r"^\d{2}:\d{2}:\d{2}$"


# Helper to conditionally apply rate limiting (skip in tests)
def conditional_limit(limit_string):
    """Apply rate limit only if not in test mode."""
    if os.getenv('TEST_MODE'):
        def decorator(func):
            return func
        return decorator
    return limiter.limit(limit_string)


router = APIRouter()


@router.get("/")
def root():
    return {"app": settings.APP_NAME, "env": settings.APP_ENV}


@router.get("/health")
async def health_check(db: Database = Depends(get_db)):
    """Health check endpoint for load balancers and monitoring.

    Returns:
        - 200 OK if the database is reachable (cache problems only degrade status)
        - 503 Service Unavailable if the database is unreachable
    """
    health_status = {
        "status": "healthy",
        "service": settings.APP_NAME,
        "environment": settings.APP_ENV,
    }

    if await db.check_connection():
        health_status["database"] = "connected"
    else:
        health_status["status"] = "unhealthy"
        health_status["database"] = "disconnected"
        return JSONResponse(status_code=503, content=health_status)

    if settings.CACHE_ENABLED:
        is_healthy = await cache_manager.health_check()
        health_status["cache"] = "connected" if is_healthy else "disconnected"
        if not is_healthy:
            health_status["status"] = "degraded"  # Room lookups still work without cache
    else:
        health_status["cache"] = "disabled"

    return health_status


@router.get("/favicon.ico", include_in_schema=False)
async def favicon():
    return Response(status_code=204)


# ============================================================================
# Authentication Endpoints
# ============================================================================

@router.post("/auth/register", response_model=RegisterResponse, status_code=201)
@conditional_limit(settings.RATE_LIMIT_AUTH)
async def register(
    request: Request,
    payload: Annotated[RegistrationPayload, Body(discriminator="role")],
    db: Database = Depends(get_db),
):
    """Register a student, staff, admin or community account.

    The body is selected by its ``role`` field and must carry that role's
    profile fields. Returns the new user id and the email verification token.

    Raises:
        400: Validation error (wrong email domain, missing profile fields, ...)
        409: Email already registered
    """
    return await services.register_user(db, payload)


@router.post("/auth/login", response_model=LoginResponse)
@conditional_limit(settings.RATE_LIMIT_AUTH)
async def login(request: Request, credentials: LoginRequest, db: Database = Depends(get_db)):
    """Authenticate with email and password and open a 7-day session.

    Raises:
        401: Invalid email or password
        403: Account is deactivated
    """
    return await services.login_user(db, credentials)


@router.post("/auth/logout", response_model=MessageResponse)
@conditional_limit(settings.RATE_LIMIT_AUTH)
async def logout(
    request: Request,
    auth: AuthContext = Depends(get_current_session),
    db: Database = Depends(get_db),
):
    await services.logout_user(db, auth.token)
    return MessageResponse(message="Logout successful")


@router.post("/auth/verify-email", response_model=MessageResponse)
@conditional_limit(settings.RATE_LIMIT_AUTH)
async def verify_email(request: Request, body: VerifyEmailRequest, db: Database = Depends(get_db)):
    await services.verify_email(db, body.token)
    return MessageResponse(message="Email verified successfully")


@router.get("/auth/me", response_model=CurrentUserResponse)
@conditional_limit(settings.RATE_LIMIT_READ)
async def get_me(
    request: Request,
    auth: AuthContext = Depends(get_current_session),
    db: Database = Depends(get_db),
):
    """Get the authenticated user's account and role profile."""
    return await services.get_current_user(db, auth.user_id)


# ============================================================================
# Room Endpoints
# ============================================================================

@router.get("/rooms/free", response_model=FreeRoomsResponse)
@conditional_limit(settings.RATE_LIMIT_READ)
async def free_rooms(
    request: Request,
    day: int = Query(..., ge=1, le=7),
    time: str = Query(..., pattern=TIME_PATTERN),
    building_name: str | None = Query(None, alias="buildingName"),
    floor_number: int | None = Query(None, alias="floorNumber", gt=0),
    auth: AuthContext = Depends(get_current_session),
    db: Database = Depends(get_db),
):
    return await rooms.get_free_rooms(db, day, time, building_name, floor_number)


@router.get("/rooms/{room_code}/at", response_model=RoomAtTimeResponse)
@conditional_limit(settings.RATE_LIMIT_READ)
async def room_at_time(
    request: Request,
    room_code: str = Path(..., min_length=1),
    day: int = Query(..., ge=1, le=7),
    time: str = Query(..., pattern=TIME_PATTERN),
    auth: AuthContext = Depends(get_current_session),
    db: Database = Depends(get_db),
):
    return await rooms.get_room_course_at_time(db, room_code, day, time)


@router.get("/rooms/{room_id}/schedule", response_model=RoomScheduleResponse)
@conditional_limit(settings.RATE_LIMIT_READ)
async def room_schedule(
    request: Request,
    room_id: int = Path(..., gt=0),
    day: int | None = Query(None, ge=1, le=7),
    auth: AuthContext = Depends(get_current_session),
    db: Database = Depends(get_db),
):
    """Schedule for one day, or the whole week when ``day`` is omitted."""
    return await rooms.get_room_schedule(db, room_id, day)


@router.get("/rooms/{room_id}/occupied", response_model=RoomOccupancyResponse)
@conditional_limit(settings.RATE_LIMIT_READ)
async def room_occupied(
    request: Request,
    room_id: int = Path(..., gt=0),
    day: int = Query(..., ge=1, le=7),
    time: str = Query(..., pattern=TIME_PATTERN),
    auth: AuthContext = Depends(get_current_session),
    db: Database = Depends(get_db),
):
    return await rooms.get_room_occupancy(db, room_id, day, time)


# ============================================================================
# Lost & Found Endpoints
# ============================================================================

async def _create_with_images(
    db: Database, kind: ItemKind, user_id: int, data: ItemCreate, images: list[UploadFile] | None
):
    image_urls = await storage.save_images(images or [])
    try:
        return await services.create_item(db, kind, user_id, data, image_urls)
    except Exception:
        # The item transaction rolled back, so nothing references the files
        storage.remove_images(image_urls)
        raise


def _item_filters(
    location: str | None = Query(None),
    is_resolved: bool | None = Query(None, alias="isResolved"),
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
    limit: int = Query(settings.ITEMS_DEFAULT_LIMIT, ge=1, le=settings.ITEMS_MAX_LIMIT),
    offset: int = Query(0, ge=0),
) -> ItemFilters:
    return ItemFilters(
        location=location,
        is_resolved=is_resolved,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )


@router.post("/lost-items", response_model=LostItemCreated, status_code=201)
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def create_lost_item(
    request: Request,
    name: str = Form(..., alias="lostItemName", min_length=1, max_length=200),
    location: str = Form(..., min_length=1, max_length=200),
    description: str | None = Form(None),
    event_date: datetime | None = Form(None, alias="lostDate"),
    images: list[UploadFile] | None = File(None),
    auth: AuthContext = Depends(get_current_session),
    db: Database = Depends(get_db),
):
    """Report a lost item with up to five images (multipart field ``images``)."""
    data = ItemCreate(name=name, location=location, description=description, event_date=event_date)
    item = await _create_with_images(db, ItemKind.LOST, auth.user_id, data, images)
    return LostItemCreated(item=item)


@router.post("/found-items", response_model=FoundItemCreated, status_code=201)
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def create_found_item(
    request: Request,
    name: str = Form(..., alias="foundItemName", min_length=1, max_length=200),
    location: str = Form(..., min_length=1, max_length=200),
    description: str | None = Form(None),
    event_date: datetime | None = Form(None, alias="foundDate"),
    images: list[UploadFile] | None = File(None),
    auth: AuthContext = Depends(get_current_session),
    db: Database = Depends(get_db),
):
    """Report a found item with up to five images (multipart field ``images``)."""
    data = ItemCreate(name=name, location=location, description=description, event_date=event_date)
    item = await _create_with_images(db, ItemKind.FOUND, auth.user_id, data, images)
    return FoundItemCreated(item=item)


@router.get("/lost-items", response_model=LostItemPage)
@conditional_limit(settings.RATE_LIMIT_READ)
async def list_lost_items(
    request: Request,
    filters: ItemFilters = Depends(_item_filters),
    auth: AuthContext = Depends(get_current_session),
    db: Database = Depends(get_db),
):
    items, total = await services.list_items(db, ItemKind.LOST, filters)
    return LostItemPage(total=total, limit=filters.limit, offset=filters.offset, items=items)


@router.get("/found-items", response_model=FoundItemPage)
@conditional_limit(settings.RATE_LIMIT_READ)
async def list_found_items(
    request: Request,
    filters: ItemFilters = Depends(_item_filters),
    auth: AuthContext = Depends(get_current_session),
    db: Database = Depends(get_db),
):
    items, total = await services.list_items(db, ItemKind.FOUND, filters)
    return FoundItemPage(total=total, limit=filters.limit, offset=filters.offset, items=items)


@router.patch("/lost-items/{item_id}/resolve", response_model=MessageResponse)
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def resolve_lost_item(
    request: Request,
    item_id: int = Path(..., gt=0),
    auth: AuthContext = Depends(get_current_session),
    db: Database = Depends(get_db),
):
    """Mark a lost item as resolved.

    Raises:
        400: Item is already resolved
        404: Lost item not found
    """
    await services.resolve_item(db, ItemKind.LOST, item_id, auth.user_id)
    return MessageResponse(message="Lost item resolved successfully")


@router.patch("/found-items/{item_id}/resolve", response_model=MessageResponse)
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def resolve_found_item(
    request: Request,
    item_id: int = Path(..., gt=0),
    auth: AuthContext = Depends(get_current_session),
    db: Database = Depends(get_db),
):
    await services.resolve_item(db, ItemKind.FOUND, item_id, auth.user_id)
    return MessageResponse(message="Found item resolved successfully")


# ============================================================================
# Comment & Image Endpoints
# ============================================================================

@router.post("/{item_type}/{item_id}/comments", response_model=MessageResponse, status_code=201)
@conditional_limit(settings.RATE_LIMIT_WRITE)
async def add_comment(
    request: Request,
    body: CommentCreate,
    item_type: ItemKind = Path(...),
    item_id: int = Path(..., gt=0),
    auth: AuthContext = Depends(get_current_session),
    db: Database = Depends(get_db),
):
    await services.add_comment(db, auth.user_id, item_type, item_id, body)
    logger.info(f"Comment added on {item_type.value} item id={item_id} by user id={auth.user_id}")
    return MessageResponse(message="Comment added successfully")


@router.get("/{item_type}/{item_id}/comments", response_model=list[CommentOut])
@conditional_limit(settings.RATE_LIMIT_READ)
async def list_comments(
    request: Request,
    item_type: ItemKind = Path(...),
    item_id: int = Path(..., gt=0),
    auth: AuthContext = Depends(get_current_session),
    db: Database = Depends(get_db),
):
    return await services.get_comments(db, item_type, item_id)


@router.get("/{item_type}/{item_id}/images", response_model=ImagesResponse)
@conditional_limit(settings.RATE_LIMIT_READ)
async def list_images(
    request: Request,
    item_type: ItemKind = Path(...),
    item_id: int = Path(..., gt=0),
    auth: AuthContext = Depends(get_current_session),
    db: Database = Depends(get_db),
):
    return ImagesResponse(images=await services.get_item_images(db, item_type, item_id))
