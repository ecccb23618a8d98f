"""Room availability lookups.

The scheduling logic lives in PostgreSQL functions (``fn_free_rooms_at_time``,
``fn_room_course_at_time``, ``fn_room_schedule``, ``fn_room_is_occupied``).
This module only coerces parameters, calls them, and reshapes the rows.
"""

from datetime import time

from sqlalchemy import text

from .cache import (
    ROOMS_AT_PREFIX,
    ROOMS_FREE_PREFIX,
    ROOMS_OCCUPIED_PREFIX,
    ROOMS_SCHEDULE_PREFIX,
    cache_manager,
    make_cache_key,
)
from .config import settings
from .db import Database
from .errors import ValidationError
from .logger import logger
from .schemas import (
    FreeRoomsResponse,
    RoomAtTimeResponse,
    RoomCourse,
    RoomOccupancyResponse,
    RoomScheduleResponse,
)

FREE_ROOMS_SQL = text(
    "SELECT * FROM fn_free_rooms_at_time(:day, CAST(:at_time AS time), :building_name, :floor_number)"
)
ROOM_COURSE_AT_TIME_SQL = text(
    "SELECT * FROM fn_room_course_at_time(:room_code, :day, CAST(:at_time AS time))"
)
ROOM_SCHEDULE_SQL = text("SELECT * FROM fn_room_schedule(:room_id, :day)")
ROOM_IS_OCCUPIED_SQL = text(
    "SELECT fn_room_is_occupied(:room_id, :day, CAST(:at_time AS time)) AS is_occupied"
)


def parse_time(value: str) -> time:
    """Parse an ``HH:MM:SS`` string, rejecting out-of-range values like 25:00:00."""
    try:
        return time.fromisoformat(value)
    except ValueError as e:
        raise ValidationError(
            "Query validation error",
            details=[{"path": "time", "message": "Time must be a valid HH:MM:SS value"}],
        ) from e


# ==================== Database Function Calls ====================


async def select_free_rooms(
    db: Database, day: int, at_time: time, building_name: str | None, floor_number: int | None
) -> list[dict]:
    return await db.fetch_all(FREE_ROOMS_SQL, {
        "day": day,
        "at_time": at_time,
        "building_name": building_name or None,
        "floor_number": floor_number or None,
    })


async def select_room_course_at_time(db: Database, room_code: str, day: int, at_time: time) -> dict | None:
    return await db.fetch_one(ROOM_COURSE_AT_TIME_SQL, {
        "room_code": room_code, "day": day, "at_time": at_time,
    })


async def select_room_schedule(db: Database, room_id: int, day: int | None) -> list[dict]:
    return await db.fetch_all(ROOM_SCHEDULE_SQL, {"room_id": room_id, "day": day})


async def select_room_is_occupied(db: Database, room_id: int, day: int, at_time: time) -> bool:
    row = await db.fetch_one(ROOM_IS_OCCUPIED_SQL, {
        "room_id": room_id, "day": day, "at_time": at_time,
    })
    return bool(row and row.get("is_occupied"))


# ==================== Service Functions ====================


async def _cached(key: str):
    if not settings.CACHE_ENABLED:
        return None
    return await cache_manager.get(key)


async def _store(key: str, response) -> None:
    if settings.CACHE_ENABLED:
        await cache_manager.set(key, response.model_dump(mode="json"), ttl=settings.ROOM_CACHE_TTL)


async def get_free_rooms(
    db: Database, day: int, at: str, building_name: str | None = None, floor_number: int | None = None
) -> FreeRoomsResponse:
    at_time = parse_time(at)
    key = make_cache_key(ROOMS_FREE_PREFIX, day, at_time.isoformat(), building_name, floor_number)
    if (cached := await _cached(key)) is not None:
        return FreeRoomsResponse.model_validate(cached)

    rooms = await select_free_rooms(db, day, at_time, building_name, floor_number)
    logger.debug(f"Free rooms day={day} time={at}: {len(rooms)} found")
    response = FreeRoomsResponse(count=len(rooms), rooms=rooms)
    await _store(key, response)
    return response


async def get_room_course_at_time(db: Database, room_code: str, day: int, at: str) -> RoomAtTimeResponse:
    at_time = parse_time(at)
    key = make_cache_key(ROOMS_AT_PREFIX, room_code, day, at_time.isoformat())
    if (cached := await _cached(key)) is not None:
        return RoomAtTimeResponse.model_validate(cached)

    row = await select_room_course_at_time(db, room_code, day, at_time)
    if row is None:
        response = RoomAtTimeResponse(room_code=room_code, is_occupied=False, course=None)
    elif row.get("course_code") is None:
        response = RoomAtTimeResponse(room_code=row["room_code"], is_occupied=False, course=None)
    else:
        response = RoomAtTimeResponse(
            room_code=row["room_code"],
            is_occupied=True,
            course=RoomCourse(
                code=row["course_code"],
                name=row.get("course_name"),
                day_of_week=row["day_of_week"],
                start_time=row["start_time"],
                end_time=row["end_time"],
            ),
        )
    await _store(key, response)
    return response


async def get_room_schedule(db: Database, room_id: int, day: int | None = None) -> RoomScheduleResponse:
    key = make_cache_key(ROOMS_SCHEDULE_PREFIX, room_id, day)
    if (cached := await _cached(key)) is not None:
        return RoomScheduleResponse.model_validate(cached)

    schedule = await select_room_schedule(db, room_id, day)
    response = RoomScheduleResponse(room_id=room_id, day=day, schedule=schedule)
    await _store(key, response)
    return response


async def get_room_occupancy(db: Database, room_id: int, day: int, at: str) -> RoomOccupancyResponse:
    at_time = parse_time(at)
    key = make_cache_key(ROOMS_OCCUPIED_PREFIX, room_id, day, at_time.isoformat())
    if (cached := await _cached(key)) is not None:
        return RoomOccupancyResponse.model_validate(cached)

    occupied = await select_room_is_occupied(db, room_id, day, at_time)
    response = RoomOccupancyResponse(room_id=room_id, day=day, time=at, is_occupied=occupied)
    await _store(key, response)
    return response
