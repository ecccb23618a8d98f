"""Pydantic schemas for request/response validation and serialization."""

from datetime import datetime, time
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, PositiveInt, field_validator
from pydantic.alias_generators import to_camel

from .config import settings
from .utils import normalize_email


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys while keeping snake_case attributes."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MessageResponse(BaseModel):
    message: str


# ==================== Registration ====================

class _RegistrationBase(CamelModel):
    email: EmailStr = Field(..., max_length=settings.USER_EMAIL_MAX_LENGTH)
    password: str = Field(..., min_length=settings.PASSWORD_MIN_LENGTH, max_length=128)

    @field_validator('email')
    @classmethod
    def normalize(cls, v: str) -> str:
        return normalize_email(v)


class StudentRegistration(_RegistrationBase):
    role: Literal["student"]
    student_number: str = Field(..., min_length=1, max_length=20)
    student_name: str = Field(..., min_length=1, max_length=100)
    student_surname: str = Field(..., min_length=1, max_length=100)
    department_id: PositiveInt

    @field_validator('email')
    @classmethod
    def require_student_domain(cls, v: str) -> str:
        if not v.lower().endswith(settings.STUDENT_EMAIL_DOMAIN):
            raise ValueError(f"Student email must end with {settings.STUDENT_EMAIL_DOMAIN}")
        return v


class StaffRegistration(_RegistrationBase):
    role: Literal["staff"]
    staff_name: str = Field(..., min_length=1, max_length=100)
    staff_surname: str = Field(..., min_length=1, max_length=100)
    department_id: PositiveInt

    @field_validator('email')
    @classmethod
    def require_staff_domain(cls, v: str) -> str:
        if not v.lower().endswith(settings.STAFF_EMAIL_DOMAIN):
            raise ValueError(f"Staff email must end with {settings.STAFF_EMAIL_DOMAIN}")
        return v


class AdminRegistration(_RegistrationBase):
    role: Literal["admin"]
    admin_name: str = Field(..., min_length=1, max_length=100)
    admin_surname: str = Field(..., min_length=1, max_length=100)


class CommunityRegistration(_RegistrationBase):
    role: Literal["community"]
    community_name: str = Field(..., min_length=1, max_length=150)
    description: str | None = None


# One variant per role, selected by the "role" tag of the request body
RegistrationPayload = Union[StudentRegistration, StaffRegistration, AdminRegistration, CommunityRegistration]


class RegisterResponse(CamelModel):
    message: str = "User registered successfully"
    user_id: int
    # Returned directly because email delivery is not wired up
    email_token: str


# ==================== Authentication ====================

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator('email')
    @classmethod
    def normalize(cls, v: str) -> str:
        return normalize_email(v)


class LoginResponse(CamelModel):
    message: str = "Login successful"
    session_token: str
    expires_at: datetime


class VerifyEmailRequest(BaseModel):
    token: str = Field(..., min_length=1)


class CurrentUserResponse(CamelModel):
    user_id: int
    email: str
    role: str
    is_email_verified: bool
    profile_image_url: str | None = None
    profile: dict[str, Any] | None = None


# ==================== Lost & Found ====================

class ItemCreate(BaseModel):
    """Fields shared by lost and found reports, after form parsing."""
    name: str = Field(..., min_length=1, max_length=200)
    location: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    event_date: datetime | None = None


class ItemFilters(BaseModel):
    location: str | None = None
    is_resolved: bool | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    limit: int = settings.ITEMS_DEFAULT_LIMIT
    offset: int = 0


class _ItemOutBase(BaseModel):
    user_id: int | None = None
    location: str | None = None
    description: str | None = None
    is_resolved: bool
    resolved_at: datetime | None = None
    resolved_by_user_id: int | None = None
    created_at: datetime | None = None
    poster_email: str | None = None
    image_url: str | None = Field(None, serialization_alias="imageUrl")


class LostItemOut(_ItemOutBase):
    lost_item_id: int
    lost_item_name: str
    lost_date: datetime | None = None


class FoundItemOut(_ItemOutBase):
    found_item_id: int
    found_item_name: str
    found_date: datetime | None = None


class LostItemCreated(BaseModel):
    message: str = "Lost item created successfully"
    item: LostItemOut


class FoundItemCreated(BaseModel):
    message: str = "Found item created successfully"
    item: FoundItemOut


class LostItemPage(BaseModel):
    total: int
    limit: int
    offset: int
    items: list[LostItemOut]


class FoundItemPage(BaseModel):
    total: int
    limit: int
    offset: int
    items: list[FoundItemOut]


class CommentCreate(BaseModel):
    content: str | None = None


class CommentOut(BaseModel):
    comment_id: int
    user_id: int
    item_type: str
    item_id: int
    content: str
    created_at: datetime
    email: str


class ImagesResponse(BaseModel):
    images: list[str]


# ==================== Rooms ====================

class FreeRoomsResponse(BaseModel):
    count: int
    rooms: list[dict[str, Any]]


class RoomCourse(CamelModel):
    code: str
    name: str | None = None
    day_of_week: int
    start_time: time
    end_time: time


class RoomAtTimeResponse(CamelModel):
    room_code: str
    is_occupied: bool
    course: RoomCourse | None = None


class RoomScheduleResponse(CamelModel):
    room_id: int
    day: int | None = None
    schedule: list[dict[str, Any]]


class RoomOccupancyResponse(CamelModel):
    room_id: int
    day: int
    time: str
    is_occupied: bool
