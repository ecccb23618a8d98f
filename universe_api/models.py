"""SQLAlchemy ORM models for database tables."""

import enum

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.sql import func

from .config import settings
from .db import Base


class Role(str, enum.Enum):
    STUDENT = "student"
    STAFF = "staff"
    ADMIN = "admin"
    COMMUNITY = "community"


class ItemKind(str, enum.Enum):
    LOST = "lost"
    FOUND = "found"


# ==================== Accounts ====================

class User(Base):
    """Account row shared by every role; profile data lives in the role tables."""

    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True)
    email = Column(String(settings.USER_EMAIL_MAX_LENGTH), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False)
    is_email_verified = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    profile_image_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Student(Base):
    __tablename__ = "students"

    student_id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, unique=True)
    student_number = Column(String(20), nullable=False, unique=True)
    student_name = Column(String(100), nullable=False)
    student_surname = Column(String(100), nullable=False)
    department_id = Column(Integer, nullable=False)
    current_semester = Column(Integer, nullable=True)
    phone_number = Column(String(30), nullable=True)
    birth_date = Column(Date, nullable=True)


class Office(Base):
    __tablename__ = "offices"

    office_id = Column(Integer, primary_key=True)
    office_name = Column(String(100), nullable=False)
    office_code = Column(String(20), nullable=False)
    room_id = Column(Integer, nullable=True)


class Staff(Base):
    __tablename__ = "staff"

    staff_id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, unique=True)
    staff_name = Column(String(100), nullable=False)
    staff_surname = Column(String(100), nullable=False)
    department_id = Column(Integer, nullable=False)
    staff_title = Column(String(50), nullable=True)
    phone_number = Column(String(30), nullable=True)
    office_id = Column(Integer, ForeignKey("offices.office_id"), nullable=True)
    office_hours = Column(String(200), nullable=True)


class Admin(Base):
    __tablename__ = "admins"

    admin_id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, unique=True)
    admin_name = Column(String(100), nullable=False)
    admin_surname = Column(String(100), nullable=False)


class Community(Base):
    __tablename__ = "communities"

    community_id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, unique=True)
    community_name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    contact_email = Column(String(settings.USER_EMAIL_MAX_LENGTH), nullable=True)


class UserSession(Base):
    """Opaque bearer session. Deleted on logout, never updated."""

    __tablename__ = "user_sessions"

    session_id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    session_token = Column(String(64), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class EmailVerificationToken(Base):
    __tablename__ = "email_verification_tokens"

    email_token_id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    token = Column(String(64), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    is_used = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


# ==================== Lost & Found ====================
# Lost and found tables keep their own column names; the Python attribute
# names are shared so services can treat both kinds alike.

class LostItem(Base):
    __tablename__ = "lost_items"

    id = Column("lost_item_id", Integer, primary_key=True)
    name = Column("lost_item_name", String(200), nullable=False)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    location = Column(String(200), nullable=True)
    description = Column(Text, nullable=True)
    event_date = Column("lost_date", DateTime(timezone=True), nullable=True)
    is_resolved = Column(Boolean, default=False, nullable=False)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    resolved_by_user_id = Column(Integer, ForeignKey("users.user_id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class FoundItem(Base):
    __tablename__ = "found_items"

    id = Column("found_item_id", Integer, primary_key=True)
    name = Column("found_item_name", String(200), nullable=False)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    location = Column(String(200), nullable=True)
    description = Column(Text, nullable=True)
    event_date = Column("found_date", DateTime(timezone=True), nullable=True)
    is_resolved = Column(Boolean, default=False, nullable=False)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    resolved_by_user_id = Column(Integer, ForeignKey("users.user_id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class LostItemImage(Base):
    __tablename__ = "lost_item_images"

    image_id = Column(Integer, primary_key=True)
    item_id = Column("lost_item_id", Integer, ForeignKey("lost_items.lost_item_id", ondelete="CASCADE"), nullable=False, index=True)
    image_url = Column(String(500), nullable=False)


class FoundItemImage(Base):
    __tablename__ = "found_item_images"

    image_id = Column(Integer, primary_key=True)
    item_id = Column("found_item_id", Integer, ForeignKey("found_items.found_item_id", ondelete="CASCADE"), nullable=False, index=True)
    image_url = Column(String(500), nullable=False)


class ItemComment(Base):
    __tablename__ = "item_comments"

    comment_id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    item_type = Column(String(10), nullable=False)
    item_id = Column(Integer, nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


ITEM_MODELS = {
    ItemKind.LOST: (LostItem, LostItemImage),
    ItemKind.FOUND: (FoundItem, FoundItemImage),
}
