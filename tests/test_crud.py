"""
Tests for the CRUD layer against a real (SQLite) database.
"""

from datetime import datetime, timedelta, UTC

import pytest
from sqlalchemy import func, select

from universe_api import crud
from universe_api.auth import generate_token
from universe_api.models import (
    EmailVerificationToken,
    ItemKind,
    LostItemImage,
    Office,
    Role,
    Staff,
    Student,
    User,
)
from universe_api.schemas import ItemCreate, ItemFilters
from universe_api.utils import utcnow


def make_student(number: str = "21060001001") -> Student:
    return Student(student_number=number, student_name="Ayse", student_surname="Yilmaz", department_id=3)


async def add_account(database, email="21060001001@stu.yasar.edu.tr", profile=None, role=Role.STUDENT,
                      email_token=None) -> int:
    return await crud.insert_account(
        database,
        email=email,
        password_hash="hash",
        role=role,
        profile=profile or make_student(),
        email_token=email_token or generate_token(),
        token_expires_at=utcnow() + timedelta(hours=24),
    )


async def count(database, model) -> int:
    async with database.session() as session:
        return (await session.execute(select(func.count()).select_from(model))).scalar()


@pytest.mark.asyncio
class TestAccounts:
    """Test account and profile persistence."""

    async def test_insert_account(self, database):
        user_id = await add_account(database)

        user = await crud.select_user_by_email(database, "21060001001@stu.yasar.edu.tr")
        assert user.user_id == user_id
        assert await count(database, Student) == 1
        assert await count(database, EmailVerificationToken) == 1

    async def test_duplicate_email_rolls_back(self, database):
        await add_account(database)

        with pytest.raises(ValueError):
            await add_account(database, profile=make_student("21060001002"))

        assert await count(database, User) == 1
        assert await count(database, Student) == 1

    async def test_constraint_violation_rolls_back_user(self, database):
        """Test a failing profile insert leaves no orphaned user row."""
        await add_account(database)

        with pytest.raises(ValueError):
            await add_account(database, email="other@stu.yasar.edu.tr")

        assert await count(database, User) == 1

    async def test_select_profile_student(self, database):
        user_id = await add_account(database)

        profile = await crud.select_profile(database, user_id, Role.STUDENT)

        assert profile["student_number"] == "21060001001"
        assert profile["current_semester"] is None

    async def test_select_profile_staff_with_office(self, database):
        async with database.session() as session:
            async with session.begin():
                session.add(Office(office_id=4, office_name="SE Office", office_code="E-401", room_id=12))
        staff = Staff(staff_name="Mehmet", staff_surname="Kaya", department_id=3, office_id=4)
        user_id = await add_account(database, email="mehmet@yasar.edu.tr", profile=staff, role=Role.STAFF)

        profile = await crud.select_profile(database, user_id, Role.STAFF)

        assert profile["staff_name"] == "Mehmet"
        assert profile["office_code"] == "E-401"
        assert profile["office_room_id"] == 12

    async def test_select_profile_missing(self, database):
        user_id = await add_account(database)

        assert await crud.select_profile(database, user_id, Role.ADMIN) is None

    async def test_select_active_user_ignores_inactive(self, database):
        user_id = await add_account(database)
        async with database.session() as session:
            async with session.begin():
                user = await session.get(User, user_id)
                user.is_active = False

        assert await crud.select_active_user(database, user_id) is None


@pytest.mark.asyncio
class TestSessions:
    """Test session persistence and lookup."""

    async def test_active_session_lookup(self, database):
        user_id = await add_account(database)
        await crud.insert_session(database, user_id, "a" * 64, utcnow() + timedelta(days=7))

        row = await crud.select_active_session(database, "a" * 64, utcnow())

        assert row["user_id"] == user_id
        assert row["role"] == "student"
        assert isinstance(row["session_id"], int)

    async def test_expired_session_not_returned(self, database):
        user_id = await add_account(database)
        await crud.insert_session(database, user_id, "a" * 64, utcnow() + timedelta(hours=1))

        later = utcnow() + timedelta(hours=2)
        assert await crud.select_active_session(database, "a" * 64, later) is None

    async def test_delete_session_is_idempotent(self, database):
        user_id = await add_account(database)
        await crud.insert_session(database, user_id, "a" * 64, utcnow() + timedelta(days=7))

        assert await crud.delete_session(database, "a" * 64) == 1
        assert await crud.delete_session(database, "a" * 64) == 0

    async def test_consume_email_token(self, database):
        user_id = await add_account(database, email_token="t" * 64)
        token = await crud.select_email_token(database, "t" * 64)

        assert await crud.consume_email_token(database, token.email_token_id, user_id) is True

        assert (await crud.select_email_token(database, "t" * 64)).is_used is True
        assert (await crud.select_active_user(database, user_id)).is_email_verified is True

    async def test_consume_email_token_only_once(self, database):
        user_id = await add_account(database, email_token="t" * 64)
        token = await crud.select_email_token(database, "t" * 64)

        assert await crud.consume_email_token(database, token.email_token_id, user_id) is True
        assert await crud.consume_email_token(database, token.email_token_id, user_id) is False


@pytest.mark.asyncio
class TestItems:
    """Test item persistence, listing and resolution."""

    async def test_insert_item_with_images(self, database):
        user_id = await add_account(database)
        data = ItemCreate(name="Black Wallet", location="Library", event_date=datetime(2026, 10, 1, tzinfo=UTC))

        item = await crud.insert_item(database, ItemKind.LOST, user_id, data, ["/uploads/a.png", "/uploads/b.png"])

        assert item.id is not None
        assert await crud.select_item_images(database, ItemKind.LOST, item.id) == ["/uploads/a.png", "/uploads/b.png"]
        assert await count(database, LostItemImage) == 2

    async def test_null_event_dates_sort_last(self, database):
        user_id = await add_account(database)
        undated = await crud.insert_item(database, ItemKind.LOST, user_id, ItemCreate(name="A", location="X"), [])
        dated = await crud.insert_item(
            database, ItemKind.LOST, user_id,
            ItemCreate(name="B", location="X", event_date=datetime(2026, 1, 1, tzinfo=UTC)), [],
        )

        rows, total = await crud.list_items(database, ItemKind.LOST, ItemFilters())

        assert total == 2
        assert [item.id for item, _, _ in rows] == [dated.id, undated.id]

    async def test_ties_break_by_id_descending(self, database):
        user_id = await add_account(database)
        when = datetime(2026, 5, 5, tzinfo=UTC)
        first = await crud.insert_item(database, ItemKind.FOUND, user_id, ItemCreate(name="A", location="X", event_date=when), [])
        second = await crud.insert_item(database, ItemKind.FOUND, user_id, ItemCreate(name="B", location="X", event_date=when), [])

        rows, _ = await crud.list_items(database, ItemKind.FOUND, ItemFilters())

        assert [item.id for item, _, _ in rows] == [second.id, first.id]

    async def test_count_ignores_pagination(self, database):
        user_id = await add_account(database)
        for i in range(3):
            await crud.insert_item(database, ItemKind.LOST, user_id, ItemCreate(name=f"I{i}", location="X"), [])

        rows, total = await crud.list_items(database, ItemKind.LOST, ItemFilters(limit=1, offset=1))

        assert len(rows) == 1
        assert total == 3

    async def test_mark_item_resolved_once(self, database):
        user_id = await add_account(database)
        item = await crud.insert_item(database, ItemKind.LOST, user_id, ItemCreate(name="A", location="X"), [])

        assert await crud.mark_item_resolved(database, ItemKind.LOST, item.id, user_id, utcnow()) is True
        assert await crud.mark_item_resolved(database, ItemKind.LOST, item.id, user_id, utcnow()) is False
        assert await crud.mark_item_resolved(database, ItemKind.LOST, 999, user_id, utcnow()) is False

        resolved = await crud.select_item(database, ItemKind.LOST, item.id)
        assert resolved.is_resolved is True
        assert resolved.resolved_by_user_id == user_id

    async def test_comments_ordered_with_email(self, database):
        user_id = await add_account(database)
        await crud.insert_comment(database, user_id, ItemKind.LOST, 1, "first")
        await crud.insert_comment(database, user_id, ItemKind.LOST, 1, "second")
        await crud.insert_comment(database, user_id, ItemKind.FOUND, 1, "other kind")

        comments = await crud.select_comments(database, ItemKind.LOST, 1)

        assert [c["content"] for c in comments] == ["first", "second"]
        assert comments[0]["email"] == "21060001001@stu.yasar.edu.tr"
