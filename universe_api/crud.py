"""Database CRUD operations for accounts, sessions, and lost & found items."""

from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .db import Database
from .logger import logger
from .models import (
    ITEM_MODELS,
    Admin,
    Community,
    EmailVerificationToken,
    ItemComment,
    ItemKind,
    Office,
    Role,
    Staff,
    Student,
    User,
    UserSession,
)
from .schemas import ItemCreate, ItemFilters
from .utils import ensure_utc, escape_like

ProfileRow = Student | Staff | Admin | Community


# ==================== Accounts ====================


async def insert_account(
    db: Database,
    email: str,
    password_hash: str,
    role: Role,
    profile: ProfileRow,
    email_token: str,
    token_expires_at: datetime,
) -> int:
    """Create a user, its role profile, and its verification token atomically.
    Raises ValueError on duplicate email; nothing is written in that case.
    """
    async def _insert(session: AsyncSession) -> int:
        existing = await session.execute(select(User.user_id).where(User.email == email))
        if existing.first() is not None:
            raise ValueError("duplicate email")

        user = User(
            email=email,
            password_hash=password_hash,
            role=role.value,
            is_email_verified=False,
            is_active=True,
        )
        session.add(user)
        await session.flush()

        profile.user_id = user.user_id
        session.add(profile)
        session.add(EmailVerificationToken(
            user_id=user.user_id,
            token=email_token,
            expires_at=ensure_utc(token_expires_at),
            is_used=False,
        ))
        await session.flush()
        return user.user_id

    try:
        return await db.run_in_transaction(_insert)
    except IntegrityError as e:
        # Lost a race with a concurrent registration for the same email
        logger.debug(f"Duplicate email rejected by constraint: {email}")
        raise ValueError("duplicate email") from e


async def select_user_by_email(db: Database, email: str) -> User | None:
    async with db.session() as session:
        result = await session.execute(select(User).where(User.email == email))
        return result.scalars().first()


async def select_active_user(db: Database, user_id: int) -> User | None:
    """Retrieve a user by ID, ignoring deactivated accounts."""
    async with db.session() as session:
        result = await session.execute(
            select(User).where(User.user_id == user_id, User.is_active.is_(True))
        )
        return result.scalars().first()


async def select_profile(db: Database, user_id: int, role: Role) -> dict | None:
    """Fetch the role-specific profile columns for a user, or None if the row is missing."""
    match role:
        case Role.STUDENT:
            stmt = select(
                Student.student_id,
                Student.student_number,
                Student.student_name,
                Student.student_surname,
                Student.department_id,
                Student.current_semester,
                Student.phone_number,
                Student.birth_date,
            ).where(Student.user_id == user_id)
        case Role.STAFF:
            stmt = (
                select(
                    Staff.staff_id,
                    Staff.staff_name,
                    Staff.staff_surname,
                    Staff.department_id,
                    Staff.staff_title,
                    Staff.phone_number,
                    Staff.office_id,
                    Staff.office_hours,
                    Office.office_name,
                    Office.office_code,
                    Office.room_id.label("office_room_id"),
                )
                .outerjoin(Office, Office.office_id == Staff.office_id)
                .where(Staff.user_id == user_id)
            )
        case Role.ADMIN:
            stmt = select(
                Admin.admin_id, Admin.admin_name, Admin.admin_surname
            ).where(Admin.user_id == user_id)
        case Role.COMMUNITY:
            stmt = select(
                Community.community_id,
                Community.community_name,
                Community.description,
                Community.contact_email,
            ).where(Community.user_id == user_id)
    return await db.fetch_one(stmt)


# ==================== Sessions ====================


async def insert_session(db: Database, user_id: int, token: str, expires_at: datetime) -> None:
    async with db.session() as session:
        async with session.begin():
            session.add(UserSession(
                user_id=user_id, session_token=token, expires_at=ensure_utc(expires_at)
            ))


async def select_active_session(db: Database, token: str, now: datetime) -> dict | None:
    """Resolve a token to ``{user_id, session_id, role}`` if the session is
    unexpired and its user is still active.
    """
    stmt = (
        select(UserSession.user_id, UserSession.session_id, User.role)
        .join(User, User.user_id == UserSession.user_id)
        .where(
            UserSession.session_token == token,
            UserSession.expires_at > ensure_utc(now),
            User.is_active.is_(True),
        )
    )
    return await db.fetch_one(stmt)


async def delete_session(db: Database, token: str) -> int:
    """Delete the session with this token. Returns the number of rows removed."""
    async with db.session() as session:
        async with session.begin():
            result = await session.execute(
                delete(UserSession).where(UserSession.session_token == token)
            )
        return result.rowcount


# ==================== Email Verification ====================


async def select_email_token(db: Database, token: str) -> EmailVerificationToken | None:
    async with db.session() as session:
        result = await session.execute(
            select(EmailVerificationToken).where(EmailVerificationToken.token == token)
        )
        return result.scalars().first()


async def consume_email_token(db: Database, email_token_id: int, user_id: int) -> bool:
    """Mark the token used and the user verified in one transaction.

    Returns False if the token was already used, in which case nothing changes.
    """
    async def _consume(session: AsyncSession) -> bool:
        result = await session.execute(
            update(EmailVerificationToken)
            .where(
                EmailVerificationToken.email_token_id == email_token_id,
                EmailVerificationToken.is_used.is_(False),
            )
            .values(is_used=True)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        await session.execute(
            update(User).where(User.user_id == user_id).values(is_email_verified=True)
        )
        return True

    return await db.run_in_transaction(_consume)


# ==================== Lost & Found Items ====================


async def insert_item(db: Database, kind: ItemKind, user_id: int, data: ItemCreate, image_urls: list[str]):
    """Insert an item and one image row per URL, in order, in one transaction."""
    item_model, image_model = ITEM_MODELS[kind]

    async def _insert(session: AsyncSession):
        item = item_model(
            name=data.name,
            user_id=user_id,
            location=data.location,
            description=data.description or None,
            event_date=ensure_utc(data.event_date) if data.event_date else None,
            is_resolved=False,
        )
        session.add(item)
        await session.flush()
        for url in image_urls:
            session.add(image_model(item_id=item.id, image_url=url))
            await session.flush()
        await session.refresh(item)
        return item

    return await db.run_in_transaction(_insert)


def _item_conditions(item_model, filters: ItemFilters) -> list:
    """Build the WHERE predicates in a fixed order: location, resolution, date range."""
    conditions: list = []
    if filters.location:
        pattern = f"%{escape_like(filters.location)}%"
        conditions.append(item_model.location.ilike(pattern, escape="\\"))
    if filters.is_resolved is not None:
        conditions.append(item_model.is_resolved.is_(filters.is_resolved))
    if filters.start_date is not None:
        conditions.append(item_model.event_date >= ensure_utc(filters.start_date))
    if filters.end_date is not None:
        conditions.append(item_model.event_date <= ensure_utc(filters.end_date))
    return conditions


async def list_items(db: Database, kind: ItemKind, filters: ItemFilters) -> tuple[list[tuple], int]:
    """List items matching the filters, newest event first.
    Returns ``([(item, poster_email, thumbnail_url), ...], total)``.
    """
    item_model, image_model = ITEM_MODELS[kind]
    conditions = _item_conditions(item_model, filters)

    async with db.session() as session:
        try:
            count_stmt = select(func.count()).select_from(item_model)
            if conditions:
                count_stmt = count_stmt.where(*conditions)
            total = (await session.execute(count_stmt)).scalar() or 0

            stmt = select(item_model, User.email).outerjoin(User, User.user_id == item_model.user_id)
            if conditions:
                stmt = stmt.where(*conditions)
            stmt = (
                stmt.order_by(item_model.event_date.desc().nullslast(), item_model.id.desc())
                .offset(filters.offset)
                .limit(filters.limit)
            )
            rows = (await session.execute(stmt)).all()

            results = []
            for item, poster_email in rows:
                thumbnail = await session.execute(
                    select(image_model.image_url)
                    .where(image_model.item_id == item.id)
                    .order_by(image_model.image_id)
                    .limit(1)
                )
                results.append((item, poster_email, thumbnail.scalar()))
            logger.debug(f"{kind.value} items query returned {len(results)} of {total}")
            return results, total
        except Exception:
            logger.error(f"Failed to list {kind.value} items", exc_info=True)
            raise


async def select_item(db: Database, kind: ItemKind, item_id: int):
    item_model, _ = ITEM_MODELS[kind]
    async with db.session() as session:
        return await session.get(item_model, item_id)


async def mark_item_resolved(db: Database, kind: ItemKind, item_id: int, user_id: int, now: datetime) -> bool:
    """Flip an unresolved item to resolved. Returns False if no unresolved row matched."""
    item_model, _ = ITEM_MODELS[kind]
    async with db.session() as session:
        async with session.begin():
            result = await session.execute(
                update(item_model)
                .where(item_model.id == item_id, item_model.is_resolved.is_(False))
                .values(is_resolved=True, resolved_at=ensure_utc(now), resolved_by_user_id=user_id)
                .execution_options(synchronize_session=False)
            )
        return result.rowcount == 1


async def select_item_images(db: Database, kind: ItemKind, item_id: int) -> list[str]:
    _, image_model = ITEM_MODELS[kind]
    async with db.session() as session:
        result = await session.execute(
            select(image_model.image_url)
            .where(image_model.item_id == item_id)
            .order_by(image_model.image_id)
        )
        return list(result.scalars().all())


# ==================== Comments ====================


async def insert_comment(db: Database, user_id: int, kind: ItemKind, item_id: int, content: str) -> None:
    async with db.session() as session:
        async with session.begin():
            session.add(ItemComment(
                user_id=user_id, item_type=kind.value, item_id=item_id, content=content
            ))


async def select_comments(db: Database, kind: ItemKind, item_id: int) -> list[dict]:
    stmt = (
        select(
            ItemComment.comment_id,
            ItemComment.user_id,
            ItemComment.item_type,
            ItemComment.item_id,
            ItemComment.content,
            ItemComment.created_at,
            User.email,
        )
        .join(User, User.user_id == ItemComment.user_id)
        .where(ItemComment.item_type == kind.value, ItemComment.item_id == item_id)
        .order_by(ItemComment.created_at.asc(), ItemComment.comment_id.asc())
    )
    return await db.fetch_all(stmt)
