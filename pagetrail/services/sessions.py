"""Reading-session lifecycle.

A book accumulates numbered sessions, one per attempt at reading it. At most
one is active. Moving a book from "reading" back to a planning status once
progress exists archives the session instead of overwriting it, so the
logged history stays attached to the attempt it belongs to.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import assert_never

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from pagetrail.errors import NotFoundError, ValidationError
from pagetrail.models import Book, ReadingSession, ReadingStatus
from pagetrail.schemas.reading import SessionUpdate, StatusUpdate
from pagetrail.services.effects import SideEffect, rebuild_streak, sync_rating
from pagetrail.services.ledger import has_progress

logger = logging.getLogger(__name__)

PLANNING_STATUSES = frozenset({ReadingStatus.TO_READ, ReadingStatus.READ_NEXT})


@dataclass
class ArchivedSession:
    session: ReadingSession

    @property
    def from_session_number(self) -> int:
        return self.session.session_number


@dataclass
class StatusChange:
    session: ReadingSession
    archived: ArchivedSession | None = None
    effects: list[SideEffect] = field(default_factory=list)


async def get_book_or_404(db: AsyncSession, book_id: int) -> Book:
    book = await db.get(Book, book_id)
    if book is None:
        raise NotFoundError("Book not found")
    return book


async def get_session_or_404(db: AsyncSession, session_id: int) -> ReadingSession:
    session = await db.get(ReadingSession, session_id)
    if session is None:
        raise NotFoundError("Reading session not found")
    return session


async def get_active_session(
    db: AsyncSession, book_id: int, *, for_update: bool = False
) -> ReadingSession | None:
    stmt = (
        select(ReadingSession)
        .where(ReadingSession.book_id == book_id, ReadingSession.is_active.is_(True))
        .order_by(ReadingSession.session_number.desc())
    )
    if for_update:
        stmt = stmt.with_for_update()
    return (await db.execute(stmt)).scalars().first()


async def get_latest_session(db: AsyncSession, book_id: int) -> ReadingSession | None:
    result = await db.execute(
        select(ReadingSession)
        .where(ReadingSession.book_id == book_id)
        .order_by(ReadingSession.session_number.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def next_session_number(db: AsyncSession, book_id: int) -> int:
    highest = await db.scalar(
        select(func.max(ReadingSession.session_number)).where(ReadingSession.book_id == book_id)
    )
    return (highest or 0) + 1


async def list_sessions(db: AsyncSession, book_id: int) -> list[ReadingSession]:
    await get_book_or_404(db, book_id)
    result = await db.execute(
        select(ReadingSession)
        .where(ReadingSession.book_id == book_id)
        .options(selectinload(ReadingSession.progress_entries))
        .order_by(ReadingSession.session_number.desc())
    )
    return list(result.scalars().all())


async def _create_session(
    db: AsyncSession,
    book_id: int,
    status: ReadingStatus,
    user_id: int | None = None,
    **fields,
) -> ReadingSession:
    session = ReadingSession(
        book_id=book_id,
        session_number=await next_session_number(db, book_id),
        status=status,
        is_active=True,
        user_id=user_id,
        **fields,
    )
    db.add(session)
    await db.flush()
    return session


def _mark_read(session: ReadingSession, completed_date: date, started_date: date) -> None:
    session.status = ReadingStatus.READ
    session.completed_date = completed_date
    if session.started_date is None:
        session.started_date = started_date
    session.is_active = False


def _is_backward(current: ReadingStatus, new: ReadingStatus) -> bool:
    return current == ReadingStatus.READING and new in PLANNING_STATUSES


async def _archive_and_restart(
    db: AsyncSession, active: ReadingSession, status: ReadingStatus
) -> StatusChange:
    logger.info(
        "Archiving session #%s of book %s and starting a new session for backward movement to %s",
        active.session_number, active.book_id, status,
    )
    # Status is kept: the archived session remains a record of a "reading" attempt.
    active.is_active = False
    await db.flush()
    successor = await _create_session(db, active.book_id, status, user_id=active.user_id)
    return StatusChange(
        session=successor,
        archived=ArchivedSession(active),
        effects=[rebuild_streak(active.book_id, "session archived")],
    )


async def _apply_status(
    db: AsyncSession,
    book: Book,
    active: ReadingSession | None,
    status: ReadingStatus,
    update: StatusUpdate,
) -> StatusChange:
    today = date.today()
    if active is None:
        latest = await get_latest_session(db, book.id)
        if latest is not None and latest.status == ReadingStatus.DNF and status == ReadingStatus.READ:
            raise ValidationError(
                "Cannot mark DNF book as read directly. Start a new reading session first."
            )
        session = await _create_session(
            db, book.id, status, user_id=latest.user_id if latest is not None else None
        )
    else:
        session = active
        session.status = status

    effects: list[SideEffect] = []
    match status:
        case ReadingStatus.READING:
            if session.started_date is None:
                session.started_date = update.started_date or today
        case ReadingStatus.READ:
            _mark_read(session, update.completed_date or today, update.started_date or today)
            effects.append(rebuild_streak(book.id, "session completed"))
        case ReadingStatus.DNF:
            session.dnf_date = update.completed_date or today
            if session.started_date is None and update.started_date is not None:
                session.started_date = update.started_date
            session.is_active = False
        case ReadingStatus.TO_READ | ReadingStatus.READ_NEXT:
            pass
        case _:
            assert_never(status)

    await db.flush()
    return StatusChange(session=session, effects=effects)


async def set_status(db: AsyncSession, book_id: int, update: StatusUpdate) -> StatusChange:
    """Move a book to ``update.status``, archiving or creating sessions as needed."""
    status = ReadingStatus.parse(update.status)
    book = await get_book_or_404(db, book_id)
    active = await get_active_session(db, book_id, for_update=True)

    if active is not None and _is_backward(active.status, status) and await has_progress(db, active.id):
        change = await _archive_and_restart(db, active, status)
    else:
        change = await _apply_status(db, book, active, status, update)

    if update.review is not None:
        change.session.review = update.review
    if "rating" in update.model_fields_set:
        # The book holds the rating; sessions only hold reviews.
        book.rating = update.rating
        change.effects.append(sync_rating(book.id, update.rating))

    await db.flush()
    logger.info(
        "Book %s is now %s (session #%s)", book_id, status, change.session.session_number
    )
    return change


async def complete_session(
    db: AsyncSession, session: ReadingSession, completed_date: date
) -> ReadingSession:
    """Finish a session because its progress reached 100%."""
    _mark_read(session, completed_date, completed_date)
    await db.flush()
    logger.info(
        "Book %s completed: session #%s marked read on %s",
        session.book_id, session.session_number, completed_date,
    )
    return session


async def start_reread(db: AsyncSession, book_id: int) -> ReadingSession:
    await get_book_or_404(db, book_id)
    if await get_active_session(db, book_id, for_update=True) is not None:
        raise ValidationError("Book already has an active reading session")

    result = await db.execute(
        select(ReadingSession)
        .where(ReadingSession.book_id == book_id, ReadingSession.status == ReadingStatus.READ)
        .order_by(ReadingSession.session_number.desc())
        .limit(1)
    )
    previous = result.scalar_one_or_none()
    if previous is None:
        raise ValidationError("Cannot start re-read: no completed reads found")

    session = await _create_session(
        db, book_id, ReadingStatus.READING, user_id=previous.user_id, started_date=date.today()
    )
    logger.info("Started re-read of book %s as session #%s", book_id, session.session_number)
    return session


async def update_session(db: AsyncSession, session_id: int, data: SessionUpdate) -> ReadingSession:
    session = await get_session_or_404(db, session_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(session, key, value)
    if session.started_date and session.completed_date and session.completed_date < session.started_date:
        raise ValidationError("Completed date must be on or after the start date")
    await db.flush()
    return session


async def ensure_reading_session(db: AsyncSession, book_id: int, started_date: date) -> ReadingSession:
    """Return the active session in "reading" status, creating one if the book has none."""
    session = await get_active_session(db, book_id, for_update=True)
    if session is None:
        return await _create_session(db, book_id, ReadingStatus.READING, started_date=started_date)
    session.status = ReadingStatus.READING
    session.started_date = started_date
    await db.flush()
    return session
