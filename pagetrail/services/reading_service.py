"""Progress submissions and the one-shot "mark as read" workflow.

These compose the ledger, the completion detector and the session state
machine into the operations the API exposes. Like everything under
``services`` they flush but leave committing to the caller.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from pagetrail.errors import NotFoundError, ValidationError
from pagetrail.models import ProgressLog, ReadingSession, ReadingStatus
from pagetrail.schemas.reading import CompleteBookRequest, ProgressCreate, ProgressUpdate
from pagetrail.services import ledger
from pagetrail.services.completion import on_progress_appended
from pagetrail.services.effects import SideEffect, rebuild_streak, sync_rating
from pagetrail.services.page_count import change_total_pages
from pagetrail.services.sessions import (
    complete_session,
    ensure_reading_session,
    get_active_session,
    get_book_or_404,
)

logger = logging.getLogger(__name__)


@dataclass
class ProgressResult:
    entry: ProgressLog
    session: ReadingSession
    completion_reached: bool
    effects: list[SideEffect] = field(default_factory=list)


@dataclass
class CompleteBookResult:
    session: ReadingSession
    entries: list[ProgressLog] = field(default_factory=list)
    effects: list[SideEffect] = field(default_factory=list)


async def log_progress(db: AsyncSession, book_id: int, data: ProgressCreate) -> ProgressResult:
    book = await get_book_or_404(db, book_id)
    session = await get_active_session(db, book_id, for_update=True)
    if session is None:
        raise NotFoundError("No active reading session found. Please set a reading status first.")
    if session.status != ReadingStatus.READING:
        raise ValidationError("Can only log progress for books with 'reading' status")

    appended = await ledger.append(db, session, book, data)
    await on_progress_appended(db, appended.entry, session)

    return ProgressResult(
        entry=appended.entry,
        session=session,
        completion_reached=appended.completion_reached,
        effects=[rebuild_streak(book_id, "progress logged")],
    )


async def edit_progress(
    db: AsyncSession, book_id: int, entry_id: int, data: ProgressUpdate
) -> ProgressResult:
    book = await get_book_or_404(db, book_id)
    entry = await ledger.get_entry(db, entry_id)
    if entry is None or entry.book_id != book_id:
        raise NotFoundError("Progress entry not found")
    session = await db.get(ReadingSession, entry.session_id)

    entry = await ledger.update_entry(db, entry, book, data)
    return ProgressResult(
        entry=entry,
        session=session,
        completion_reached=entry.current_percentage >= 100,
        effects=[rebuild_streak(book_id, "progress edited")],
    )


async def complete_book(db: AsyncSession, book_id: int, data: CompleteBookRequest) -> CompleteBookResult:
    """Record a whole read in one go: page count, start and finish entries, rating, review."""
    book = await get_book_or_404(db, book_id)
    if data.total_pages is not None and data.total_pages != book.total_pages:
        await change_total_pages(db, book_id, data.total_pages)

    session = await ensure_reading_session(db, book_id, data.started_date)
    result = CompleteBookResult(session=session, effects=[rebuild_streak(book_id, "book completed")])

    if book.total_pages:
        if book.total_pages > 1 and not await ledger.has_progress(db, session.id):
            start = await ledger.append(
                db, session, book,
                ProgressCreate(current_page=1, notes="Started reading", progress_date=data.started_date),
            )
            result.entries.append(start.entry)
        finish = await ledger.append(
            db, session, book,
            ProgressCreate(
                current_page=book.total_pages, notes="Finished reading", progress_date=data.completed_date
            ),
        )
        result.entries.append(finish.entry)
        await on_progress_appended(db, finish.entry, session)
    else:
        logger.info("Book %s has no page count, marking read without progress entries", book_id)
        await complete_session(db, session, data.completed_date)

    if data.review is not None:
        session.review = data.review
    if data.rating is not None:
        book.rating = data.rating
        result.effects.append(sync_rating(book_id, data.rating))

    await db.flush()
    return result
