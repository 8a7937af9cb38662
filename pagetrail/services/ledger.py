"""The progress ledger: the ordered progress entries of a reading session.

Entries keep the page the reader reported and the date they reported it.
``current_percentage`` and ``pages_read`` are derived from those two and the
book's page count, and are rewritten whenever the page count changes.

Nothing here commits. Callers own the transaction, so a failed or rejected
operation never leaves half of a session rewritten.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from sqlalchemy import exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pagetrail.errors import ValidationError
from pagetrail.models import Book, ProgressLog, ReadingSession
from pagetrail.schemas.reading import ProgressCreate, ProgressUpdate
from pagetrail.services.calculations import calculate_page_from_percentage, calculate_percentage, is_complete
from pagetrail.services.timeline import TimelineUnit, check_timeline, validate_timeline

logger = logging.getLogger(__name__)


@dataclass
class AppendResult:
    entry: ProgressLog
    completion_reached: bool


def _chronological(entries: Iterable[ProgressLog]) -> list[ProgressLog]:
    return sorted(entries, key=lambda e: (e.progress_date, e.id))


async def get_entries(db: AsyncSession, session_id: int) -> list[ProgressLog]:
    result = await db.execute(
        select(ProgressLog)
        .where(ProgressLog.session_id == session_id)
        .order_by(ProgressLog.progress_date, ProgressLog.id)
    )
    return list(result.scalars().all())


async def get_entry(db: AsyncSession, entry_id: int) -> ProgressLog | None:
    return await db.get(ProgressLog, entry_id)


async def has_progress(db: AsyncSession, session_id: int) -> bool:
    return bool(await db.scalar(select(exists().where(ProgressLog.session_id == session_id))))


async def max_logged_page(db: AsyncSession, book_id: int) -> int:
    """Highest page ever logged for the book, across every session."""
    highest = await db.scalar(
        select(func.max(ProgressLog.current_page)).where(ProgressLog.book_id == book_id)
    )
    return highest or 0


def resolve_progress(
    book: Book,
    current_page: int | None,
    current_percentage: int | None,
) -> tuple[int, int, TimelineUnit]:
    """Turn a page-or-percentage input into ``(page, percentage, unit)``.

    ``unit`` is what the reader actually typed, and is the unit the timeline
    gets validated in.
    """
    total = book.total_pages
    if current_page is not None:
        if current_page < 0:
            raise ValidationError("Page must be a non-negative whole number")
        if total and current_page > total:
            raise ValidationError(f"Page {current_page} exceeds the book's page count of {total}")
        return current_page, calculate_percentage(current_page, total), TimelineUnit.PAGE
    if current_percentage is not None:
        if not 0 <= current_percentage <= 100:
            raise ValidationError("Percentage must be between 0 and 100")
        return calculate_page_from_percentage(current_percentage, total), current_percentage, TimelineUnit.PERCENTAGE
    raise ValidationError("Either current_page or current_percentage is required")


def _previous_page(entries: list[ProgressLog], progress_date: date) -> int:
    """Page of the latest entry dated on or before ``progress_date`` (0 if none)."""
    previous = 0
    for entry in _chronological(entries):
        if entry.progress_date > progress_date:
            break
        previous = entry.current_page
    return previous


def _page_for_percentage(
    entries: list[ProgressLog],
    progress_date: date,
    page: int,
    exclude_entry_id: int | None = None,
) -> int:
    """Settle the page a percentage maps to against the pages logged before it.

    A percentage covers a range of pages and the floor picks the first one,
    which can sit below a page logged earlier at the same percentage. The
    earlier page wins in that case.
    """
    earlier = [
        e.current_page
        for e in entries
        if e.id != exclude_entry_id and e.progress_date < progress_date
    ]
    page = max([page, *earlier])
    validate_timeline(entries, progress_date, page, TimelineUnit.PAGE, exclude_entry_id).raise_for_conflict()
    return page


def walk(
    entries: Iterable[ProgressLog],
    total_pages: int | None = None,
    *,
    recompute_percentage: bool = False,
) -> list[ProgressLog]:
    """Rewrite ``pages_read`` (and optionally ``current_percentage``) in date order.

    ``current_page`` and ``progress_date`` are never touched.
    """
    ordered = _chronological(entries)
    previous_page = 0
    for entry in ordered:
        if recompute_percentage:
            entry.current_percentage = calculate_percentage(entry.current_page, total_pages)
        entry.pages_read = max(0, entry.current_page - previous_page)
        previous_page = entry.current_page
    return ordered


async def append(
    db: AsyncSession,
    session: ReadingSession,
    book: Book,
    data: ProgressCreate,
) -> AppendResult:
    progress_date = data.progress_date or date.today()
    page, percentage, unit = resolve_progress(book, data.current_page, data.current_percentage)

    candidate = percentage if unit is TimelineUnit.PERCENTAGE else page
    await check_timeline(db, session.id, progress_date, candidate, unit)

    entries = await get_entries(db, session.id)
    if unit is TimelineUnit.PERCENTAGE and book.total_pages:
        page = _page_for_percentage(entries, progress_date, page)

    entry = ProgressLog(
        book_id=book.id,
        session_id=session.id,
        current_page=page,
        current_percentage=percentage,
        pages_read=max(0, page - _previous_page(entries, progress_date)),
        progress_date=progress_date,
        notes=data.notes,
    )
    db.add(entry)
    await db.flush()

    # A back-dated entry shifts the delta of whatever follows it.
    walk([*entries, entry])
    await db.flush()

    logger.info(
        "Logged progress for book %s session #%s: page %s (%s%%) on %s",
        book.id, session.session_number, page, percentage, progress_date,
    )
    return AppendResult(entry=entry, completion_reached=is_complete(percentage))


async def update_entry(
    db: AsyncSession,
    entry: ProgressLog,
    book: Book,
    data: ProgressUpdate,
) -> ProgressLog:
    """Edit an existing entry, keeping the rest of its session consistent."""
    progress_date = data.progress_date or entry.progress_date
    if data.current_page is not None or data.current_percentage is not None:
        page, percentage, unit = resolve_progress(book, data.current_page, data.current_percentage)
    else:
        page, percentage, unit = resolve_progress(book, entry.current_page, None)
        if not book.total_pages:
            percentage = entry.current_percentage

    candidate = percentage if unit is TimelineUnit.PERCENTAGE else page
    await check_timeline(db, entry.session_id, progress_date, candidate, unit, exclude_entry_id=entry.id)

    entries = await get_entries(db, entry.session_id)
    if unit is TimelineUnit.PERCENTAGE and book.total_pages:
        page = _page_for_percentage(entries, progress_date, page, exclude_entry_id=entry.id)

    entry.current_page = page
    entry.current_percentage = percentage
    entry.progress_date = progress_date
    if "notes" in data.model_fields_set:
        entry.notes = data.notes

    walk(entries)
    await db.flush()
    logger.info("Edited progress entry %s: page %s (%s%%) on %s", entry.id, page, percentage, progress_date)
    return entry


async def recompute_all(db: AsyncSession, session_id: int, new_total_pages: int) -> list[ProgressLog]:
    """Re-derive percentage and pages read for every entry of one session."""
    entries = await get_entries(db, session_id)
    walk(entries, new_total_pages, recompute_percentage=True)
    await db.flush()
    return entries


async def recompute_book(db: AsyncSession, book_id: int, new_total_pages: int) -> dict[int, list[ProgressLog]]:
    """Run :func:`recompute_all` for every session of the book that has progress.

    Archived and DNF sessions are included; their history is still shown
    against the book's current page count.
    """
    result = await db.execute(
        select(ProgressLog.session_id)
        .where(ProgressLog.book_id == book_id)
        .distinct()
        .order_by(ProgressLog.session_id)
    )
    recomputed: dict[int, list[ProgressLog]] = {}
    for session_id in result.scalars().all():
        recomputed[session_id] = await recompute_all(db, session_id, new_total_pages)
    return recomputed
