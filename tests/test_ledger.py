"""Tests for the progress ledger: appends, derived fields and recompute."""

from datetime import date

import pytest

from pagetrail.errors import TimelineConflict, ValidationError
from pagetrail.models import Book
from pagetrail.schemas.reading import ProgressCreate, ProgressUpdate, StatusUpdate
from pagetrail.services import ledger, sessions


# --- helpers ---

async def _reading_book(session, total_pages=300):
    book = Book(id=1, title="Dune", author="Frank Herbert", total_pages=total_pages)
    session.add(book)
    await session.flush()
    change = await sessions.set_status(
        session, book.id, StatusUpdate(status="reading", started_date=date(2025, 1, 1))
    )
    return book, change.session


async def _log(session, reading, book, page=None, percentage=None, day=1):
    return await ledger.append(
        session,
        reading,
        book,
        ProgressCreate(current_page=page, current_percentage=percentage, progress_date=date(2025, 1, day)),
    )


# --- append ---

async def test_first_entry_reads_from_page_zero(session):
    book, reading = await _reading_book(session)
    result = await _log(session, reading, book, page=50, day=2)
    assert result.entry.current_page == 50
    assert result.entry.pages_read == 50
    assert result.entry.current_percentage == 16
    assert result.entry.session_id == reading.id
    assert result.completion_reached is False


async def test_pages_read_is_delta_from_previous_entry(session):
    book, reading = await _reading_book(session)
    for page, day in [(50, 2), (120, 3), (200, 4)]:
        await _log(session, reading, book, page=page, day=day)
    entries = await ledger.get_entries(session, reading.id)
    assert [e.pages_read for e in entries] == [50, 70, 80]


async def test_percentage_input_derives_page(session):
    book, reading = await _reading_book(session)
    result = await _log(session, reading, book, percentage=50, day=2)
    assert result.entry.current_page == 150
    assert result.entry.current_percentage == 50
    assert result.entry.pages_read == 150


async def test_page_without_page_count_has_zero_percentage(session):
    book, reading = await _reading_book(session, total_pages=None)
    result = await _log(session, reading, book, page=80, day=2)
    assert result.entry.current_page == 80
    assert result.entry.current_percentage == 0


async def test_page_beyond_page_count_is_rejected(session):
    book, reading = await _reading_book(session)
    with pytest.raises(ValidationError):
        await _log(session, reading, book, page=301, day=2)
    assert await ledger.get_entries(session, reading.id) == []


async def test_timeline_conflict_writes_nothing(session):
    book, reading = await _reading_book(session)
    await _log(session, reading, book, page=100, day=10)
    with pytest.raises(TimelineConflict) as exc_info:
        await _log(session, reading, book, page=80, day=11)
    assert exc_info.value.value == 100
    assert exc_info.value.direction == "before"
    assert len(await ledger.get_entries(session, reading.id)) == 1


async def test_backdated_entry_updates_following_delta(session):
    book, reading = await _reading_book(session)
    await _log(session, reading, book, page=100, day=10)
    await _log(session, reading, book, page=200, day=20)
    await _log(session, reading, book, page=150, day=15)

    entries = await ledger.get_entries(session, reading.id)
    assert [(e.current_page, e.pages_read) for e in entries] == [(100, 100), (150, 50), (200, 50)]


async def test_completion_flag_only_at_full_percentage(session):
    book, reading = await _reading_book(session)
    almost = await _log(session, reading, book, page=299, day=2)
    assert almost.entry.current_percentage == 99
    assert almost.completion_reached is False
    done = await _log(session, reading, book, page=300, day=3)
    assert done.entry.current_percentage == 100
    assert done.completion_reached is True


async def test_monotonic_across_mixed_inputs(session):
    book, reading = await _reading_book(session)
    await _log(session, reading, book, page=30, day=2)
    await _log(session, reading, book, percentage=40, day=5)
    await _log(session, reading, book, page=200, day=9)
    entries = await ledger.get_entries(session, reading.id)
    pages = [e.current_page for e in entries]
    assert pages == sorted(pages)


async def test_percentage_never_lands_below_earlier_page(session):
    # 300 of 350 pages is 85%, but 85% of 350 floors to page 297
    book, reading = await _reading_book(session, total_pages=350)
    await _log(session, reading, book, page=300, day=1)
    result = await _log(session, reading, book, percentage=85, day=2)

    assert result.entry.current_page == 300
    assert result.entry.current_percentage == 85
    assert result.entry.pages_read == 0
    entries = await ledger.get_entries(session, reading.id)
    assert [e.current_page for e in entries] == [300, 300]


# --- recompute ---

async def test_recompute_after_growing_page_count(session):
    book, reading = await _reading_book(session)
    await _log(session, reading, book, page=300, day=2)

    entries = await ledger.recompute_all(session, reading.id, 350)
    assert entries[0].current_page == 300
    assert entries[0].current_percentage == 85
    assert entries[0].progress_date == date(2025, 1, 2)


async def test_recompute_is_idempotent(session):
    book, reading = await _reading_book(session)
    for page, day in [(40, 2), (90, 3), (150, 6)]:
        await _log(session, reading, book, page=page, day=day)

    def snapshot(entries):
        return [(e.id, e.current_page, e.current_percentage, e.pages_read, e.progress_date) for e in entries]

    first = snapshot(await ledger.recompute_all(session, reading.id, 420))
    second = snapshot(await ledger.recompute_all(session, reading.id, 420))
    assert first == second
    assert [row[2] for row in first] == [9, 21, 35]


async def test_new_progress_after_recompute_uses_new_page_count(session):
    book, reading = await _reading_book(session)
    await _log(session, reading, book, page=100, day=2)
    book.total_pages = 350
    await ledger.recompute_all(session, reading.id, 350)

    result = await _log(session, reading, book, page=150, day=3)
    assert result.entry.current_percentage == 42
    assert result.entry.pages_read == 50


async def test_recompute_book_covers_archived_sessions(session):
    book, first = await _reading_book(session)
    await _log(session, first, book, page=120, day=2)

    # Backward move archives the first session
    change = await sessions.set_status(session, book.id, StatusUpdate(status="to-read"))
    second = change.session
    await sessions.set_status(session, book.id, StatusUpdate(status="reading"))
    await _log(session, second, book, page=60, day=20)

    recomputed = await ledger.recompute_book(session, book.id, 400)
    assert set(recomputed) == {first.id, second.id}
    assert recomputed[first.id][0].current_percentage == 30
    assert recomputed[second.id][0].current_percentage == 15


async def test_max_logged_page_spans_sessions(session):
    book, first = await _reading_book(session)
    await _log(session, first, book, page=250, day=2)
    await sessions.set_status(session, book.id, StatusUpdate(status="read-next"))
    assert await ledger.max_logged_page(session, book.id) == 250


# --- edit ---

async def test_update_entry_rewalks_session(session):
    book, reading = await _reading_book(session)
    first = (await _log(session, reading, book, page=50, day=2)).entry
    await _log(session, reading, book, page=120, day=5)

    await ledger.update_entry(session, first, book, ProgressUpdate(current_page=80))
    entries = await ledger.get_entries(session, reading.id)
    assert [(e.current_page, e.pages_read) for e in entries] == [(80, 80), (120, 40)]
    assert entries[0].current_percentage == 26


async def test_update_entry_respects_timeline(session):
    book, reading = await _reading_book(session)
    first = (await _log(session, reading, book, page=50, day=2)).entry
    await _log(session, reading, book, page=120, day=5)

    with pytest.raises(TimelineConflict) as exc_info:
        await ledger.update_entry(session, first, book, ProgressUpdate(current_page=130))
    assert exc_info.value.direction == "after"


async def test_update_entry_to_percentage_keeps_page_order(session):
    book, reading = await _reading_book(session, total_pages=350)
    await _log(session, reading, book, page=300, day=1)
    later = (await _log(session, reading, book, page=320, day=3)).entry

    await ledger.update_entry(session, later, book, ProgressUpdate(current_percentage=85))

    entries = await ledger.get_entries(session, reading.id)
    assert [(e.current_page, e.current_percentage) for e in entries] == [(300, 85), (300, 85)]
    assert entries[1].pages_read == 0


async def test_update_entry_percentage_without_page_count(session):
    book, reading = await _reading_book(session, total_pages=None)
    entry = (await _log(session, reading, book, page=80, day=2)).entry

    await ledger.update_entry(session, entry, book, ProgressUpdate(current_percentage=40))
    assert entry.current_page == 0
    assert entry.current_percentage == 40


async def test_update_entry_keeps_notes_unless_sent(session):
    book, reading = await _reading_book(session)
    entry = (
        await ledger.append(
            session, reading, book,
            ProgressCreate(current_page=10, notes="prologue", progress_date=date(2025, 1, 2)),
        )
    ).entry
    await ledger.update_entry(session, entry, book, ProgressUpdate(progress_date=date(2025, 1, 3)))
    assert entry.notes == "prologue"
    assert entry.progress_date == date(2025, 1, 3)
