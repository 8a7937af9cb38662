"""Tests for MCP tools. Each test gets a PagetrailClient backed by the
test httpx client fixture, seeds data via the tools or the API, then calls
the tool function directly."""

import pytest
from pagetrail.id import make_id
from pagetrail.mcp.client import PagetrailClient
from pagetrail.mcp.tools.library import add_book, get_book, update_page_count
from pagetrail.mcp.tools.reading import (
    complete_book,
    edit_reading_progress,
    get_reading_history,
    log_reading_progress,
    set_reading_status,
    start_reread,
)

TITLE = "Dune"
AUTHOR = "Frank Herbert"


@pytest.fixture
def pt(client):
    return PagetrailClient(client)


async def _reading(pt, total_pages=400):
    await add_book(pt, title=TITLE, author=AUTHOR, total_pages=total_pages, status="reading")


# --- add_book / get_book ---

@pytest.mark.asyncio
async def test_add_book(pt):
    result = await add_book(pt, title=TITLE, author=AUTHOR, total_pages=412)
    assert result["id"] == make_id(TITLE, AUTHOR)
    assert result["total_pages"] == 412
    assert "session" not in result


@pytest.mark.asyncio
async def test_add_book_with_status(pt):
    result = await add_book(pt, title=TITLE, author=AUTHOR, status="read-next")
    assert result["session"]["status"] == "read-next"


@pytest.mark.asyncio
async def test_add_book_bad_status(pt):
    result = await add_book(pt, title=TITLE, author=AUTHOR, status="someday")
    assert result["error"] is True
    assert result["status"] == 400


@pytest.mark.asyncio
async def test_add_book_duplicate(pt):
    await add_book(pt, title=TITLE, author=AUTHOR)
    result = await add_book(pt, title=TITLE, author=AUTHOR)
    assert result["status"] == 409


@pytest.mark.asyncio
async def test_get_book_found(pt):
    await _reading(pt)
    result = await get_book(pt, title=TITLE, author=AUTHOR)
    assert result["title"] == TITLE
    assert result["active_session"]["status"] == "reading"


@pytest.mark.asyncio
async def test_get_book_not_found(pt):
    result = await get_book(pt, title="Nothing", author="Nobody")
    assert result["error"] is True
    assert result["status"] == 404


# --- status and progress ---

@pytest.mark.asyncio
async def test_set_reading_status_archives(pt):
    await _reading(pt)
    await log_reading_progress(pt, title=TITLE, author=AUTHOR, current_page=50, progress_date="2025-01-02")
    result = await set_reading_status(pt, title=TITLE, author=AUTHOR, status="to-read")
    assert result["archived"]["from_session_number"] == 1
    assert result["session"]["session_number"] == 2


@pytest.mark.asyncio
async def test_set_reading_status_read_with_rating(pt):
    await add_book(pt, title=TITLE, author=AUTHOR)
    result = await set_reading_status(
        pt, title=TITLE, author=AUTHOR, status="read", rating=5, completed_date="2025-03-03"
    )
    assert result["session"]["completed_date"] == "2025-03-03"
    book = await get_book(pt, title=TITLE, author=AUTHOR)
    assert book["rating"] == 5


@pytest.mark.asyncio
async def test_log_reading_progress(pt):
    await _reading(pt)
    result = await log_reading_progress(pt, title=TITLE, author=AUTHOR, current_percentage=50)
    assert result["entry"]["current_page"] == 200
    assert result["completion_reached"] is False


@pytest.mark.asyncio
async def test_log_reading_progress_conflict(pt):
    await _reading(pt)
    await log_reading_progress(pt, title=TITLE, author=AUTHOR, current_page=120, progress_date="2025-01-10")
    result = await log_reading_progress(
        pt, title=TITLE, author=AUTHOR, current_page=90, progress_date="2025-01-11"
    )
    assert result["error"] is True
    assert result["status"] == 400
    assert result["conflicting_entry"]["progress"] == 120


@pytest.mark.asyncio
async def test_log_reading_progress_missing_value(pt):
    await _reading(pt)
    result = await log_reading_progress(pt, title=TITLE, author=AUTHOR)
    assert result["status"] == 422


@pytest.mark.asyncio
async def test_edit_reading_progress(pt):
    await _reading(pt)
    logged = await log_reading_progress(pt, title=TITLE, author=AUTHOR, current_page=20)
    result = await edit_reading_progress(
        pt, title=TITLE, author=AUTHOR, entry_id=logged["entry"]["id"], current_page=25
    )
    assert result["current_page"] == 25
    assert result["pages_read"] == 25


# --- page count ---

@pytest.mark.asyncio
async def test_update_page_count(pt):
    await _reading(pt, total_pages=300)
    await log_reading_progress(pt, title=TITLE, author=AUTHOR, current_page=300)
    result = await update_page_count(pt, title=TITLE, author=AUTHOR, total_pages=350)
    assert result["book"]["total_pages"] == 350
    assert result["entries_updated"] == 1


@pytest.mark.asyncio
async def test_update_page_count_rejected(pt):
    await _reading(pt, total_pages=300)
    await log_reading_progress(pt, title=TITLE, author=AUTHOR, current_page=250)
    result = await update_page_count(pt, title=TITLE, author=AUTHOR, total_pages=200)
    assert result["status"] == 400
    assert result["max_logged_page"] == 250
    assert result["requested"] == 200


# --- history, reread, complete ---

@pytest.mark.asyncio
async def test_complete_and_reread(pt):
    await add_book(pt, title=TITLE, author=AUTHOR, total_pages=100)
    done = await complete_book(
        pt, title=TITLE, author=AUTHOR,
        started_date="2025-05-01", completed_date="2025-05-09", rating=4,
    )
    assert done["session"]["status"] == "read"

    reread = await start_reread(pt, title=TITLE, author=AUTHOR)
    assert reread["session_number"] == 2

    history = await get_reading_history(pt, title=TITLE, author=AUTHOR)
    assert [s["session_number"] for s in history] == [2, 1]
    assert [e["current_page"] for e in history[1]["progress_entries"]] == [1, 100]


@pytest.mark.asyncio
async def test_get_reading_history_unknown_book(pt):
    result = await get_reading_history(pt, title="Nothing", author="Nobody")
    assert result == []
