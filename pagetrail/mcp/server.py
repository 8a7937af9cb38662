from fastmcp import FastMCP

from pagetrail.mcp.client import PagetrailClient
from pagetrail.mcp.tools.library import (
    add_book as _add_book,
    get_book as _get_book,
    update_page_count as _update_page_count,
)
from pagetrail.mcp.tools.reading import (
    set_reading_status as _set_reading_status,
    log_reading_progress as _log_reading_progress,
    edit_reading_progress as _edit_reading_progress,
    start_reread as _start_reread,
    complete_book as _complete_book,
    get_reading_history as _get_reading_history,
)


def create_mcp_server(client: PagetrailClient) -> FastMCP:
    mcp = FastMCP(
        name="pagetrail",
        instructions=(
            "Pagetrail tracks reading progress. Use these tools to add books, move "
            "them through reading statuses (to-read, read-next, reading, read, dnf), "
            "log page or percentage progress, and review reading history. Books are "
            "identified by title and author."
        ),
    )

    @mcp.tool()
    async def add_book(
        title: str,
        author: str,
        total_pages: int | None = None,
        status: str | None = None,
    ) -> dict:
        """Add a book to the library, optionally with its page count and an
        initial reading status."""
        return await _add_book(client, title=title, author=author, total_pages=total_pages, status=status)

    @mcp.tool()
    async def get_book(title: str, author: str) -> dict:
        """Get a book with its active reading session and latest progress."""
        return await _get_book(client, title=title, author=author)

    @mcp.tool()
    async def update_page_count(title: str, author: str, total_pages: int) -> dict:
        """Change a book's total page count. Logged progress percentages are
        recalculated; the count can't drop below a page already logged."""
        return await _update_page_count(client, title=title, author=author, total_pages=total_pages)

    @mcp.tool()
    async def set_reading_status(
        title: str,
        author: str,
        status: str,
        rating: int | None = None,
        review: str | None = None,
        started_date: str | None = None,
        completed_date: str | None = None,
    ) -> dict:
        """Set a book's reading status: to-read, read-next, reading, read or dnf.
        Moving a book with progress back from reading archives that session and
        starts a new one. Rating is 1-5. Dates are YYYY-MM-DD."""
        return await _set_reading_status(
            client, title=title, author=author, status=status,
            rating=rating, review=review,
            started_date=started_date, completed_date=completed_date,
        )

    @mcp.tool()
    async def log_reading_progress(
        title: str,
        author: str,
        current_page: int | None = None,
        current_percentage: int | None = None,
        notes: str | None = None,
        progress_date: str | None = None,
    ) -> dict:
        """Log progress on the book currently being read, as either a page or a
        percentage. Reaching 100% marks the book as read. Optionally set the
        date (YYYY-MM-DD)."""
        return await _log_reading_progress(
            client, title=title, author=author,
            current_page=current_page, current_percentage=current_percentage,
            notes=notes, progress_date=progress_date,
        )

    @mcp.tool()
    async def edit_reading_progress(
        title: str,
        author: str,
        entry_id: int,
        current_page: int | None = None,
        current_percentage: int | None = None,
        notes: str | None = None,
        progress_date: str | None = None,
    ) -> dict:
        """Correct an existing progress entry. The entry must stay consistent
        with the entries logged before and after it."""
        return await _edit_reading_progress(
            client, title=title, author=author, entry_id=entry_id,
            current_page=current_page, current_percentage=current_percentage,
            notes=notes, progress_date=progress_date,
        )

    @mcp.tool()
    async def start_reread(title: str, author: str) -> dict:
        """Start reading a finished book again as a new session."""
        return await _start_reread(client, title=title, author=author)

    @mcp.tool()
    async def complete_book(
        title: str,
        author: str,
        started_date: str,
        completed_date: str,
        total_pages: int | None = None,
        rating: int | None = None,
        review: str | None = None,
    ) -> dict:
        """Record a finished read in one step, with start and finish dates
        (YYYY-MM-DD), and optionally the page count, a 1-5 rating and a review."""
        return await _complete_book(
            client, title=title, author=author,
            started_date=started_date, completed_date=completed_date,
            total_pages=total_pages, rating=rating, review=review,
        )

    @mcp.tool()
    async def get_reading_history(title: str, author: str) -> list[dict]:
        """Get every reading session of a book, newest first, with its progress entries."""
        return await _get_reading_history(client, title=title, author=author)

    return mcp
