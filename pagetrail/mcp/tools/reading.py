from pagetrail.id import make_id
from pagetrail.mcp.client import PagetrailClient


async def set_reading_status(
    client: PagetrailClient,
    title: str,
    author: str,
    status: str,
    rating: int | None = None,
    review: str | None = None,
    started_date: str | None = None,
    completed_date: str | None = None,
) -> dict:
    book_id = make_id(title, author)
    body = {"status": status}
    if rating is not None:
        body["rating"] = rating
    if review is not None:
        body["review"] = review
    if started_date is not None:
        body["started_date"] = started_date
    if completed_date is not None:
        body["completed_date"] = completed_date
    return await client.post(f"/api/books/{book_id}/status", json=body)


async def log_reading_progress(
    client: PagetrailClient,
    title: str,
    author: str,
    current_page: int | None = None,
    current_percentage: int | None = None,
    notes: str | None = None,
    progress_date: str | None = None,
) -> dict:
    book_id = make_id(title, author)
    body = {}
    if current_page is not None:
        body["current_page"] = current_page
    if current_percentage is not None:
        body["current_percentage"] = current_percentage
    if notes is not None:
        body["notes"] = notes
    if progress_date is not None:
        body["progress_date"] = progress_date
    return await client.post(f"/api/books/{book_id}/progress", json=body)


async def edit_reading_progress(
    client: PagetrailClient,
    title: str,
    author: str,
    entry_id: int,
    current_page: int | None = None,
    current_percentage: int | None = None,
    notes: str | None = None,
    progress_date: str | None = None,
) -> dict:
    book_id = make_id(title, author)
    body = {}
    if current_page is not None:
        body["current_page"] = current_page
    if current_percentage is not None:
        body["current_percentage"] = current_percentage
    if notes is not None:
        body["notes"] = notes
    if progress_date is not None:
        body["progress_date"] = progress_date
    return await client.patch(f"/api/books/{book_id}/progress/{entry_id}", json=body)


async def start_reread(client: PagetrailClient, title: str, author: str) -> dict:
    book_id = make_id(title, author)
    return await client.post(f"/api/books/{book_id}/reread")


async def complete_book(
    client: PagetrailClient,
    title: str,
    author: str,
    started_date: str,
    completed_date: str,
    total_pages: int | None = None,
    rating: int | None = None,
    review: str | None = None,
) -> dict:
    book_id = make_id(title, author)
    body = {"started_date": started_date, "completed_date": completed_date}
    if total_pages is not None:
        body["total_pages"] = total_pages
    if rating is not None:
        body["rating"] = rating
    if review is not None:
        body["review"] = review
    return await client.post(f"/api/books/{book_id}/complete", json=body)


async def get_reading_history(
    client: PagetrailClient,
    title: str,
    author: str,
) -> list[dict]:
    book_id = make_id(title, author)
    result = await client.get(f"/api/books/{book_id}/sessions")
    if isinstance(result, dict) and result.get("error"):
        return []
    return result
