from pagetrail.id import make_id
from pagetrail.mcp.client import PagetrailClient


async def add_book(
    client: PagetrailClient,
    title: str,
    author: str,
    total_pages: int | None = None,
    status: str | None = None,
) -> dict:
    body = {"title": title, "author": author}
    if total_pages is not None:
        body["total_pages"] = total_pages
    result = await client.post("/api/books", json=body)
    if isinstance(result, dict) and result.get("error"):
        return result

    if status:
        change = await client.post(f"/api/books/{result['id']}/status", json={"status": status})
        if isinstance(change, dict) and change.get("error"):
            return change
        result["session"] = change["session"]

    return result


async def get_book(client: PagetrailClient, title: str, author: str) -> dict:
    return await client.get(f"/api/books/by-name/{title}/{author}")


async def update_page_count(
    client: PagetrailClient,
    title: str,
    author: str,
    total_pages: int,
) -> dict:
    book_id = make_id(title, author)
    return await client.patch(f"/api/books/{book_id}/total-pages", json={"total_pages": total_pages})
