"""Guarded changes to a book's total page count.

Lowering the page count below a page that was already logged would make that
progress impossible, so it is refused. An accepted change rewrites every
session's derived percentages in the same transaction as the new count.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from pagetrail.errors import PageCountRejected, ValidationError
from pagetrail.models import Book
from pagetrail.services.ledger import max_logged_page, recompute_book
from pagetrail.services.sessions import get_book_or_404

logger = logging.getLogger(__name__)


@dataclass
class PageCountChange:
    book: Book
    sessions_recomputed: int = 0
    entries_updated: int = 0


async def change_total_pages(db: AsyncSession, book_id: int, new_total: int) -> PageCountChange:
    if isinstance(new_total, bool) or not isinstance(new_total, int) or new_total <= 0:
        raise ValidationError("Total pages must be a positive whole number")

    book = await get_book_or_404(db, book_id)
    highest = await max_logged_page(db, book_id)
    if new_total < highest:
        logger.warning(
            "Rejected page count %s for book %s: progress logged up to page %s",
            new_total, book_id, highest,
        )
        raise PageCountRejected(new_total, highest)

    book.total_pages = new_total
    await db.flush()
    recomputed = await recompute_book(db, book_id, new_total)

    change = PageCountChange(
        book=book,
        sessions_recomputed=len(recomputed),
        entries_updated=sum(len(entries) for entries in recomputed.values()),
    )
    logger.info(
        "Updated total pages of book %s to %s; recomputed %s entries across %s sessions",
        book_id, new_total, change.entries_updated, change.sessions_recomputed,
    )
    return change
