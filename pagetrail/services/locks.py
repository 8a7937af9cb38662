import asyncio
from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class BookLocks:
    """Serializes ledger writes per book within one process.

    Held across validate, write and commit so two requests can't both pass
    the timeline check against the same snapshot.
    """

    def __init__(self) -> None:
        self._locks: defaultdict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

    @asynccontextmanager
    async def hold(self, book_id: int) -> AsyncIterator[None]:
        async with self._locks[book_id]:
            yield
