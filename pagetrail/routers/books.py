from collections.abc import Mapping
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pagetrail.database import get_session
from pagetrail.dependencies import get_book_locks, get_effect_handlers
from pagetrail.id import make_id
from pagetrail.models import Book, ProgressLog, ReadingSession, ReadingStatus
from pagetrail.schemas.book import (
    BookCreate,
    BookDetail,
    BookResponse,
    BookUpdate,
    PageCountResponse,
    TotalPagesUpdate,
)
from pagetrail.services.effects import EffectHandler, EffectKind, SideEffect, run_effects, sync_rating
from pagetrail.services.locks import BookLocks
from pagetrail.services.page_count import change_total_pages
from pagetrail.services.sessions import get_active_session

router = APIRouter(prefix="/api/books", tags=["books"])


@router.get("", response_model=list[BookResponse])
async def list_books(
    author: str | None = None,
    q: str | None = None,
    status: ReadingStatus | None = Query(None, description="Only books whose active session has this status"),
    sort: Literal["title", "author", "created_at"] = "title",
    order: Literal["asc", "desc"] = "asc",
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_session),
):
    stmt = select(Book)
    if author:
        stmt = stmt.where(Book.author.ilike(f"%{author}%"))
    if q:
        stmt = stmt.where(Book.title.ilike(f"%{q}%"))
    if status:
        stmt = stmt.join(ReadingSession, ReadingSession.book_id == Book.id).where(
            ReadingSession.is_active.is_(True), ReadingSession.status == status
        )
    col = getattr(Book, sort)
    stmt = stmt.order_by(col.desc() if order == "desc" else col.asc())
    stmt = stmt.offset(offset).limit(limit)
    result = await session.execute(stmt)
    return result.scalars().all()


@router.get("/by-name/{title}/{author}", response_model=BookDetail)
async def get_book_by_name(
    title: str, author: str, session: AsyncSession = Depends(get_session)
):
    book_id = make_id(title, author)
    return await get_book(book_id, session)


@router.get("/{book_id}", response_model=BookDetail)
async def get_book(book_id: int, session: AsyncSession = Depends(get_session)):
    book = await session.get(Book, book_id)
    if book is None:
        raise HTTPException(status_code=404, detail="Book not found")

    active = await get_active_session(session, book_id)
    latest = None
    if active is not None:
        result = await session.execute(
            select(ProgressLog)
            .where(ProgressLog.session_id == active.id)
            .order_by(ProgressLog.progress_date.desc(), ProgressLog.id.desc())
            .limit(1)
        )
        latest = result.scalar_one_or_none()
    total_reads = await session.scalar(
        select(func.count(ReadingSession.id)).where(
            ReadingSession.book_id == book_id, ReadingSession.status == ReadingStatus.READ
        )
    )

    book_dict = BookDetail.model_validate(book).model_dump()
    book_dict["active_session"] = active
    book_dict["latest_progress"] = latest
    book_dict["total_reads"] = total_reads or 0
    return BookDetail(**book_dict)


@router.post("", response_model=BookResponse, status_code=201)
async def create_book(data: BookCreate, session: AsyncSession = Depends(get_session)):
    book_id = make_id(data.title, data.author)
    existing = await session.get(Book, book_id)
    if existing is not None:
        raise HTTPException(status_code=409, detail="Book already exists")

    book = Book(id=book_id, **data.model_dump())
    session.add(book)
    await session.commit()
    await session.refresh(book)
    return book


@router.put("/{book_id}", response_model=BookResponse)
async def update_book(
    book_id: int,
    data: BookUpdate,
    session: AsyncSession = Depends(get_session),
    locks: BookLocks = Depends(get_book_locks),
    handlers: Mapping[EffectKind, EffectHandler] = Depends(get_effect_handlers),
):
    changes = data.model_dump(exclude_unset=True)
    effects: list[SideEffect] = []
    async with locks.hold(book_id):
        book = await session.get(Book, book_id)
        if book is None:
            raise HTTPException(status_code=404, detail="Book not found")

        total_pages = changes.pop("total_pages", book.total_pages)
        if total_pages != book.total_pages:
            await change_total_pages(session, book_id, total_pages)
        if "rating" in changes and changes["rating"] != book.rating:
            effects.append(sync_rating(book_id, changes["rating"]))
        for key, value in changes.items():
            setattr(book, key, value)

        await session.commit()
    await session.refresh(book)
    await run_effects(effects, handlers)
    return book


@router.patch("/{book_id}/total-pages", response_model=PageCountResponse)
async def update_total_pages(
    book_id: int,
    data: TotalPagesUpdate,
    session: AsyncSession = Depends(get_session),
    locks: BookLocks = Depends(get_book_locks),
):
    async with locks.hold(book_id):
        change = await change_total_pages(session, book_id, data.total_pages)
        await session.commit()
    await session.refresh(change.book)
    return PageCountResponse(
        book=BookResponse.model_validate(change.book),
        sessions_recomputed=change.sessions_recomputed,
        entries_updated=change.entries_updated,
    )


@router.delete("/{book_id}", status_code=204)
async def delete_book(book_id: int, session: AsyncSession = Depends(get_session)):
    book = await session.get(Book, book_id)
    if book is None:
        raise HTTPException(status_code=404, detail="Book not found")
    await session.delete(book)
    await session.commit()
