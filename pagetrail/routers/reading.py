from collections.abc import Mapping

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from pagetrail.database import get_session
from pagetrail.dependencies import get_book_locks, get_effect_handlers
from pagetrail.errors import NotFoundError
from pagetrail.models import ReadingSession
from pagetrail.schemas.reading import (
    ArchivedSessionResponse,
    CompleteBookRequest,
    CompleteBookResponse,
    ProgressCreate,
    ProgressLogResponse,
    ProgressLogResult,
    ProgressUpdate,
    ReadingSessionDetail,
    ReadingSessionResponse,
    SessionUpdate,
    StatusChangeResponse,
    StatusUpdate,
)
from pagetrail.services import ledger, reading_service, sessions
from pagetrail.services.effects import EffectHandler, EffectKind, run_effects
from pagetrail.services.locks import BookLocks

router = APIRouter(tags=["reading"])


@router.post("/api/books/{book_id}/status", response_model=StatusChangeResponse)
async def set_status(
    book_id: int,
    data: StatusUpdate,
    session: AsyncSession = Depends(get_session),
    locks: BookLocks = Depends(get_book_locks),
    handlers: Mapping[EffectKind, EffectHandler] = Depends(get_effect_handlers),
):
    async with locks.hold(book_id):
        change = await sessions.set_status(session, book_id, data)
        await session.commit()
    await session.refresh(change.session)
    await run_effects(change.effects, handlers)

    archived = None
    if change.archived is not None:
        archived = ArchivedSessionResponse(from_session_number=change.archived.from_session_number)
    return StatusChangeResponse(
        session=ReadingSessionResponse.model_validate(change.session),
        archived=archived,
    )


@router.post("/api/books/{book_id}/progress", response_model=ProgressLogResult, status_code=201)
async def log_progress(
    book_id: int,
    data: ProgressCreate,
    session: AsyncSession = Depends(get_session),
    locks: BookLocks = Depends(get_book_locks),
    handlers: Mapping[EffectKind, EffectHandler] = Depends(get_effect_handlers),
):
    async with locks.hold(book_id):
        result = await reading_service.log_progress(session, book_id, data)
        await session.commit()
    await session.refresh(result.entry)
    await session.refresh(result.session)
    await run_effects(result.effects, handlers)
    return ProgressLogResult(
        entry=ProgressLogResponse.model_validate(result.entry),
        completion_reached=result.completion_reached,
        session=ReadingSessionResponse.model_validate(result.session),
    )


@router.get("/api/books/{book_id}/progress", response_model=list[ProgressLogResponse])
async def get_active_progress(book_id: int, session: AsyncSession = Depends(get_session)):
    await sessions.get_book_or_404(session, book_id)
    active = await sessions.get_active_session(session, book_id)
    if active is None:
        return []
    return await ledger.get_entries(session, active.id)


@router.patch("/api/books/{book_id}/progress/{entry_id}", response_model=ProgressLogResponse)
async def edit_progress(
    book_id: int,
    entry_id: int,
    data: ProgressUpdate,
    session: AsyncSession = Depends(get_session),
    locks: BookLocks = Depends(get_book_locks),
    handlers: Mapping[EffectKind, EffectHandler] = Depends(get_effect_handlers),
):
    async with locks.hold(book_id):
        result = await reading_service.edit_progress(session, book_id, entry_id, data)
        await session.commit()
    await session.refresh(result.entry)
    await run_effects(result.effects, handlers)
    return result.entry


@router.get("/api/books/{book_id}/sessions", response_model=list[ReadingSessionDetail])
async def list_sessions(book_id: int, session: AsyncSession = Depends(get_session)):
    return await sessions.list_sessions(session, book_id)


@router.get("/api/sessions/{session_id}", response_model=ReadingSessionDetail)
async def get_reading_session(session_id: int, session: AsyncSession = Depends(get_session)):
    result = await session.execute(
        select(ReadingSession)
        .where(ReadingSession.id == session_id)
        .options(selectinload(ReadingSession.progress_entries))
    )
    reading_session = result.scalar_one_or_none()
    if reading_session is None:
        raise NotFoundError("Reading session not found")
    return reading_session


@router.patch("/api/sessions/{session_id}", response_model=ReadingSessionResponse)
async def update_reading_session(
    session_id: int,
    data: SessionUpdate,
    session: AsyncSession = Depends(get_session),
):
    reading_session = await sessions.update_session(session, session_id, data)
    await session.commit()
    await session.refresh(reading_session)
    return reading_session


@router.post("/api/books/{book_id}/reread", response_model=ReadingSessionResponse, status_code=201)
async def start_reread(
    book_id: int,
    session: AsyncSession = Depends(get_session),
    locks: BookLocks = Depends(get_book_locks),
):
    async with locks.hold(book_id):
        reading_session = await sessions.start_reread(session, book_id)
        await session.commit()
    await session.refresh(reading_session)
    return reading_session


@router.post("/api/books/{book_id}/complete", response_model=CompleteBookResponse)
async def complete_book(
    book_id: int,
    data: CompleteBookRequest,
    session: AsyncSession = Depends(get_session),
    locks: BookLocks = Depends(get_book_locks),
    handlers: Mapping[EffectKind, EffectHandler] = Depends(get_effect_handlers),
):
    async with locks.hold(book_id):
        result = await reading_service.complete_book(session, book_id, data)
        await session.commit()
    await session.refresh(result.session)
    for entry in result.entries:
        await session.refresh(entry)
    await run_effects(result.effects, handlers)
    return CompleteBookResponse(
        session=ReadingSessionResponse.model_validate(result.session),
        entries=[ProgressLogResponse.model_validate(e) for e in result.entries],
    )
