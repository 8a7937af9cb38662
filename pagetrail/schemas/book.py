from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class BookCreate(BaseModel):
    title: str
    author: str
    isbn: str | None = None
    publisher: str | None = None
    description: str | None = None
    total_pages: int | None = Field(None, gt=0)
    rating: int | None = Field(None, ge=1, le=5)


class BookUpdate(BaseModel):
    title: str | None = None
    author: str | None = None
    isbn: str | None = None
    publisher: str | None = None
    description: str | None = None
    total_pages: int | None = None  # checked against logged progress
    rating: int | None = Field(None, ge=1, le=5)


class TotalPagesUpdate(BaseModel):
    # Range is enforced by the page-count guard so bad values come back as 400
    total_pages: int


class BookResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    author: str
    isbn: str | None
    publisher: str | None
    description: str | None
    total_pages: int | None
    rating: int | None
    created_at: datetime
    updated_at: datetime


class BookDetail(BookResponse):
    active_session: "ReadingSessionResponse | None" = None
    latest_progress: "ProgressLogResponse | None" = None
    total_reads: int = 0


class PageCountResponse(BaseModel):
    book: BookResponse
    sessions_recomputed: int
    entries_updated: int


from pagetrail.schemas.reading import ProgressLogResponse, ReadingSessionResponse  # noqa: E402

BookDetail.model_rebuild()
