import datetime as dt

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pagetrail.models import ReadingStatus


class StatusUpdate(BaseModel):
    # Plain str so unknown statuses reach the state machine and come back as a 400
    status: str
    rating: int | None = Field(None, ge=1, le=5, description="Stored on the book; send null to clear")
    review: str | None = None
    started_date: dt.date | None = None  # defaults to today when entering "reading"
    completed_date: dt.date | None = None  # defaults to today when entering "read" or "dnf"


class SessionUpdate(BaseModel):
    started_date: dt.date | None = None
    completed_date: dt.date | None = None
    dnf_date: dt.date | None = None
    review: str | None = None


class ProgressCreate(BaseModel):
    current_page: int | None = Field(None, ge=0, description="Absolute page reached")
    current_percentage: int | None = Field(None, ge=0, le=100, description="Percentage reached")
    notes: str | None = None
    progress_date: dt.date | None = None  # defaults to today in the ledger

    @model_validator(mode="after")
    def validate_progress_input(self):
        has_page = self.current_page is not None
        has_percentage = self.current_percentage is not None
        if not has_page and not has_percentage:
            raise ValueError("Must provide one of: current_page or current_percentage")
        if has_page and has_percentage:
            raise ValueError("Provide only one of: current_page or current_percentage")
        return self


class ProgressUpdate(BaseModel):
    current_page: int | None = Field(None, ge=0)
    current_percentage: int | None = Field(None, ge=0, le=100)
    notes: str | None = None
    progress_date: dt.date | None = None

    @model_validator(mode="after")
    def validate_progress_input(self):
        if self.current_page is not None and self.current_percentage is not None:
            raise ValueError("Provide only one of: current_page or current_percentage")
        return self


class CompleteBookRequest(BaseModel):
    total_pages: int | None = Field(None, gt=0)
    started_date: dt.date
    completed_date: dt.date
    rating: int | None = Field(None, ge=1, le=5)
    review: str | None = None

    @model_validator(mode="after")
    def validate_dates(self):
        if self.completed_date < self.started_date:
            raise ValueError("completed_date must be on or after started_date")
        return self


class ProgressLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    book_id: int
    session_id: int
    current_page: int
    current_percentage: int
    pages_read: int
    progress_date: dt.date
    notes: str | None
    created_at: dt.datetime


class ReadingSessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int | None
    book_id: int
    session_number: int
    status: ReadingStatus
    is_active: bool
    started_date: dt.date | None
    completed_date: dt.date | None
    dnf_date: dt.date | None
    review: str | None
    created_at: dt.datetime
    updated_at: dt.datetime


class ReadingSessionDetail(ReadingSessionResponse):
    progress_entries: list[ProgressLogResponse] = []


class ArchivedSessionResponse(BaseModel):
    from_session_number: int


class StatusChangeResponse(BaseModel):
    session: ReadingSessionResponse
    archived: ArchivedSessionResponse | None = None


class ProgressLogResult(BaseModel):
    entry: ProgressLogResponse
    completion_reached: bool
    session: ReadingSessionResponse


class CompleteBookResponse(BaseModel):
    session: ReadingSessionResponse
    entries: list[ProgressLogResponse] = []
