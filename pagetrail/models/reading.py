from datetime import UTC, date, datetime
from enum import StrEnum

from sqlalchemy import Boolean, Date, DateTime, Enum, ForeignKey, Index, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pagetrail.database import Base
from pagetrail.errors import ValidationError


class ReadingStatus(StrEnum):
    TO_READ = "to-read"
    READ_NEXT = "read-next"
    READING = "reading"
    READ = "read"
    DNF = "dnf"

    @classmethod
    def parse(cls, value: "str | ReadingStatus") -> "ReadingStatus":
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(f"'{s.value}'" for s in cls)
            raise ValidationError(f"Invalid status {value!r}. Must be one of {allowed}") from None


class ReadingSession(Base):
    __tablename__ = "reading_sessions"
    __table_args__ = (
        UniqueConstraint("book_id", "session_number"),
        Index("ix_reading_sessions_book_active", "book_id", "is_active"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int | None] = mapped_column(Integer)
    book_id: Mapped[int] = mapped_column(ForeignKey("books.id", ondelete="CASCADE"))
    session_number: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[ReadingStatus] = mapped_column(
        Enum(ReadingStatus, native_enum=False, length=20, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    started_date: Mapped[date | None] = mapped_column(Date)
    completed_date: Mapped[date | None] = mapped_column(Date)
    dnf_date: Mapped[date | None] = mapped_column(Date)
    review: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC))

    book: Mapped["Book"] = relationship(back_populates="sessions")
    progress_entries: Mapped[list["ProgressLog"]] = relationship(
        back_populates="session",
        cascade="all, delete-orphan",
        order_by=lambda: [ProgressLog.progress_date, ProgressLog.id],
    )


class ProgressLog(Base):
    __tablename__ = "progress_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    book_id: Mapped[int] = mapped_column(ForeignKey("books.id", ondelete="CASCADE"), index=True)
    session_id: Mapped[int] = mapped_column(ForeignKey("reading_sessions.id", ondelete="CASCADE"), index=True)
    current_page: Mapped[int] = mapped_column(Integer, nullable=False)
    current_percentage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pages_read: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    progress_date: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=lambda: datetime.now(UTC))

    session: Mapped["ReadingSession"] = relationship(back_populates="progress_entries")
