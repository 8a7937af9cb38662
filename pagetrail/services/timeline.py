"""Temporal consistency checks for progress entries.

A session's progress must never go backwards in time: a value logged on a
given date has to be at least everything logged before it and at most
everything logged after it. Entries on the same date as the candidate do
not constrain it.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from typing import Literal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pagetrail.errors import TimelineConflict
from pagetrail.models import ProgressLog


class TimelineUnit(StrEnum):
    PAGE = "page"
    PERCENTAGE = "percentage"


@dataclass
class Conflict:
    entry_id: int
    entry_date: date
    value: int
    direction: Literal["before", "after"]


@dataclass
class TimelineResult:
    conflict: Conflict | None = None
    message: str | None = None

    @property
    def valid(self) -> bool:
        return self.conflict is None

    def raise_for_conflict(self) -> None:
        if self.conflict is not None:
            raise TimelineConflict(
                self.message,
                entry_id=self.conflict.entry_id,
                entry_date=self.conflict.entry_date,
                value=self.conflict.value,
                direction=self.conflict.direction,
            )


def _format_date(d: date) -> str:
    return f"{d:%b} {d.day}, {d.year}"


def _format_value(value: int, unit: TimelineUnit) -> str:
    if unit is TimelineUnit.PERCENTAGE:
        return f"{value}%"
    return f"page {value}"


def _value_of(entry: ProgressLog, unit: TimelineUnit) -> int:
    if unit is TimelineUnit.PERCENTAGE:
        return entry.current_percentage
    return entry.current_page


def validate_timeline(
    entries: Iterable[ProgressLog],
    candidate_date: date,
    candidate_value: int,
    unit: TimelineUnit,
    exclude_entry_id: int | None = None,
) -> TimelineResult:
    before: list[ProgressLog] = []
    after: list[ProgressLog] = []
    for entry in entries:
        if exclude_entry_id is not None and entry.id == exclude_entry_id:
            continue
        if entry.progress_date < candidate_date:
            before.append(entry)
        elif entry.progress_date > candidate_date:
            after.append(entry)

    if before:
        # Ties go to the latest entry so the message points at the most recent date.
        highest = max(before, key=lambda e: (_value_of(e, unit), e.progress_date))
        max_before = _value_of(highest, unit)
        if candidate_value < max_before:
            return TimelineResult(
                conflict=Conflict(highest.id, highest.progress_date, max_before, "before"),
                message=(
                    f"Progress must be at least {_format_value(max_before, unit)} "
                    f"(your progress on {_format_date(highest.progress_date)})"
                ),
            )

    if after:
        lowest = min(after, key=lambda e: (_value_of(e, unit), e.progress_date))
        min_after = _value_of(lowest, unit)
        if candidate_value > min_after:
            return TimelineResult(
                conflict=Conflict(lowest.id, lowest.progress_date, min_after, "after"),
                message=(
                    f"Progress cannot exceed {_format_value(min_after, unit)} "
                    f"(your progress on {_format_date(lowest.progress_date)})"
                ),
            )

    return TimelineResult()


async def validate_for_session(
    db: AsyncSession,
    session_id: int,
    candidate_date: date,
    candidate_value: int,
    unit: TimelineUnit,
    exclude_entry_id: int | None = None,
) -> TimelineResult:
    """Load the session's entries inside the caller's transaction and validate against them."""
    result = await db.execute(select(ProgressLog).where(ProgressLog.session_id == session_id))
    return validate_timeline(
        result.scalars().all(), candidate_date, candidate_value, unit, exclude_entry_id
    )


async def check_timeline(
    db: AsyncSession,
    session_id: int,
    candidate_date: date,
    candidate_value: int,
    unit: TimelineUnit,
    exclude_entry_id: int | None = None,
) -> None:
    """Raise :class:`TimelineConflict` if the candidate breaks the session's ordering."""
    result = await validate_for_session(
        db, session_id, candidate_date, candidate_value, unit, exclude_entry_id
    )
    result.raise_for_conflict()
