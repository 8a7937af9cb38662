"""Error taxonomy for the reading ledger.

Every error raised by the services derives from :class:`PagetrailError` and
carries the HTTP status the API layer should answer with, plus any structured
fields worth returning next to the message.
"""

from datetime import date
from typing import Any, Literal


class PagetrailError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def extra(self) -> dict[str, Any]:
        return {}


class ValidationError(PagetrailError):
    """Malformed or out-of-range input. Nothing has been written."""

    status_code = 400


class NotFoundError(PagetrailError):
    status_code = 404


class TimelineConflict(ValidationError):
    """A progress value would break the session's monotonic timeline."""

    def __init__(
        self,
        message: str,
        entry_id: int,
        entry_date: date,
        value: int,
        direction: Literal["before", "after"],
    ) -> None:
        super().__init__(message)
        self.entry_id = entry_id
        self.entry_date = entry_date
        self.value = value
        self.direction = direction

    def extra(self) -> dict[str, Any]:
        return {
            "conflicting_entry": {
                "id": self.entry_id,
                "date": self.entry_date.isoformat(),
                "progress": self.value,
                "type": self.direction,
            }
        }


class PageCountRejected(ValidationError):
    def __init__(self, requested: int, max_logged_page: int) -> None:
        super().__init__(
            f"Cannot reduce page count to {requested}. "
            f"You've already logged progress up to page {max_logged_page}. "
            "Please adjust your progress or use a higher page count."
        )
        self.requested = requested
        self.max_logged_page = max_logged_page

    def extra(self) -> dict[str, Any]:
        return {"requested": self.requested, "max_logged_page": self.max_logged_page}


class InternalError(PagetrailError):
    """Persistence failed part-way through an operation; the transaction was rolled back."""

    status_code = 500
