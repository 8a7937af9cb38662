"""Automatic completion: the one status change progress itself can cause."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from pagetrail.models import ProgressLog, ReadingSession, ReadingStatus
from pagetrail.services.calculations import is_complete
from pagetrail.services.sessions import complete_session

logger = logging.getLogger(__name__)


async def on_progress_appended(
    db: AsyncSession, entry: ProgressLog, session: ReadingSession
) -> ReadingSession | None:
    """Finish the session when a freshly logged entry reaches 100%.

    The only automatic status transition. Returns the finished session, or
    None when nothing changed. The entry itself is left as logged.
    """
    if not is_complete(entry.current_percentage):
        return None
    if session.status != ReadingStatus.READING:
        logger.debug(
            "Entry %s reached %s%% but session #%s is %s, not finishing",
            entry.id, entry.current_percentage, session.session_number, session.status,
        )
        return None
    return await complete_session(db, session, entry.progress_date)
