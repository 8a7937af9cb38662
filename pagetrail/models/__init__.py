from pagetrail.models.book import Book
from pagetrail.models.reading import ProgressLog, ReadingSession, ReadingStatus

__all__ = ["Book", "ProgressLog", "ReadingSession", "ReadingStatus"]
