import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from pagetrail.errors import InternalError, PagetrailError
from pagetrail.routers import books, reading
from pagetrail.services.effects import default_handlers
from pagetrail.services.locks import BookLocks

logger = logging.getLogger(__name__)


async def handle_pagetrail_error(request: Request, exc: PagetrailError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, **exc.extra()})


async def handle_database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error during %s %s", request.method, request.url.path)
    return await handle_pagetrail_error(
        request, InternalError("The operation could not be saved and was rolled back")
    )


def create_app() -> FastAPI:
    app = FastAPI(title="Pagetrail", version="0.1.0")
    app.state.book_locks = BookLocks()
    app.state.effect_handlers = default_handlers()
    app.add_exception_handler(PagetrailError, handle_pagetrail_error)
    app.add_exception_handler(SQLAlchemyError, handle_database_error)
    app.include_router(books.router)
    app.include_router(reading.router)
    return app


app = create_app()
