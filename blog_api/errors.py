"""
Error taxonomy for the Blog API and the FastAPI handlers that render it.

Every error response body has the shape ``{"message": str}``; request
validation failures additionally carry an ``errors`` list.  Storage failures
are logged with their traceback and surfaced as a generic 500 so no driver
detail reaches the caller.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class BlogAPIError(Exception):
    """Base class for errors that map directly onto an HTTP response."""

    status_code = 500
    default_message = "Server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(BlogAPIError):
    status_code = 400
    default_message = "Validation failed"


class Unauthenticated(BlogAPIError):
    status_code = 401
    default_message = "Not authenticated"


class Forbidden(BlogAPIError):
    status_code = 403
    default_message = "Not authorized"


class NotFound(BlogAPIError):
    status_code = 404
    default_message = "Not found"


class Conflict(BlogAPIError):
    """A uniqueness constraint rejected the write."""

    status_code = 400
    default_message = "Already exists"


class DuplicateSlug(Conflict):
    default_message = "Slug already in use"


class DuplicateName(Conflict):
    default_message = "Name already in use"


class DuplicateEmail(Conflict):
    default_message = "User already exists"


class StorageUnavailable(BlogAPIError):
    status_code = 500


class InvalidToken(Exception):
    """Raised by the token service; the authentication gate turns it into 401."""


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def _render(exc: BlogAPIError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(
        status_code=exc.status_code, content={"message": exc.message}, headers=headers
    )


async def _blog_api_error_handler(request: Request, exc: BlogAPIError) -> JSONResponse:
    if isinstance(exc, StorageUnavailable):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        # The caller only ever sees the generic message.
        return _render(StorageUnavailable())
    return _render(exc)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(part) for part in err["loc"] if part != "body"),
            "msg": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=jsonable_encoder({"message": "Validation failed", "errors": errors}),
    )


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def _storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Storage failure on %s %s", request.method, request.url.path, exc_info=exc)
    return _render(StorageUnavailable())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BlogAPIError, _blog_api_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, _storage_error_handler)
