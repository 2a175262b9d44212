"""
Application error hierarchy and the FastAPI handlers that render it.

Every failure leaves the API in the same JSON envelope, ``{"msg": ...}``,
with an ``errors`` list added for request validation failures.  Services
raise the ``PostAPIError`` subclasses below; unexpected store failures are
logged once and surfaced as ``ServerError``.
"""
import logging
from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.status import (
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_422_UNPROCESSABLE_CONTENT,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

logger = logging.getLogger(__name__)


class PostAPIError(Exception):
    """Base class for errors that map onto an HTTP status and message."""

    status_code: int = HTTP_500_INTERNAL_SERVER_ERROR
    msg: str = "Server Error"

    def __init__(self, msg: str | None = None) -> None:
        if msg is not None:
            self.msg = msg
        super().__init__(self.msg)


class NotFoundError(PostAPIError):
    status_code = HTTP_404_NOT_FOUND
    msg = "Post not found"


class ForbiddenError(PostAPIError):
    status_code = HTTP_403_FORBIDDEN
    msg = "Access denied. Not the post author"


class UnauthenticatedError(PostAPIError):
    status_code = HTTP_401_UNAUTHORIZED
    msg = "No token, authorization denied"


class InvalidQueryError(PostAPIError):
    status_code = HTTP_422_UNPROCESSABLE_CONTENT
    msg = "Invalid query parameters"


class ServerError(PostAPIError):
    pass


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """Translate any SQLAlchemy failure inside the block into ``ServerError``."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Post store failure during %s", operation)
        raise ServerError() from exc


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

async def post_api_error_handler(request: Request, exc: PostAPIError) -> JSONResponse:
    if exc.status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.msg)
    else:
        logger.info("%s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.msg)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == HTTP_401_UNAUTHORIZED else None
    return JSONResponse({"msg": exc.msg}, status_code=exc.status_code, headers=headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        {"msg": "Validation failed", "errors": jsonable_encoder(exc.errors())},
        status_code=HTTP_422_UNPROCESSABLE_CONTENT,
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        {"msg": str(exc.detail)},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


async def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    # Reached only for store failures raised outside a service call.
    logger.error("Unhandled store failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse({"msg": ServerError.msg}, status_code=HTTP_500_INTERNAL_SERVER_ERROR)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PostAPIError, post_api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_error_handler)
