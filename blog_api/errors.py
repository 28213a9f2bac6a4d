"""
Error taxonomy shared by the store, the access layer and the routers.

Every error carries the HTTP status it maps to; the handlers registered in
``register_error_handlers`` turn them into ``{"message": ...}`` responses.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class BlogError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(BlogError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class Unauthorized(BlogError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class Forbidden(BlogError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFound(BlogError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Conflict(BlogError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Already exists"


class InternalError(BlogError):
    pass


def format_validation_errors(errors) -> str:
    """Flatten pydantic error dicts into one readable line."""
    parts = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "path", "query")]
        where = ".".join(loc)
        parts.append(f"{err.get('msg')} at \"{where}\"" if where else str(err.get("msg")))
    return "Validation error: " + "; ".join(parts)


async def _blog_error_handler(request: Request, exc: BlogError) -> JSONResponse:
    if exc.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN):
        logger.info("%s %s denied: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    path_errors = [e for e in exc.errors() if e.get("loc") and e["loc"][0] == "path"]
    if path_errors:
        message = "Invalid post ID"
    else:
        message = format_validation_errors(exc.errors())
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": message})


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": InternalError.default_message},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BlogError, _blog_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
