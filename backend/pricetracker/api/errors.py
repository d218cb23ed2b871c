"""Map every failure to a single ``{message[, field]}`` JSON response."""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}


def first_error_field(loc) -> Optional[str]:
    """Dotted field path of a validation error, without the request-part prefix."""
    parts = [str(part) for part in loc]
    if parts and parts[0] in _LOCATION_PREFIXES:
        parts = parts[1:]
    return ".".join(parts) or None


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if not errors:
        return JSONResponse(status_code=400, content={"message": "Invalid request"})

    first = errors[0]
    content = {"message": first.get("msg") or "Invalid request"}
    # A JSON decode error's loc carries a character offset, not a field
    field = None if first.get("type") == "json_invalid" else first_error_field(first.get("loc", ()))
    if field:
        content["field"] = field
    logger.debug(f"{request.method} {request.url.path} rejected: {content}")
    return JSONResponse(status_code=400, content=content)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
