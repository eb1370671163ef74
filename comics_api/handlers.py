"""Translate exceptions into the JSON error envelope."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from comics_api import schemas
from comics_api.errors import ComicsError, StoreError

logger = logging.getLogger(__name__)

READ_METHODS = {"GET", "HEAD", "OPTIONS"}
_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}


def error_response(
    status_code: int, message: str, headers: dict[str, str] | None = None
) -> JSONResponse:
    body = schemas.ErrorResponse(error=message)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
        headers=headers,
    )


def describe_validation_error(errors: list[Any]) -> str:
    """Render the first pydantic error as ``"field: message"``."""
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = [str(part) for part in first.get("loc", ())]
    if len(location) > 1 and location[0] in _LOCATION_PREFIXES:
        location = location[1:]
    message = first.get("msg", "Invalid value")
    if not location:
        return message
    return f"{'.'.join(location)}: {message}"


async def handle_comics_error(request: Request, exc: ComicsError) -> JSONResponse:
    status_code = exc.status_code
    if isinstance(exc, StoreError):
        if request.method.upper() not in READ_METHODS:
            status_code = exc.write_status_code
        logger.error(
            "store error on %s %s: %s", request.method, request.url.path, exc.message
        )
    return error_response(status_code, exc.message)


async def handle_request_validation(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    message = describe_validation_error(list(exc.errors()))
    logger.info(
        "rejected %s %s: %s", request.method, request.url.path, message
    )
    return error_response(status.HTTP_400_BAD_REQUEST, message)


async def handle_http_exception(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail), headers=exc.headers)


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ComicsError, handle_comics_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(Exception, handle_unexpected)


__all__ = ["describe_validation_error", "error_response", "register_exception_handlers"]
