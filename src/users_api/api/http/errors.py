"""Translation of service errors into HTTP responses."""

from typing import Final

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from loguru import logger
from starlette.responses import JSONResponse

from src.users_api.core.errors import ErrorKind, UserServiceError
from src.users_api.runtime.context import get_config

STATUS_BY_KIND: Final[dict[ErrorKind, int]] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.VALIDATION_FAILED: 400,
    ErrorKind.INTERNAL: 500,
}

# Location prefixes FastAPI puts in front of the offending field
_LOCATION_SOURCES: Final = frozenset({"body", "path", "query", "header", "cookie"})


def internal_error_detail(message: str) -> str:
    if get_config().app.expose_error_details and message:
        return f"Internal server error: {message}"
    return "Internal server error"


def error_response(error: UserServiceError) -> JSONResponse:
    status_code = STATUS_BY_KIND[error.kind]
    if error.kind is ErrorKind.VALIDATION_FAILED:
        content = {"errors": error.errors}
    elif error.kind is ErrorKind.INTERNAL:
        content = {"detail": internal_error_detail(error.message)}
    else:
        content = {"detail": error.message}
    return JSONResponse(status_code=status_code, content=content)


def _field_key(location: tuple) -> str:
    parts = list(location)
    if parts and parts[0] in _LOCATION_SOURCES:
        parts = parts[1:]
    key = ""
    for part in parts:
        if isinstance(part, int):
            key += f"[{part}]"
        else:
            key += f".{part}" if key else str(part)
    return key or "body"


def validation_errors(exc: RequestValidationError) -> dict[str, list[str]]:
    """Group request validation failures by field."""
    grouped: dict[str, list[str]] = {}
    for detail in exc.errors():
        # Unparseable bodies carry the character offset, not a field, in their location
        if detail["type"] == "json_invalid":
            key = "body"
        else:
            key = _field_key(tuple(detail["loc"]))
        grouped.setdefault(key, []).append(detail["msg"])
    return grouped


async def user_service_error_handler(request: Request, exc: UserServiceError) -> JSONResponse:
    if exc.kind is ErrorKind.INTERNAL:
        logger.bind(error_type=type(exc).__name__).error("request.store_error: {}", exc.message)
    return error_response(exc)


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = validation_errors(exc)
    logger.bind(status_code=400).info("request.validation_error: {}", list(errors))
    return JSONResponse(status_code=400, content={"errors": errors})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(UserServiceError, user_service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
