import enum
from collections.abc import Mapping, Sequence
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError


class ErrorKind(enum.StrEnum):
    """Classification carried by every domain error."""

    BAD_INPUT = "BAD_INPUT"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    CONFIGURATION = "CONFIGURATION"
    INTERNAL = "INTERNAL"


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str
    kind: ErrorKind
    detail: str | None = None
    status_code: int


class AppError(Exception):
    """Base application exception."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class BadInputError(AppError):
    """Malformed or rule-violating input."""

    kind = ErrorKind.BAD_INPUT

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST)


class ForbiddenError(AppError):
    """Caller may not act on the target."""

    kind = ErrorKind.FORBIDDEN

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_403_FORBIDDEN)


class NotFoundError(AppError):
    """Target does not exist, or must not be observable to the caller."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND)


class ConflictError(AppError):
    """Uniqueness violation or a decision racing another decision."""

    kind = ErrorKind.CONFLICT

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_409_CONFLICT)


class ConfigurationError(AppError):
    """Required configuration is invalid; dependent operations are refused."""

    kind = ErrorKind.CONFIGURATION

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)


def format_validation_errors(errors: Sequence[Mapping[str, Any]]) -> str:
    """Render pydantic error dicts as one human-readable line."""
    messages: list[str] = []
    for err in errors:
        # Pydantic prefixes ValueError messages raised from our own validators.
        msg = str(err.get("msg", "Invalid value")).removeprefix("Value error, ")
        if err.get("type") == "value_error":
            messages.append(msg)
            continue
        loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(messages) or "Invalid request payload"


def bad_input_from_validation(exc: ValidationError) -> BadInputError:
    """Collapse a pydantic validation error into a single BadInputError."""
    return BadInputError(format_validation_errors(exc.errors()))


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=type(exc).__name__,
            kind=exc.kind,
            detail=exc.message,
            status_code=exc.status_code,
        ).model_dump(),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(
            error="BadInputError",
            kind=ErrorKind.BAD_INPUT,
            detail=format_validation_errors(exc.errors()),
            status_code=status.HTTP_400_BAD_REQUEST,
        ).model_dump(),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
