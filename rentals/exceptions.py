from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse


class RentalError(Exception):
    """Base class for errors surfaced to the storefront and back office."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class ValidationError(RentalError):
    """Malformed booking / item drafts. Never partially applied."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidTransitionError(ValidationError):
    pass


class AvailabilityError(RentalError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, item_name: str):
        super().__init__(f'Item "{item_name}" is not available for the selected dates')
        self.item_name = item_name


class NotFoundError(RentalError):
    status_code = status.HTTP_404_NOT_FOUND


class PersistenceError(RentalError):
    """Storage failure during a multi-step write. Fatal to the request, not retried."""


async def _rental_error_handler(request: Request, exc: RentalError) -> JSONResponse:
    body: dict[str, Any] = {"detail": exc.message}
    if exc.errors:
        body["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RentalError, _rental_error_handler)  # type: ignore[arg-type]
