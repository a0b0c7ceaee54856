from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard failure result returned at the operation boundary."""

    ok: bool = False
    error: str
    message: str | None = None
    status_code: int


class AppError(Exception):
    """Base application exception."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed or missing input field."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class NotFoundError(AppError):
    """Referenced record does not exist for the personnel."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(AppError):
    """Request clashes with existing state (duplicates, remaining records)."""

    status_code = status.HTTP_409_CONFLICT


class InsufficientBalanceError(AppError):
    """Selected grants cannot cover the requested duration."""

    status_code = status.HTTP_400_BAD_REQUEST


class UnknownOrExhaustedGrantError(AppError):
    """A selected grant is missing for the personnel or has nothing left."""

    status_code = status.HTTP_400_BAD_REQUEST


class BlockedByUsageError(AppError):
    """Grant edit or delete would invalidate amounts already used."""

    status_code = status.HTTP_409_CONFLICT


class NoAllocationsRemainError(AppError):
    """An edit would leave a usage record without any backing grant."""

    status_code = status.HTTP_400_BAD_REQUEST


class AllocationShortfallError(AppError):
    """Greedy draw finished with an unmet amount after the balance pre-check passed."""

    status_code = status.HTTP_400_BAD_REQUEST


class DanglingAllocationError(AppError):
    """A usage record references a grant that no longer exists."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=type(exc).__name__,
            message=exc.message,
            status_code=exc.status_code,
        ).model_dump(),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="ValidationError",
            message=str(exc.errors()),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        ).model_dump(),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
