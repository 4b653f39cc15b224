"""
Shared exception classes and error handling utilities for the Partogram Service API.

This module provides:
- Custom exception hierarchy for domain-specific errors
- Consistent error response formatting
- Exception handlers for FastAPI integration

Usage:
    from core.exceptions import PatientNotFoundError, InvalidTransitionError

    # In service layer - raise domain exceptions
    raise PatientNotFoundError(patient_id=42)

    # In FastAPI - register handlers via setup_exception_handlers(app)
"""
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# =============================================================================
# BASE EXCEPTION CLASSES
# =============================================================================

class PartogramServiceError(Exception):
    """
    Base exception for all Partogram Service domain errors.

    Provides consistent error structure with status code and detail message.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail: str = "An unexpected error occurred"

    def __init__(
        self,
        detail: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs: Any
    ):
        """
        Initialize the exception.

        Args:
            detail: Human-readable error message. Uses class default if not provided.
            status_code: HTTP status code. Uses class default if not provided.
            **kwargs: Additional context to include in error response.
        """
        self.detail = detail or self.__class__.detail
        self.status_code = status_code or self.__class__.status_code
        self.context = kwargs
        super().__init__(self.detail)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        result = {"detail": self.detail}
        if self.context:
            result["context"] = self.context
        return result


# =============================================================================
# NOT FOUND
# =============================================================================

class NotFoundError(PartogramServiceError):
    """Raised when a referenced entity does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    detail = "Not found"


class PatientNotFoundError(NotFoundError):
    """Raised when a patient is not found in the database."""

    detail = "Patient not found"

    def __init__(self, patient_id: Optional[int] = None, **kwargs: Any):
        detail = f"Patient {patient_id} not found" if patient_id is not None else self.detail
        super().__init__(detail=detail, patient_id=patient_id, **kwargs)


class MeasurementNotFoundError(NotFoundError):
    """Raised when a measurement does not exist or belongs to another patient."""

    detail = "Measurement not found"

    def __init__(
        self,
        measurement_id: Optional[int] = None,
        patient_id: Optional[int] = None,
        **kwargs: Any
    ):
        if measurement_id is not None:
            detail = f"Measurement {measurement_id} not found for patient {patient_id}"
        else:
            detail = self.detail
        super().__init__(
            detail=detail,
            measurement_id=measurement_id,
            patient_id=patient_id,
            **kwargs
        )


# =============================================================================
# VALIDATION & STATE EXCEPTIONS
# =============================================================================

class MeasurementValidationError(PartogramServiceError):
    """Raised when measurement fields are malformed or out of range. Nothing is persisted."""

    status_code = 422
    detail = "Invalid measurement data"


class InvalidTransitionError(PartogramServiceError):
    """
    Raised when an action is not allowed in the patient's current labor status.

    Examples: recording a measurement for a completed patient,
    completing labor that never started.
    """

    status_code = status.HTTP_409_CONFLICT
    detail = "Action not allowed in the current labor status"

    def __init__(
        self,
        detail: Optional[str] = None,
        patient_id: Optional[int] = None,
        current_status: Optional[str] = None,
        **kwargs: Any
    ):
        super().__init__(
            detail=detail,
            patient_id=patient_id,
            current_status=current_status,
            **kwargs
        )


# =============================================================================
# DATABASE EXCEPTIONS
# =============================================================================

class DatabaseError(PartogramServiceError):
    """Raised when a database operation fails."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "Database operation failed"

    def __init__(self, operation: Optional[str] = None, **kwargs: Any):
        detail = f"Database error during {operation}" if operation else self.detail
        super().__init__(detail=detail, operation=operation, **kwargs)


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

async def partogram_service_exception_handler(
    request: Request,
    exc: PartogramServiceError
) -> JSONResponse:
    """
    Handle PartogramServiceError exceptions and return consistent JSON responses.
    """
    logger.warning(
        f"PartogramServiceError: {exc.detail}",
        extra={
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method,
            "context": exc.context
        }
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def generic_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    Handle unexpected exceptions with a generic error response.

    Logs the full exception for debugging but returns a safe error message.
    """
    logger.exception(
        f"Unhandled exception: {exc}",
        extra={
            "path": request.url.path,
            "method": request.method
        }
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An internal server error occurred"}
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Register exception handlers with the FastAPI application.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(PartogramServiceError, partogram_service_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
