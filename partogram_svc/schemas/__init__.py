"""
Pydantic schemas for API request/response validation.

This module contains all Pydantic models used at API boundaries.
"""
from schemas.patient import PatientCreate, PatientResponse
from schemas.measurement import (
    MeasurementCreate,
    MeasurementResponse,
    MeasurementRecordedResponse,
)
from schemas.timer import (
    TimerStateResponse,
    BulkTimerStateResponse,
    ServerTimeResponse,
)

__all__ = [
    # Patient schemas
    "PatientCreate",
    "PatientResponse",
    # Measurement schemas
    "MeasurementCreate",
    "MeasurementResponse",
    "MeasurementRecordedResponse",
    # Timer schemas
    "TimerStateResponse",
    "BulkTimerStateResponse",
    "ServerTimeResponse",
]
