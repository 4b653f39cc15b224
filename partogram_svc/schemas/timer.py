"""
Pydantic schemas for timer state and server time.
"""
from typing import Optional

from pydantic import BaseModel, Field

from models import LaborPeriod, LaborStatus


class TimerStateResponse(BaseModel):
    """Full timer state for one patient (partogram view)."""
    patient_id: int
    status: LaborStatus
    status_color: str
    period: LaborPeriod = Field(..., description="1 = first period, 2 = second period")
    interval_minutes: int = Field(..., description="Minutes between mandatory measurements", examples=[30])
    remaining_seconds: int = Field(..., ge=0, description="Seconds until the next measurement is due")
    is_lapsed: bool = Field(..., description="In progress and the next measurement is overdue")
    labor_start: Optional[str] = None
    labor_elapsed_seconds: Optional[int] = Field(None, description="Seconds since labor started, while in progress")
    last_measurement_time: Optional[str] = None
    next_measurement_time: Optional[str] = None


class BulkTimerStateResponse(BaseModel):
    """Compact timer state for one row of the patient list view."""
    patient_id: int
    full_name: str
    status: LaborStatus
    status_color: str
    period: LaborPeriod
    remaining_seconds: int = Field(..., ge=0)
    interval_minutes: int
    is_lapsed: bool
    last_measurement_time: Optional[str] = None
    next_measurement_time: Optional[str] = None


class ServerTimeResponse(BaseModel):
    """Authoritative server clock."""
    time: str = Field(..., description="ISO 8601 UTC", examples=["2025-03-01T08:30:00Z"])
    epoch_seconds: int = Field(..., description="Unix time in whole seconds")
