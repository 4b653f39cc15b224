"""
Pydantic schemas for patient-related API operations.
"""
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from models import LaborStatus, Patient
from core.datetime_utils import format_iso, format_iso_or_none


class PatientCreate(BaseModel):
    """Schema for admitting a patient.

    Admission always starts with labor status ``not_started``; the first
    recorded measurement starts labor.
    """
    full_name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Patient full name",
        examples=["Maria Ivanova"]
    )
    admission_date: Optional[date] = Field(
        None,
        description="Admission date (defaults to today, UTC)",
        examples=["2025-03-01"]
    )
    history_number: Optional[str] = Field(
        None,
        max_length=50,
        description="Medical history number",
        examples=["2025/0412"]
    )
    age: Optional[int] = Field(None, ge=10, le=70, description="Age in years", examples=[28])
    parity: Optional[int] = Field(None, ge=0, le=20, description="Number of previous births", examples=[1])
    gestational_age: Optional[int] = Field(
        None,
        ge=20,
        le=45,
        description="Gestational age in weeks",
        examples=[39]
    )
    risk_factors: Optional[str] = Field(None, max_length=2000, description="Known risk factors")
    notes: Optional[str] = Field(None, max_length=2000, description="Free-form notes")
    membrane_rupture: Optional[datetime] = Field(
        None,
        description="Time the membranes ruptured (ISO 8601)",
        examples=["2025-03-01T06:45:00Z"]
    )
    active_phase_start: Optional[datetime] = Field(
        None,
        description="Time the active phase of labor began (ISO 8601)",
        examples=["2025-03-01T07:30:00Z"]
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "full_name": "Maria Ivanova",
                "admission_date": "2025-03-01",
                "history_number": "2025/0412",
                "age": 28,
                "parity": 1,
                "gestational_age": 39,
                "membrane_rupture": "2025-03-01T06:45:00Z"
            }
        }
    )


class PatientResponse(BaseModel):
    """Schema for patient response."""
    id: int = Field(..., description="Unique patient identifier", examples=[1])
    full_name: str = Field(..., description="Patient full name", examples=["Maria Ivanova"])
    admission_date: date = Field(..., description="Admission date")
    history_number: Optional[str] = None
    age: Optional[int] = None
    parity: Optional[int] = None
    gestational_age: Optional[int] = None
    risk_factors: Optional[str] = None
    notes: Optional[str] = None
    membrane_rupture: Optional[str] = Field(None, description="ISO 8601 UTC membrane rupture time")
    active_phase_start: Optional[str] = Field(None, description="ISO 8601 UTC active phase start")
    status: LaborStatus = Field(..., description="Labor status")
    status_color: str = Field(..., description="Badge color for the status", examples=["danger"])
    labor_start: Optional[str] = Field(
        None,
        description="ISO 8601 UTC time labor started",
        examples=["2025-03-01T08:00:00Z"]
    )
    created_at: str = Field(..., description="ISO 8601 UTC admission timestamp")

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_patient(cls, patient: Patient) -> "PatientResponse":
        return cls(
            id=patient.id,
            full_name=patient.full_name,
            admission_date=patient.admission_date,
            history_number=patient.history_number,
            age=patient.age,
            parity=patient.parity,
            gestational_age=patient.gestational_age,
            risk_factors=patient.risk_factors,
            notes=patient.notes,
            membrane_rupture=format_iso_or_none(patient.membrane_rupture),
            active_phase_start=format_iso_or_none(patient.active_phase_start),
            status=patient.status,
            status_color=patient.status_color,
            labor_start=format_iso_or_none(patient.labor_start),
            created_at=format_iso(patient.created_at),
        )
