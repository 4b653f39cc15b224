"""
Pydantic schemas for partogram measurement API operations.

Shape and types are checked here; clinical ranges and option codes are
checked by core.field_registry so both the API and any other caller of
LaborService share one set of rules.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from models import LaborStatus, LaborPeriod


class MeasurementCreate(BaseModel):
    """Schema for recording a partogram entry.

    Every clinical field is optional; an entry may carry only the values
    measured at that moment. ``time`` defaults to the moment the server
    receives the request.
    """
    time: Optional[datetime] = Field(
        None,
        description="Clinical time of the measurement (ISO 8601). Defaults to now.",
        examples=["2025-03-01T08:30:00Z"]
    )

    # Fetal
    fetal_heart_rate: Optional[int] = Field(None, description="Fetal heart rate, bpm", examples=[140])
    decelerations: Optional[str] = Field(None, description="early | variable | late")
    amniotic_fluid: Optional[str] = Field(None, description="I | C | M | B")
    presentation: Optional[str] = Field(None, description="A | P | T")
    caput: Optional[str] = Field(None, description="0 | + | ++ | +++")
    molding: Optional[str] = Field(None, description="0 | + | ++ | +++")

    # Maternal
    maternal_pulse: Optional[int] = Field(None, description="Maternal pulse, bpm", examples=[88])
    blood_pressure: Optional[str] = Field(None, description="Systolic/diastolic, mmHg", examples=["120/80"])
    temperature: Optional[float] = Field(None, description="Temperature, °C", examples=[36.8])
    urination: Optional[bool] = None

    # Labor
    contraction_frequency: Optional[int] = Field(None, description="Contractions per 10 minutes")
    contraction_duration: Optional[int] = Field(None, description="Contraction duration, seconds")
    pushing: Optional[bool] = None
    cervical_dilation: Optional[int] = Field(None, description="Cervical dilation, cm (0-10)", examples=[6])
    head_descent: Optional[int] = Field(None, description="Head descent in fifths (5-0)")

    # Medication
    oxytocin: Optional[str] = Field(None, max_length=500)
    medications: Optional[str] = Field(None, max_length=2000)
    iv_fluids: Optional[str] = Field(None, max_length=2000)

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "example": {
                "time": "2025-03-01T08:30:00Z",
                "fetal_heart_rate": 140,
                "cervical_dilation": 6,
                "maternal_pulse": 88,
                "blood_pressure": "120/80"
            }
        }
    )

    def clinical_fields(self) -> Dict[str, Any]:
        """The measured clinical values, without time and without unset fields."""
        return self.model_dump(exclude={"time"}, exclude_none=True)


class MeasurementResponse(BaseModel):
    """Schema for a stored measurement."""
    id: int
    patient_id: int
    time: str = Field(..., description="ISO 8601 UTC clinical time", examples=["2025-03-01T08:30:00Z"])
    cervical_dilation: Optional[int] = None
    fields: Dict[str, Any] = Field(
        default_factory=dict,
        description="Other clinical values recorded with this entry"
    )
    created_at: str = Field(..., description="ISO 8601 UTC time the entry was recorded")


class MeasurementRecordedResponse(BaseModel):
    """Stored measurement plus the timer state recomputed in the same transaction."""
    measurement: MeasurementResponse
    status: LaborStatus
    period: LaborPeriod
    interval_minutes: int
    remaining_seconds: int
    next_measurement_time: Optional[str] = None
