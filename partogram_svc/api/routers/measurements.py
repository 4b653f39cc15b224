"""
Measurements router - partogram entries and labor completion.

Endpoints:
    GET    /api/v1/patients/{patient_id}/measurements
    POST   /api/v1/patients/{patient_id}/measurements
    DELETE /api/v1/patients/{patient_id}/measurements/{measurement_id}
    POST   /api/v1/patients/{patient_id}/complete_labor

Architecture:
    HTTP Request → Router (this file) → LaborService → Repositories → Database

Domain errors (404 / 409 / 422) are raised by LaborService and turned into
JSON responses by the handlers registered in core.exceptions.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response

from schemas import (
    MeasurementCreate,
    MeasurementRecordedResponse,
    MeasurementResponse,
    PatientResponse,
)
from services import LaborService
from core.dependencies import get_labor_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/patients",
    tags=["Measurements"],
)

MAX_HISTORY_LIMIT = 1000


@router.get(
    "/{patient_id}/measurements",
    response_model=List[MeasurementResponse],
    summary="Measurement history",
    description="Partogram entries for a patient, latest first."
)
async def list_measurements(
    patient_id: int,
    limit: Optional[int] = Query(None, ge=1, le=MAX_HISTORY_LIMIT),
    labor_service: LaborService = Depends(get_labor_service)
):
    return labor_service.get_measurements(patient_id, limit=limit)


@router.post(
    "/{patient_id}/measurements",
    response_model=MeasurementRecordedResponse,
    status_code=201,
    summary="Record a measurement",
    description="Record a partogram entry. The first entry starts labor. "
                "Returns the stored entry and the recomputed timer."
)
async def record_measurement(
    patient_id: int,
    measurement: MeasurementCreate,
    labor_service: LaborService = Depends(get_labor_service)
):
    """
    Record a measurement.

    - 404 if the patient does not exist
    - 409 if labor is already completed
    - 422 if a value is out of range or not an allowed code
    """
    return labor_service.record_measurement(
        patient_id,
        fields=measurement.clinical_fields(),
        time=measurement.time,
    )


@router.delete(
    "/{patient_id}/measurements/{measurement_id}",
    status_code=204,
    summary="Delete a measurement"
)
async def delete_measurement(
    patient_id: int,
    measurement_id: int,
    labor_service: LaborService = Depends(get_labor_service)
):
    labor_service.delete_measurement(patient_id, measurement_id)
    return Response(status_code=204)


@router.post(
    "/{patient_id}/complete_labor",
    response_model=PatientResponse,
    summary="Complete labor",
    description="Move an in-progress patient to completed. Repeating it is a no-op; "
                "a patient whose labor never started gets 409."
)
async def complete_labor(
    patient_id: int,
    labor_service: LaborService = Depends(get_labor_service)
):
    return labor_service.complete_labor(patient_id)
