"""
Patients router - admission and lookup endpoints.

Architecture:
    HTTP Request → Router (this file) → PatientService → PatientRepository → Database

Safety Features:
    - Default query limits to prevent unbounded queries

Dependency Injection:
    Services are injected via FastAPI's Depends() mechanism.
    The DI chain is defined in core/dependencies.py.
"""
import logging
from fastapi import APIRouter, Depends, Query, Response
from typing import List, Optional

from schemas import PatientCreate, PatientResponse
from services import PatientService
from core.dependencies import get_patient_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/patients",
    tags=["Patients"],
)


# =============================================================================
# SAFE DEFAULTS
# =============================================================================

DEFAULT_QUERY_LIMIT = 100  # Default limit if none specified
MAX_QUERY_LIMIT = 500      # Maximum allowed limit


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post(
    "",
    response_model=PatientResponse,
    status_code=201,
    summary="Admit a patient",
    description="Add a new patient with labor status 'not_started'. "
                "Labor starts with the first recorded measurement."
)
async def create_patient(
    patient: PatientCreate,
    patient_service: PatientService = Depends(get_patient_service)
):
    """
    Admit a patient.

    - **full_name**: required
    - **admission_date**: optional, defaults to today (UTC)
    """
    return patient_service.add_patient(patient)


@router.get(
    "",
    response_model=List[PatientResponse],
    summary="List patients",
    description=f"Retrieve patients, newest admission first. "
                f"Default limit is {DEFAULT_QUERY_LIMIT}, maximum is {MAX_QUERY_LIMIT}."
)
async def list_patients(
    limit: Optional[int] = Query(
        None,
        ge=1,
        le=MAX_QUERY_LIMIT,
        description=f"Maximum number of patients to return (1-{MAX_QUERY_LIMIT}). "
                    f"Defaults to {DEFAULT_QUERY_LIMIT} if not specified."
    ),
    patient_service: PatientService = Depends(get_patient_service)
):
    """Get patients, newest first."""
    return patient_service.get_patients(limit=limit or DEFAULT_QUERY_LIMIT)


@router.get(
    "/{patient_id}",
    response_model=PatientResponse,
    summary="Get a patient"
)
async def get_patient(
    patient_id: int,
    patient_service: PatientService = Depends(get_patient_service)
):
    """Get one patient. 404 if unknown."""
    return patient_service.get_patient(patient_id)


@router.delete(
    "/{patient_id}",
    status_code=204,
    summary="Delete a patient",
    description="Delete a patient and all of their measurements."
)
async def delete_patient(
    patient_id: int,
    patient_service: PatientService = Depends(get_patient_service)
):
    patient_service.delete_patient(patient_id)
    return Response(status_code=204)
