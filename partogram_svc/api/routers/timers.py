"""
Timers router - derived measurement countdowns and the server clock.

These endpoints are polled by every open ward view, so they are read-only,
cheap, and kept out of the request log unless they fail
(see LoggingMiddleware.QUIET_SUFFIXES).
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from schemas import BulkTimerStateResponse, ServerTimeResponse, TimerStateResponse
from services import TimerService
from core.dependencies import get_timer_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1",
    tags=["Timers"],
)

MAX_BULK_LIMIT = 500


@router.get(
    "/patients/{patient_id}/timer",
    response_model=TimerStateResponse,
    summary="Timer state for one patient"
)
async def get_timer(
    patient_id: int,
    timer_service: TimerService = Depends(get_timer_service)
):
    """Period, interval, remaining seconds and next due time for the partogram view."""
    return timer_service.get_timer_state(patient_id)


@router.get(
    "/timers",
    response_model=List[BulkTimerStateResponse],
    summary="Timer state for all patients",
    description="One entry per patient, newest admission first, for the patient list view."
)
async def list_timers(
    limit: Optional[int] = Query(None, ge=1, le=MAX_BULK_LIMIT),
    timer_service: TimerService = Depends(get_timer_service)
):
    return timer_service.get_timer_states_bulk(limit=limit)


@router.get(
    "/server_time",
    response_model=ServerTimeResponse,
    summary="Server clock"
)
async def server_time(timer_service: TimerService = Depends(get_timer_service)):
    return timer_service.server_time()
