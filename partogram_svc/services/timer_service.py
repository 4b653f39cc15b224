"""
Read-only timer queries.

Each query reads the patient row(s) and the timer inputs inside one read
transaction (Database.snapshot()), so the period and the countdown anchor
always come from the same committed state.

The list view query is two statements in total, however many patients
are on the ward.
"""
import logging
from typing import List, Optional

from repositories import Database, MeasurementRepository, PatientRepository
from models import TimerState
from schemas import BulkTimerStateResponse, ServerTimeResponse, TimerStateResponse
from services.timer_calculator import compute_timer_state
from core.clock import SystemClock
from core.datetime_utils import format_iso, format_iso_or_none
from core.exceptions import PatientNotFoundError
from core.middleware import get_metrics_collector

logger = logging.getLogger(__name__)


def _timer_response(patient_id: int, state: TimerState) -> TimerStateResponse:
    return TimerStateResponse(
        patient_id=patient_id,
        status=state.status,
        status_color=state.status.status_color,
        period=state.period,
        interval_minutes=state.interval_minutes,
        remaining_seconds=state.remaining_seconds,
        is_lapsed=state.is_lapsed,
        labor_start=format_iso_or_none(state.labor_start),
        labor_elapsed_seconds=state.labor_elapsed_seconds,
        last_measurement_time=format_iso_or_none(state.last_measurement_time),
        next_measurement_time=format_iso_or_none(state.next_measurement_time),
    )


class TimerService:
    """Computes timer state for the partogram view and the patient list."""

    def __init__(
        self,
        db: Database,
        patient_repository: PatientRepository,
        measurement_repository: MeasurementRepository,
        clock: SystemClock
    ):
        self._db = db
        self._patients = patient_repository
        self._measurements = measurement_repository
        self._clock = clock

    def get_timer_state(self, patient_id: int) -> TimerStateResponse:
        """
        Full timer state for one patient.

        Raises:
            PatientNotFoundError: Unknown patient.
        """
        with self._db.snapshot() as conn:
            patient = self._patients.get(patient_id, conn=conn)
            if patient is None:
                raise PatientNotFoundError(patient_id=patient_id)
            inputs = self._measurements.latest_timer_inputs(patient_id, conn=conn)

        state = compute_timer_state(patient, inputs.get(patient_id, []), self._clock.now())
        get_metrics_collector().record_event("timer_queries")
        return _timer_response(patient_id, state)

    def get_timer_states_bulk(self, limit: Optional[int] = None) -> List[BulkTimerStateResponse]:
        """
        Timer state for every patient, newest admission first.

        Args:
            limit: Maximum number of patients to include.
        """
        with self._db.snapshot() as conn:
            patients = self._patients.get_all(limit=limit, conn=conn)
            inputs = self._measurements.latest_timer_inputs(conn=conn)

        now = self._clock.now()
        results = []
        for patient in patients:
            state = compute_timer_state(patient, inputs.get(patient.id, []), now)
            results.append(BulkTimerStateResponse(
                patient_id=patient.id,
                full_name=patient.full_name,
                status=state.status,
                status_color=state.status.status_color,
                period=state.period,
                remaining_seconds=state.remaining_seconds,
                interval_minutes=state.interval_minutes,
                is_lapsed=state.is_lapsed,
                last_measurement_time=format_iso_or_none(state.last_measurement_time),
                next_measurement_time=format_iso_or_none(state.next_measurement_time),
            ))

        get_metrics_collector().record_event("bulk_timer_queries")
        logger.debug(f"Computed timer state for {len(results)} patients")
        return results

    def server_time(self) -> ServerTimeResponse:
        """The server clock, for clients that count down from next_measurement_time."""
        now = self._clock.now()
        return ServerTimeResponse(time=format_iso(now), epoch_seconds=int(now.timestamp()))
