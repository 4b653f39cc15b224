"""
Service layer for the patient labor state machine.

    not_started --first measurement--> in_progress --complete_labor--> completed

There is no way out of completed.

Every mutation runs inside one BEGIN IMMEDIATE transaction
(Database.transaction()), so either the status change and the measurement
insert both land or neither does, and two concurrent first measurements
start labor exactly once.

Architecture:
    API Layer (routers) → LaborService → PatientRepository
                                       → MeasurementRepository → Database
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from repositories import Database, MeasurementRepository, PatientRepository
from models import LaborStatus, Patient
from schemas import MeasurementRecordedResponse, MeasurementResponse, PatientResponse
from services.timer_calculator import compute_timer_state
from core.clock import SystemClock
from core.datetime_utils import format_iso, format_iso_or_none, truncate_to_second
from core.exceptions import (
    InvalidTransitionError,
    MeasurementNotFoundError,
    MeasurementValidationError,
    PatientNotFoundError,
)
from core.field_registry import validate_measurement_fields
from core.middleware import get_metrics_collector

logger = logging.getLogger(__name__)


class LaborService:
    """
    Records measurements, starts and completes labor, deletes measurements.
    """

    def __init__(
        self,
        db: Database,
        patient_repository: PatientRepository,
        measurement_repository: MeasurementRepository,
        clock: SystemClock,
        reject_out_of_order: bool = False
    ):
        """
        Args:
            db: Database used to open transactions spanning both repositories.
            patient_repository: Patient data access.
            measurement_repository: Measurement data access.
            clock: Source of "now".
            reject_out_of_order: Refuse measurements timed before the
                patient's latest one instead of storing them at face value.
        """
        self._db = db
        self._patients = patient_repository
        self._measurements = measurement_repository
        self._clock = clock
        self._reject_out_of_order = reject_out_of_order

    def _get_patient(self, patient_id: int, conn) -> Patient:
        patient = self._patients.get(patient_id, conn=conn)
        if patient is None:
            raise PatientNotFoundError(patient_id=patient_id)
        return patient

    def record_measurement(
        self,
        patient_id: int,
        fields: Dict[str, Any],
        time: Optional[datetime] = None
    ) -> MeasurementRecordedResponse:
        """
        Record a partogram entry, starting labor if it has not started yet.

        Args:
            patient_id: Patient the entry belongs to.
            fields: Clinical values keyed by field name.
            time: Clinical time of the measurement; defaults to now.

        Returns:
            The stored measurement and the timer state right after it.

        Raises:
            PatientNotFoundError: Unknown patient.
            InvalidTransitionError: Labor already completed.
            MeasurementValidationError: Invalid field values, or an
                out-of-order time when the ordering policy rejects those.
        """
        now = self._clock.now()
        measured_at = truncate_to_second(time or now)
        labor_started = False

        with self._db.transaction() as conn:
            patient = self._get_patient(patient_id, conn)

            if patient.status is LaborStatus.COMPLETED:
                raise InvalidTransitionError(
                    detail=f"Labor already completed for patient {patient_id}; measurements are closed",
                    patient_id=patient_id,
                    current_status=patient.status.value,
                )

            clean = validate_measurement_fields(fields)

            if self._reject_out_of_order:
                latest = self._measurements.latest_time(patient_id, conn=conn)
                if latest is not None and measured_at < latest:
                    raise MeasurementValidationError(
                        detail=f"Measurement time {format_iso(measured_at)} is earlier than "
                               f"the latest recorded measurement ({format_iso(latest)})",
                        time=format_iso(measured_at),
                        latest_measurement_time=format_iso(latest),
                    )

            if patient.status is LaborStatus.NOT_STARTED:
                labor_started = self._patients.start_labor(
                    patient_id, truncate_to_second(now), conn=conn
                )

            dilation = clean.pop("cervical_dilation", None)
            measurement = self._measurements.add(
                patient_id=patient_id,
                time=measured_at,
                created_at=now,
                cervical_dilation=dilation,
                payload=clean,
                conn=conn,
            )

            patient = self._get_patient(patient_id, conn)
            inputs = self._measurements.latest_timer_inputs(patient_id, conn=conn)
            state = compute_timer_state(patient, inputs.get(patient_id, []), now)

        metrics = get_metrics_collector()
        metrics.record_event("measurements_recorded")
        if labor_started:
            metrics.record_event("labors_started")
            logger.info(
                "Labor started",
                extra={"patient_id": patient_id, "labor_start": format_iso_or_none(patient.labor_start)}
            )

        logger.info(
            f"Measurement recorded for patient {patient_id} (id={measurement.id})",
            extra={
                "patient_id": patient_id,
                "measurement_id": measurement.id,
                "period": int(state.period),
                "remaining_seconds": state.remaining_seconds,
            }
        )

        return MeasurementRecordedResponse(
            measurement=MeasurementResponse(**measurement.to_dict()),
            status=state.status,
            period=state.period,
            interval_minutes=state.interval_minutes,
            remaining_seconds=state.remaining_seconds,
            next_measurement_time=format_iso_or_none(state.next_measurement_time),
        )

    def complete_labor(self, patient_id: int) -> PatientResponse:
        """
        Mark labor as completed.

        Completing an already completed patient is a no-op success.

        Raises:
            PatientNotFoundError: Unknown patient.
            InvalidTransitionError: Labor never started.
        """
        with self._db.transaction() as conn:
            patient = self._get_patient(patient_id, conn)

            if patient.status is LaborStatus.NOT_STARTED:
                raise InvalidTransitionError(
                    detail=f"Labor has not started for patient {patient_id}",
                    patient_id=patient_id,
                    current_status=patient.status.value,
                )

            completed = False
            if patient.status is LaborStatus.IN_PROGRESS:
                completed = self._patients.complete_labor(patient_id, conn=conn)
                patient = self._get_patient(patient_id, conn)

        if completed:
            get_metrics_collector().record_event("labors_completed")
            logger.info("Labor completed", extra={"patient_id": patient_id})
        else:
            logger.info("Labor already completed", extra={"patient_id": patient_id})

        return PatientResponse.from_patient(patient)

    def delete_measurement(self, patient_id: int, measurement_id: int) -> None:
        """
        Delete one measurement owned by the patient.

        Allowed in every labor status. The timer recomputes from the remaining
        history on the next query.

        Raises:
            PatientNotFoundError: Unknown patient.
            MeasurementNotFoundError: No such measurement for this patient.
        """
        with self._db.transaction() as conn:
            self._get_patient(patient_id, conn)
            if not self._measurements.delete(measurement_id, patient_id, conn=conn):
                raise MeasurementNotFoundError(measurement_id=measurement_id, patient_id=patient_id)

        get_metrics_collector().record_event("measurements_deleted")
        logger.info(
            "Measurement deleted",
            extra={"patient_id": patient_id, "measurement_id": measurement_id}
        )

    def get_measurements(self, patient_id: int, limit: Optional[int] = None) -> List[MeasurementResponse]:
        """
        Measurement history, latest first.

        Raises:
            PatientNotFoundError: Unknown patient.
        """
        with self._db.snapshot() as conn:
            self._get_patient(patient_id, conn)
            measurements = self._measurements.list_for_patient(patient_id, limit=limit, conn=conn)
        return [MeasurementResponse(**m.to_dict()) for m in measurements]
