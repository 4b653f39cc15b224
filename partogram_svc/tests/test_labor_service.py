"""
Tests for the labor state machine (LaborService) against a real SQLite file.
"""
from datetime import datetime, timedelta, timezone

import pytest

from models import LaborPeriod, LaborStatus
from core.exceptions import (
    InvalidTransitionError,
    MeasurementNotFoundError,
    MeasurementValidationError,
    PatientNotFoundError,
)
from core.middleware import get_metrics_collector

# Matches the frozen clock fixture
T0 = datetime(2025, 3, 1, 8, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# record_measurement
# =============================================================================

def test_first_measurement_starts_labor(admit, labor_service, patient_repo):
    patient_id = admit()

    result = labor_service.record_measurement(patient_id, {"cervical_dilation": 4})

    assert result.status == LaborStatus.IN_PROGRESS
    patient = patient_repo.get(patient_id)
    assert patient.status == LaborStatus.IN_PROGRESS
    assert patient.labor_start == T0


def test_labor_start_is_set_only_once(admit, labor_service, patient_repo, clock):
    patient_id = admit()
    labor_service.record_measurement(patient_id, {"cervical_dilation": 4})
    clock.advance(minutes=20)
    labor_service.record_measurement(patient_id, {"cervical_dilation": 5})

    assert patient_repo.get(patient_id).labor_start == T0


def test_measurement_defaults_to_now(admit, labor_service, clock):
    patient_id = admit()
    clock.advance(minutes=3)

    result = labor_service.record_measurement(patient_id, {"fetal_heart_rate": 140})

    assert result.measurement.time == "2025-03-01T08:03:00Z"
    assert result.measurement.fields == {"fetal_heart_rate": 140}
    assert result.measurement.cervical_dilation is None


def test_returns_recomputed_timer(admit, labor_service):
    patient_id = admit()

    result = labor_service.record_measurement(patient_id, {"cervical_dilation": 8})

    assert result.period == LaborPeriod.FIRST
    assert result.interval_minutes == 30
    assert result.remaining_seconds == 1800
    assert result.next_measurement_time == "2025-03-01T08:30:00Z"


def test_dilation_ten_switches_to_second_period(admit, labor_service, clock):
    patient_id = admit()
    labor_service.record_measurement(patient_id, {"cervical_dilation": 8})
    clock.advance(minutes=31)

    result = labor_service.record_measurement(patient_id, {"cervical_dilation": 10})

    assert result.period == LaborPeriod.SECOND
    assert result.interval_minutes == 15
    assert result.remaining_seconds == 900


def test_unknown_patient(labor_service):
    with pytest.raises(PatientNotFoundError):
        labor_service.record_measurement(999, {"cervical_dilation": 4})


def test_completed_patient_rejects_measurement(admit, labor_service, measurement_repo):
    patient_id = admit()
    labor_service.record_measurement(patient_id, {"cervical_dilation": 10})
    labor_service.complete_labor(patient_id)

    with pytest.raises(InvalidTransitionError) as exc_info:
        labor_service.record_measurement(patient_id, {"cervical_dilation": 10})

    assert exc_info.value.context["current_status"] == "completed"
    assert len(measurement_repo.list_for_patient(patient_id)) == 1


def test_invalid_fields_persist_nothing(admit, labor_service, patient_repo, measurement_repo):
    patient_id = admit()

    with pytest.raises(MeasurementValidationError) as exc_info:
        labor_service.record_measurement(patient_id, {"cervical_dilation": 11, "fetal_heart_rate": 140})

    assert "cervical_dilation" in exc_info.value.context["errors"]
    assert measurement_repo.list_for_patient(patient_id) == []
    # Labor must not start on a rejected entry
    assert patient_repo.get(patient_id).status == LaborStatus.NOT_STARTED


def test_backdated_measurement_accepted_by_default(admit, labor_service, measurement_repo, clock):
    patient_id = admit()
    labor_service.record_measurement(patient_id, {"cervical_dilation": 5})
    clock.advance(minutes=10)

    result = labor_service.record_measurement(
        patient_id, {"cervical_dilation": 4}, time=T0 - timedelta(minutes=5)
    )

    assert result.measurement.time == "2025-03-01T07:55:00Z"
    assert len(measurement_repo.list_for_patient(patient_id)) == 2
    # Anchor stays on the chronologically latest entry
    assert result.next_measurement_time == "2025-03-01T08:30:00Z"


def test_backdated_measurement_rejected_by_strict_policy(admit, strict_labor_service, measurement_repo, clock):
    patient_id = admit()
    strict_labor_service.record_measurement(patient_id, {"cervical_dilation": 5})
    clock.advance(minutes=10)

    with pytest.raises(MeasurementValidationError) as exc_info:
        strict_labor_service.record_measurement(
            patient_id, {"cervical_dilation": 4}, time=T0 - timedelta(minutes=5)
        )

    assert exc_info.value.context["latest_measurement_time"] == "2025-03-01T08:00:00Z"
    assert len(measurement_repo.list_for_patient(patient_id)) == 1


def test_records_metrics(admit, labor_service):
    metrics = get_metrics_collector()
    recorded_before = metrics.ward_events["measurements_recorded"]
    started_before = metrics.ward_events["labors_started"]

    patient_id = admit()
    labor_service.record_measurement(patient_id, {"cervical_dilation": 4})
    labor_service.record_measurement(patient_id, {"cervical_dilation": 5})

    assert metrics.ward_events["measurements_recorded"] == recorded_before + 2
    assert metrics.ward_events["labors_started"] == started_before + 1


# =============================================================================
# complete_labor
# =============================================================================

def test_complete_labor(admit, labor_service):
    patient_id = admit()
    labor_service.record_measurement(patient_id, {"cervical_dilation": 10})

    patient = labor_service.complete_labor(patient_id)

    assert patient.status == LaborStatus.COMPLETED
    assert patient.status_color == "success"
    assert patient.labor_start == "2025-03-01T08:00:00Z"


def test_complete_labor_is_idempotent(admit, labor_service):
    patient_id = admit()
    labor_service.record_measurement(patient_id, {"cervical_dilation": 10})

    first = labor_service.complete_labor(patient_id)
    second = labor_service.complete_labor(patient_id)

    assert first == second


def test_complete_labor_not_started(admit, labor_service):
    patient_id = admit()

    with pytest.raises(InvalidTransitionError):
        labor_service.complete_labor(patient_id)


def test_complete_labor_unknown_patient(labor_service):
    with pytest.raises(PatientNotFoundError):
        labor_service.complete_labor(42)


# =============================================================================
# delete_measurement / get_measurements
# =============================================================================

def test_delete_latest_measurement_recomputes_from_previous(admit, labor_service, timer_service, clock):
    patient_id = admit()
    labor_service.record_measurement(patient_id, {"cervical_dilation": 8})
    clock.advance(minutes=20)
    latest = labor_service.record_measurement(patient_id, {"cervical_dilation": 10})
    assert timer_service.get_timer_state(patient_id).period == LaborPeriod.SECOND

    labor_service.delete_measurement(patient_id, latest.measurement.id)

    state = timer_service.get_timer_state(patient_id)
    assert state.period == LaborPeriod.FIRST
    assert state.remaining_seconds == 10 * 60


def test_delete_only_measurement_falls_back_to_labor_start(admit, labor_service, timer_service, clock):
    patient_id = admit()
    clock.advance(minutes=5)
    only = labor_service.record_measurement(patient_id, {"cervical_dilation": 3}, time=T0 + timedelta(minutes=5))
    clock.advance(minutes=5)

    labor_service.delete_measurement(patient_id, only.measurement.id)

    state = timer_service.get_timer_state(patient_id)
    assert state.status == LaborStatus.IN_PROGRESS
    assert state.last_measurement_time is None
    # labor_start is 08:05, now is 08:10
    assert state.remaining_seconds == 25 * 60


def test_delete_measurement_allowed_after_completion(admit, labor_service):
    patient_id = admit()
    recorded = labor_service.record_measurement(patient_id, {"cervical_dilation": 10})
    labor_service.complete_labor(patient_id)

    labor_service.delete_measurement(patient_id, recorded.measurement.id)

    assert labor_service.get_measurements(patient_id) == []


def test_delete_measurement_of_other_patient(admit, labor_service):
    first = admit("First Patient")
    second = admit("Second Patient")
    recorded = labor_service.record_measurement(first, {"cervical_dilation": 4})

    with pytest.raises(MeasurementNotFoundError):
        labor_service.delete_measurement(second, recorded.measurement.id)

    assert len(labor_service.get_measurements(first)) == 1


def test_get_measurements_latest_first(admit, labor_service, clock):
    patient_id = admit()
    labor_service.record_measurement(patient_id, {"cervical_dilation": 4})
    clock.advance(minutes=30)
    labor_service.record_measurement(patient_id, {"cervical_dilation": 6})
    labor_service.record_measurement(patient_id, {"fetal_heart_rate": 150}, time=T0 + timedelta(minutes=10))

    history = labor_service.get_measurements(patient_id)

    assert [m.time for m in history] == [
        "2025-03-01T08:30:00Z",
        "2025-03-01T08:10:00Z",
        "2025-03-01T08:00:00Z",
    ]


def test_get_measurements_unknown_patient(labor_service):
    with pytest.raises(PatientNotFoundError):
        labor_service.get_measurements(7)
