"""
Timer state calculation.

Pure function of (patient, measurements, now). The caller supplies ``now``
from its clock so the same inputs always give the same state.
"""
from datetime import datetime, timedelta
from typing import Iterable

from models import LaborPeriod, LaborStatus, Measurement, Patient, TimerState
from services.labor_period import classify_period, interval_minutes_for, latest_measurement


def compute_timer_state(
    patient: Patient,
    measurements: Iterable[Measurement],
    now: datetime
) -> TimerState:
    """
    Derive the measurement countdown for one patient.

    In progress:
        anchor = latest measurement time, else labor_start
        remaining = max(0, interval * 60 - whole seconds since anchor)

    Not started or completed: no countdown (period 1, remaining 0), but the
    last measurement time is still reported.

    Args:
        patient: The patient row.
        measurements: The patient's measurements; at minimum the latest one
            and the latest one carrying a cervical dilation.
        now: Current time (UTC).
    """
    measurements = list(measurements)
    last = latest_measurement(measurements)
    last_time = last.time if last else None

    if patient.status is not LaborStatus.IN_PROGRESS:
        return TimerState(
            status=patient.status,
            period=LaborPeriod.FIRST,
            interval_minutes=interval_minutes_for(LaborPeriod.FIRST),
            remaining_seconds=0,
            is_lapsed=False,
            labor_start=patient.labor_start,
            last_measurement_time=last_time,
        )

    period = classify_period(measurements)
    interval = interval_minutes_for(period)
    anchor = last_time or patient.labor_start

    labor_elapsed = None
    if patient.labor_start is not None:
        labor_elapsed = max(0, int((now - patient.labor_start).total_seconds()))

    if anchor is None:
        remaining = 0
        next_time = None
    else:
        # int() truncates toward zero
        elapsed = int((now - anchor).total_seconds())
        # Anchor ahead of the clock counts as "just measured"
        remaining = min(interval * 60, max(0, interval * 60 - elapsed))
        next_time = anchor + timedelta(minutes=interval)

    return TimerState(
        status=patient.status,
        period=period,
        interval_minutes=interval,
        remaining_seconds=remaining,
        is_lapsed=remaining == 0,
        labor_start=patient.labor_start,
        labor_elapsed_seconds=labor_elapsed,
        last_measurement_time=last_time,
        next_measurement_time=next_time,
    )
