"""
Labor period classification.

The period is decided by the chronologically latest measurement that carries
a cervical dilation: full dilation (10 cm) means the second period, anything
else (or no dilation on record) the first. A later lower reading moves the
patient back to the first period.
"""
from typing import Iterable, Optional

from models import LaborPeriod, Measurement

FULL_DILATION_CM = 10

_INTERVAL_MINUTES = {
    LaborPeriod.FIRST: 30,
    LaborPeriod.SECOND: 15,
}


def latest_measurement(measurements: Iterable[Measurement]) -> Optional[Measurement]:
    """Latest by time, ties broken by id. Input order is irrelevant."""
    return max(measurements, key=lambda m: m.sort_key, default=None)


def classify_period(measurements: Iterable[Measurement]) -> LaborPeriod:
    """
    Classify the labor period from a patient's measurements.

    Args:
        measurements: Any subset of the patient's history that includes the
            latest dilation-bearing measurement, in any order.
    """
    latest = latest_measurement(m for m in measurements if m.cervical_dilation is not None)
    if latest is not None and latest.cervical_dilation >= FULL_DILATION_CM:
        return LaborPeriod.SECOND
    return LaborPeriod.FIRST


def interval_minutes_for(period: LaborPeriod) -> int:
    """Minutes between mandatory measurements in the given period."""
    return _INTERVAL_MINUTES[LaborPeriod(period)]
