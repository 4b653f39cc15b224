"""
Derived timer state. Computed on every query, never stored.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from models.labor import LaborPeriod, LaborStatus


@dataclass(frozen=True)
class TimerState:
    status: LaborStatus
    period: LaborPeriod
    interval_minutes: int
    remaining_seconds: int
    is_lapsed: bool
    labor_start: Optional[datetime] = None
    labor_elapsed_seconds: Optional[int] = None
    last_measurement_time: Optional[datetime] = None
    next_measurement_time: Optional[datetime] = None
