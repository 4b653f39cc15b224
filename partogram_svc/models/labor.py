"""
Labor status and period enums.
"""
from enum import Enum, IntEnum


class LaborStatus(str, Enum):
    """
    Closed set of labor statuses.

    Transitions only move forward:
        not_started -> in_progress -> completed
    """

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @property
    def status_color(self) -> str:
        """Badge color used by the ward views."""
        return _STATUS_COLORS[self]

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_COLORS = {
    LaborStatus.NOT_STARTED: "secondary",
    LaborStatus.IN_PROGRESS: "danger",
    LaborStatus.COMPLETED: "success",
}

_STATUS_LABELS = {
    LaborStatus.NOT_STARTED: "Labor not started",
    LaborStatus.IN_PROGRESS: "In labor",
    LaborStatus.COMPLETED: "Delivered",
}


class LaborPeriod(IntEnum):
    """Clinical period of labor; decides the measurement cadence."""

    FIRST = 1
    SECOND = 2
