"""
Timer synchronization for ward views: local countdown plus server polling.
"""
from sync.timer_cache import CachedTimer, ReconcileResult, TimerCache
from sync.timer_view import (
    COUNTDOWN,
    STATE_CHANGED,
    PartogramView,
    PatientListView,
    TimerEvent,
    TimerView,
)

__all__ = [
    "CachedTimer",
    "ReconcileResult",
    "TimerCache",
    "COUNTDOWN",
    "STATE_CHANGED",
    "PartogramView",
    "PatientListView",
    "TimerEvent",
    "TimerView",
]
