"""
Client-side timer cache.

Holds the last server timer state per patient and counts it down locally
between polls. The local countdown is display-only; every reconcile
overwrites it with the server's values.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set

logger = logging.getLogger(__name__)

IN_PROGRESS = "in_progress"

# Countdown color thresholds (seconds)
CRITICAL_SECONDS = 60
WARNING_SECONDS = 300


@dataclass
class CachedTimer:
    """One patient's timer as last reported by the server, counted down locally."""
    patient_id: int
    status: str
    period: int
    interval_minutes: int
    remaining_seconds: int
    is_lapsed: bool = False
    full_name: Optional[str] = None
    status_color: Optional[str] = None
    next_measurement_time: Optional[str] = None
    last_measurement_time: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "CachedTimer":
        return cls(
            patient_id=data["patient_id"],
            status=data["status"],
            period=data["period"],
            interval_minutes=data["interval_minutes"],
            remaining_seconds=max(0, int(data["remaining_seconds"])),
            is_lapsed=bool(data.get("is_lapsed", False)),
            full_name=data.get("full_name"),
            status_color=data.get("status_color"),
            next_measurement_time=data.get("next_measurement_time"),
            last_measurement_time=data.get("last_measurement_time"),
        )

    @property
    def in_progress(self) -> bool:
        return self.status == IN_PROGRESS

    @property
    def urgency(self) -> str:
        """Countdown color band: idle, normal, warning or critical."""
        if not self.in_progress:
            return "idle"
        if self.remaining_seconds < CRITICAL_SECONDS:
            return "critical"
        if self.remaining_seconds < WARNING_SECONDS:
            return "warning"
        return "normal"

    @property
    def display(self) -> str:
        """MM:SS countdown text."""
        minutes, seconds = divmod(self.remaining_seconds, 60)
        return f"{minutes:02d}:{seconds:02d}"


@dataclass
class ReconcileResult:
    """What a reconcile changed."""
    added: Set[int] = field(default_factory=set)
    removed: Set[int] = field(default_factory=set)
    # Period or status differs from the cached value
    transitioned: Set[int] = field(default_factory=set)
    updated: Set[int] = field(default_factory=set)

    @property
    def state_changed(self) -> Set[int]:
        """Patients whose badge or thresholds need re-rendering."""
        return self.added | self.removed | self.transitioned

    @property
    def has_state_change(self) -> bool:
        return bool(self.state_changed)


class TimerCache:
    """Per-view timer cache keyed by patient id."""

    def __init__(self) -> None:
        self._timers: Dict[int, CachedTimer] = {}

    def __len__(self) -> int:
        return len(self._timers)

    def __contains__(self, patient_id: int) -> bool:
        return patient_id in self._timers

    def get(self, patient_id: int) -> Optional[CachedTimer]:
        return self._timers.get(patient_id)

    def timers(self) -> List[CachedTimer]:
        """Cached timers in server order."""
        return list(self._timers.values())

    def tick(self, seconds: int = 1) -> Set[int]:
        """
        Count every in-progress timer down by ``seconds``, floor 0.

        Returns:
            Ids whose remaining_seconds changed.
        """
        changed = set()
        for timer in self._timers.values():
            if not timer.in_progress or timer.remaining_seconds == 0:
                continue
            timer.remaining_seconds = max(0, timer.remaining_seconds - seconds)
            if timer.remaining_seconds == 0:
                timer.is_lapsed = True
            changed.add(timer.patient_id)
        return changed

    def reconcile(self, server_states: Iterable[Dict[str, Any]]) -> ReconcileResult:
        """
        Replace the cache with the server's view.

        Args:
            server_states: Timer dicts from the API. Patients missing from
                this list are dropped from the cache.
        """
        result = ReconcileResult()
        fresh: Dict[int, CachedTimer] = {}

        for data in server_states:
            timer = CachedTimer.from_api(data)
            fresh[timer.patient_id] = timer

            cached = self._timers.get(timer.patient_id)
            if cached is None:
                result.added.add(timer.patient_id)
            elif cached.period != timer.period or cached.status != timer.status:
                result.transitioned.add(timer.patient_id)
            else:
                result.updated.add(timer.patient_id)

        result.removed = set(self._timers) - set(fresh)
        self._timers = fresh

        if result.has_state_change:
            logger.debug(
                "Timer state changed",
                extra={
                    "added": sorted(result.added),
                    "removed": sorted(result.removed),
                    "transitioned": sorted(result.transitioned),
                }
            )
        return result
