"""
Per-view timer reconciliation loops.

Each open view (patient list, partogram page) owns one TimerView with two
asyncio tasks:

    tick loop  every tick_seconds, count cached timers down locally
               (suspended while the view is hidden)
    poll loop  every foreground/background interval, fetch the server state
               and overwrite the cache; becoming visible wakes it at once

A failed poll keeps the cache as it is and retries on the next interval.
TransientSyncError is logged as a warning, anything else with a traceback.
stop() cancels both tasks.

Usage:
    view = PatientListView(get_partogram_api_client())
    view.add_listener(render)
    await view.start()
    ...
    view.set_visible(False)
    ...
    await view.stop()
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, List, Optional

from clients.timer_api_client import APIResponseError, PartogramAPIClient, TransientSyncError
from config import BACKGROUND_POLL_SECONDS, FOREGROUND_POLL_SECONDS, TICK_SECONDS
from sync.timer_cache import ReconcileResult, TimerCache

logger = logging.getLogger(__name__)

STATE_CHANGED = "state_changed"
COUNTDOWN = "countdown"


@dataclass(frozen=True)
class TimerEvent:
    """
    Notification sent to view listeners.

    kind is STATE_CHANGED when a period or status changed (or a patient
    appeared or disappeared) and badges need re-rendering, COUNTDOWN when
    only the numbers moved.
    """
    kind: str
    patient_ids: FrozenSet[int]


Listener = Callable[[TimerEvent], None]


class TimerView:
    """Base class: cache, loops and visibility. Subclasses implement fetch()."""

    def __init__(
        self,
        client: PartogramAPIClient,
        tick_seconds: Optional[float] = None,
        foreground_poll_seconds: Optional[float] = None,
        background_poll_seconds: Optional[float] = None,
    ):
        self._client = client
        self.tick_seconds = tick_seconds if tick_seconds is not None else TICK_SECONDS
        self.foreground_poll_seconds = (
            foreground_poll_seconds if foreground_poll_seconds is not None else FOREGROUND_POLL_SECONDS
        )
        self.background_poll_seconds = (
            background_poll_seconds if background_poll_seconds is not None else BACKGROUND_POLL_SECONDS
        )

        self.cache = TimerCache()
        self._listeners: List[Listener] = []
        self._visible = True
        self._wake = asyncio.Event()
        self._tick_task: Optional[asyncio.Task] = None
        self._poll_task: Optional[asyncio.Task] = None
        self.consecutive_failures = 0

    # ------------------------------------------------------------------
    # Subclass hook
    # ------------------------------------------------------------------

    async def fetch(self) -> List[Dict[str, Any]]:
        """Fetch the authoritative timer states this view shows."""
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        self._listeners.remove(listener)

    def _emit(self, kind: str, patient_ids) -> None:
        event = TimerEvent(kind=kind, patient_ids=frozenset(patient_ids))
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Timer listener failed on {kind} event")

    # ------------------------------------------------------------------
    # Single steps (used by the loops, callable directly)
    # ------------------------------------------------------------------

    def tick_once(self) -> None:
        """One local countdown step. No-op while hidden."""
        if not self._visible:
            return
        changed = self.cache.tick(1)
        if changed:
            self._emit(COUNTDOWN, changed)

    async def sync_once(self) -> Optional[ReconcileResult]:
        """
        Fetch server state and reconcile the cache.

        Returns:
            The reconcile result, or None if the server could not be reached
            (cache left untouched).
        """
        try:
            states = await self.fetch()
        except TransientSyncError as e:
            self.consecutive_failures += 1
            logger.warning(
                f"Timer sync failed, keeping cached state: {e}",
                extra={"consecutive_failures": self.consecutive_failures}
            )
            return None

        self.consecutive_failures = 0
        result = self.cache.reconcile(states)
        if result.has_state_change:
            self._emit(STATE_CHANGED, result.state_changed)
        if result.updated:
            self._emit(COUNTDOWN, result.updated)
        return result

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    @property
    def visible(self) -> bool:
        return self._visible

    async def start(self) -> None:
        """Initial fetch, then start the tick and poll loops."""
        if self.running:
            return
        await self.sync_once()
        self._tick_task = asyncio.create_task(self._tick_loop(), name=f"{type(self).__name__}-tick")
        self._poll_task = asyncio.create_task(self._poll_loop(), name=f"{type(self).__name__}-poll")
        logger.info(f"{type(self).__name__} started")

    async def stop(self) -> None:
        """Cancel both loops and wait for them to finish."""
        tasks = [t for t in (self._tick_task, self._poll_task) if t is not None]
        for task in tasks:
            task.cancel()
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception) and not isinstance(result, asyncio.CancelledError):
                logger.error(f"{type(self).__name__} loop ended with error: {result!r}")
        self._tick_task = None
        self._poll_task = None
        logger.info(f"{type(self).__name__} stopped")

    def set_visible(self, visible: bool) -> None:
        """
        Show or hide the view.

        Hidden: ticking stops, polling drops to the background interval.
        Visible again: ticking resumes and the poll loop reconciles at once.
        """
        was_visible = self._visible
        self._visible = visible
        if visible and not was_visible:
            self._wake.set()

    def _poll_interval(self) -> Optional[float]:
        """Seconds until the next poll; None means wait until woken."""
        if self._visible:
            return self.foreground_poll_seconds
        if self.background_poll_seconds == 0:
            return None
        return self.background_poll_seconds

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self.tick_seconds)
            self.tick_once()

    async def _poll_loop(self) -> None:
        while True:
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self._poll_interval())
            except asyncio.TimeoutError:
                pass
            self._wake.clear()
            try:
                await self.sync_once()
            except Exception:
                # Keep the cached countdown and retry on the next interval
                self.consecutive_failures += 1
                logger.exception(
                    f"{type(self).__name__} poll failed, keeping cached state",
                    extra={"consecutive_failures": self.consecutive_failures}
                )


class PatientListView(TimerView):
    """All patients on the ward, from the bulk timer endpoint."""

    async def fetch(self) -> List[Dict[str, Any]]:
        return await self._client.get_timers()


class PartogramView(TimerView):
    """One patient's partogram page."""

    def __init__(self, client: PartogramAPIClient, patient_id: int, **kwargs: Any):
        super().__init__(client, **kwargs)
        self.patient_id = patient_id

    async def fetch(self) -> List[Dict[str, Any]]:
        try:
            return [await self._client.get_timer(self.patient_id)]
        except APIResponseError as e:
            if e.status_code == 404:
                # Patient deleted: reconcile to empty
                return []
            raise

    @property
    def timer(self):
        return self.cache.get(self.patient_id)
