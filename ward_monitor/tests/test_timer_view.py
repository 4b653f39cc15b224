"""
Tests for the per-view tick and poll loops.
"""
import asyncio

import httpx
import pytest

from clients.timer_api_client import APIResponseError, PartogramAPIClient, TransientSyncError
from sync.timer_view import COUNTDOWN, STATE_CHANGED, PartogramView, PatientListView


def timer_dict(patient_id=1, status="in_progress", period=1, remaining=1800):
    return {
        "patient_id": patient_id,
        "full_name": f"Patient {patient_id}",
        "status": status,
        "status_color": "danger",
        "period": period,
        "interval_minutes": 30 if period == 1 else 15,
        "remaining_seconds": remaining,
        "is_lapsed": False,
    }


class FakeClient:
    """Returns queued responses; an Exception in the queue is raised instead."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    def _next(self, call):
        self.calls.append(call)
        if len(self.responses) > 1:
            response = self.responses.pop(0)
        else:
            response = self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    async def get_timers(self):
        return self._next("get_timers")

    async def get_timer(self, patient_id):
        return self._next(("get_timer", patient_id))


@pytest.fixture
def events():
    return []


def list_view(client, events, **kwargs):
    kwargs.setdefault("tick_seconds", 1.0)
    kwargs.setdefault("foreground_poll_seconds", 15.0)
    kwargs.setdefault("background_poll_seconds", 60.0)
    view = PatientListView(client, **kwargs)
    view.add_listener(events.append)
    return view


@pytest.mark.asyncio
async def test_sync_once_populates_cache_and_signals_state_change(events):
    client = FakeClient([[timer_dict(1, remaining=120), timer_dict(2, status="not_started", remaining=0)]])
    view = list_view(client, events)

    result = await view.sync_once()

    assert result.added == {1, 2}
    assert view.cache.get(1).remaining_seconds == 120
    assert events[0].kind == STATE_CHANGED
    assert events[0].patient_ids == frozenset({1, 2})


@pytest.mark.asyncio
async def test_tick_once_emits_countdown(events):
    view = list_view(FakeClient([[timer_dict(1, remaining=120)]]), events)
    await view.sync_once()
    events.clear()

    view.tick_once()

    assert view.cache.get(1).remaining_seconds == 119
    assert [e.kind for e in events] == [COUNTDOWN]


@pytest.mark.asyncio
async def test_transient_failure_keeps_cache(events):
    client = FakeClient([
        [timer_dict(1, remaining=120)],
        TransientSyncError("server down"),
    ])
    view = list_view(client, events)
    await view.sync_once()
    view.tick_once()

    result = await view.sync_once()

    assert result is None
    assert view.consecutive_failures == 1
    assert view.cache.get(1).remaining_seconds == 119


@pytest.mark.asyncio
async def test_failure_counter_resets_after_success(events):
    client = FakeClient([
        TransientSyncError("server down"),
        [timer_dict(1)],
    ])
    view = list_view(client, events)

    await view.sync_once()
    await view.sync_once()

    assert view.consecutive_failures == 0
    assert 1 in view.cache


@pytest.mark.asyncio
async def test_reconcile_corrects_local_drift(events):
    client = FakeClient([
        [timer_dict(1, remaining=120)],
        [timer_dict(1, remaining=110)],
    ])
    view = list_view(client, events)
    await view.sync_once()
    for _ in range(5):
        view.tick_once()
    events.clear()

    result = await view.sync_once()

    assert view.cache.get(1).remaining_seconds == 110
    assert not result.has_state_change
    assert [e.kind for e in events] == [COUNTDOWN]


@pytest.mark.asyncio
async def test_period_transition_signals_state_change(events):
    client = FakeClient([
        [timer_dict(1, period=1, remaining=600)],
        [timer_dict(1, period=2, remaining=900)],
    ])
    view = list_view(client, events)
    await view.sync_once()
    events.clear()

    await view.sync_once()

    assert events[0].kind == STATE_CHANGED
    assert events[0].patient_ids == frozenset({1})
    assert view.cache.get(1).interval_minutes == 15


@pytest.mark.asyncio
async def test_hidden_view_does_not_tick(events):
    view = list_view(FakeClient([[timer_dict(1, remaining=120)]]), events)
    await view.sync_once()
    events.clear()

    view.set_visible(False)
    view.tick_once()

    assert view.cache.get(1).remaining_seconds == 120
    assert events == []


@pytest.mark.asyncio
async def test_failing_listener_does_not_block_others(events):
    view = list_view(FakeClient([[timer_dict(1)]]), events)

    def broken(event):
        raise RuntimeError("render failed")

    view._listeners.insert(0, broken)

    await view.sync_once()

    assert len(events) == 1


@pytest.mark.asyncio
async def test_partogram_view_fetches_single_patient(events):
    client = FakeClient([timer_dict(7, remaining=300)])
    view = PartogramView(client, 7, tick_seconds=1.0, foreground_poll_seconds=15.0)

    await view.sync_once()

    assert client.calls == [("get_timer", 7)]
    assert view.timer.remaining_seconds == 300


@pytest.mark.asyncio
async def test_partogram_view_patient_deleted_empties_cache(events):
    client = FakeClient([
        timer_dict(7),
        APIResponseError(404, "Patient with ID 7 not found"),
    ])
    view = PartogramView(client, 7)
    view.add_listener(events.append)
    await view.sync_once()

    result = await view.sync_once()

    assert result.removed == {7}
    assert view.timer is None


@pytest.mark.asyncio
async def test_partogram_view_other_client_errors_propagate():
    client = FakeClient([APIResponseError(400, "bad request")])
    view = PartogramView(client, 7)

    with pytest.raises(APIResponseError):
        await view.sync_once()


class TestLoops:
    @pytest.mark.asyncio
    async def test_start_fetches_then_ticks(self, events):
        client = FakeClient([[timer_dict(1, remaining=120)]])
        view = list_view(client, events, tick_seconds=0.01, foreground_poll_seconds=60.0)

        await view.start()
        try:
            assert view.running
            await asyncio.sleep(0.1)
        finally:
            await view.stop()

        assert client.calls == ["get_timers"]
        assert view.cache.get(1).remaining_seconds < 120
        assert not view.running

    @pytest.mark.asyncio
    async def test_poll_loop_reconciles_on_interval(self, events):
        client = FakeClient([[timer_dict(1)]])
        view = list_view(client, events, tick_seconds=60.0, foreground_poll_seconds=0.02)

        await view.start()
        try:
            await asyncio.sleep(0.15)
        finally:
            await view.stop()

        assert len(client.calls) >= 3

    @pytest.mark.asyncio
    async def test_background_zero_pauses_polling_until_visible(self, events):
        client = FakeClient([[timer_dict(1)]])
        view = list_view(
            client, events,
            tick_seconds=60.0, foreground_poll_seconds=60.0, background_poll_seconds=0,
        )
        view.set_visible(False)

        await view.start()
        try:
            await asyncio.sleep(0.05)
            assert client.calls == ["get_timers"]

            view.set_visible(True)
            await asyncio.sleep(0.05)
            assert client.calls == ["get_timers", "get_timers"]
        finally:
            await view.stop()

    @pytest.mark.asyncio
    async def test_start_survives_unreachable_server(self, events):
        client = FakeClient([TransientSyncError("down")])
        view = list_view(client, events, tick_seconds=60.0, foreground_poll_seconds=60.0)

        await view.start()
        try:
            assert view.running
            assert len(view.cache) == 0
        finally:
            await view.stop()

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self, events):
        view = list_view(FakeClient([[]]), events)

        await view.start()
        await view.stop()
        await view.stop()

        assert not view.running


class TestPollLoopFailures:
    """The poll loop keeps running and keeps the cache whatever a poll raises."""

    @staticmethod
    def served_view(failure, events):
        """List view over a real client: good data first, then the failure response forever."""
        fetches = []

        def handler(request):
            fetches.append(request)
            if len(fetches) == 1:
                return httpx.Response(200, json=[timer_dict(1, remaining=1200)])
            status_code, body = failure
            return httpx.Response(status_code, **body)

        client = PartogramAPIClient(
            base_url="http://test-server",
            transport=httpx.MockTransport(handler),
        )
        view = list_view(client, events, tick_seconds=60.0, foreground_poll_seconds=0.02)
        return view, fetches

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failure", [
        (429, {"json": {"detail": "rate limited"}}),
        (408, {"json": {"detail": "request timeout"}}),
        (200, {"text": "<html>proxy login</html>"}),
        (401, {"json": {"detail": "proxy authentication required"}}),
        (502, {"text": "bad gateway"}),
    ])
    async def test_loop_survives_failed_polls(self, events, failure):
        view, fetches = self.served_view(failure, events)

        await view.start()
        try:
            await asyncio.sleep(0.15)
            assert view.running
        finally:
            await view.stop()

        assert len(fetches) >= 3
        assert view.cache.get(1).remaining_seconds == 1200
        assert view.consecutive_failures >= 2

    @pytest.mark.asyncio
    async def test_unexpected_error_is_logged_and_retried(self, events, caplog):
        client = FakeClient([[timer_dict(1)], RuntimeError("malformed timer row")])
        view = list_view(client, events, tick_seconds=60.0, foreground_poll_seconds=0.02)

        await view.start()
        try:
            await asyncio.sleep(0.1)
            assert view.running
        finally:
            await view.stop()

        assert len(client.calls) >= 3
        assert 1 in view.cache
        assert any("poll failed" in r.getMessage() and r.exc_info for r in caplog.records)

    @pytest.mark.asyncio
    async def test_loop_recovers_after_failures(self, events):
        client = FakeClient([
            [timer_dict(1, remaining=1200)],
            APIResponseError(429, "rate limited"),
            [timer_dict(1, remaining=900)],
        ])
        view = list_view(client, events, tick_seconds=60.0, foreground_poll_seconds=0.02)

        await view.start()
        try:
            await asyncio.sleep(0.1)
        finally:
            await view.stop()

        assert view.cache.get(1).remaining_seconds == 900
        assert view.consecutive_failures == 0
