"""Tests for the collector lifecycle state machine and its timers."""

import asyncio

import pytest

from nanopanel.session import CollectorLifecycle, LifecycleState, Trigger, next_deadline, transition


class TestTransition:

    def test_happy_path(self):
        state = transition(LifecycleState.INACTIVE, Trigger.BIND)
        assert state == LifecycleState.ACTIVE
        assert transition(state, Trigger.EVENT) == LifecycleState.ACTIVE
        assert transition(state, Trigger.IDLE_ELAPSED) == LifecycleState.ENDED
        assert transition(state, Trigger.DEADLINE_ELAPSED) == LifecycleState.ENDED
        assert transition(state, Trigger.STOP) == LifecycleState.ENDED

    def test_ended_is_terminal(self):
        for trigger in Trigger:
            assert transition(LifecycleState.ENDED, trigger) == LifecycleState.ENDED

    def test_inactive_ignores_everything_but_bind(self):
        for trigger in (Trigger.EVENT, Trigger.IDLE_ELAPSED, Trigger.DEADLINE_ELAPSED, Trigger.STOP):
            assert transition(LifecycleState.INACTIVE, trigger) == LifecycleState.INACTIVE


class TestNextDeadline:

    def test_no_timeouts(self):
        assert next_deadline(5.0, 0.0, None, None) == (None, None)

    def test_idle_only(self):
        assert next_deadline(5.0, 0.0, 10.0, None) == (15.0, Trigger.IDLE_ELAPSED)

    def test_absolute_only(self):
        assert next_deadline(5.0, 0.0, None, 10.0) == (10.0, Trigger.DEADLINE_ELAPSED)

    def test_earliest_wins(self):
        assert next_deadline(5.0, 0.0, 2.0, 10.0) == (7.0, Trigger.IDLE_ELAPSED)
        assert next_deadline(9.0, 0.0, 2.0, 10.0) == (10.0, Trigger.DEADLINE_ELAPSED)

    def test_tie_goes_to_absolute(self):
        assert next_deadline(8.0, 0.0, 2.0, 10.0) == (10.0, Trigger.DEADLINE_ELAPSED)


class TestCollectorLifecycle:

    @pytest.fixture
    def ends(self):
        return []

    @pytest.fixture
    def make(self, ends):
        def _make(**kwargs):
            async def on_end(collected, reason):
                ends.append((len(collected), reason))

            return CollectorLifecycle(on_end, **kwargs)

        return _make

    @pytest.mark.asyncio
    async def test_record_requires_active(self, make):
        lifecycle = make()
        assert not lifecycle.record("event")
        lifecycle.activate()
        assert lifecycle.record("event")
        assert lifecycle.collected == ["event"]

    @pytest.mark.asyncio
    async def test_idle_timeout(self, make, ends):
        lifecycle = make(idle_timeout=0.05)
        lifecycle.activate()
        assert await asyncio.wait_for(lifecycle.wait_ended(), 1.0) == "idle"
        assert ends == [(0, "idle")]

    @pytest.mark.asyncio
    async def test_activity_defers_idle_but_not_absolute(self, make, ends):
        lifecycle = make(idle_timeout=0.1, absolute_timeout=0.25)
        lifecycle.activate()

        loop = asyncio.get_running_loop()
        started = loop.time()
        while lifecycle.is_active and loop.time() - started < 1.0:
            lifecycle.record("tick")
            await asyncio.sleep(0.05)
            if loop.time() - started < 0.2:
                assert lifecycle.is_active

        await asyncio.wait_for(lifecycle.wait_ended(), 1.0)
        assert lifecycle.reason == "time"
        assert loop.time() - started < 0.5

    @pytest.mark.asyncio
    async def test_stop_runs_end_once(self, make, ends):
        lifecycle = make(idle_timeout=10)
        lifecycle.activate()
        lifecycle.stop("done")
        lifecycle.stop("again")
        await lifecycle.wait_ended()
        await asyncio.sleep(0)

        assert lifecycle.state == LifecycleState.ENDED
        assert ends == [(0, "done")]
        assert not lifecycle.record("late")

    @pytest.mark.asyncio
    async def test_stop_before_activate_is_ignored(self, make, ends):
        lifecycle = make()
        lifecycle.stop()
        assert lifecycle.state == LifecycleState.INACTIVE
        assert ends == []

    @pytest.mark.asyncio
    async def test_failing_end_handler_still_completes(self):
        async def on_end(collected, reason):
            raise RuntimeError("boom")

        lifecycle = CollectorLifecycle(on_end)
        lifecycle.activate()
        lifecycle.stop()
        assert await asyncio.wait_for(lifecycle.wait_ended(), 1.0) == "manual"
