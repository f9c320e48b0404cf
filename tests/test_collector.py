"""Tests for the interaction collector pipeline."""

import asyncio

import pytest

from nanopanel.render import ActionRow, Button, Container, ContentSpec
from nanopanel.session import (
    Collector,
    DeferBehavior,
    DispatchMode,
    LifecycleState,
    ListenerOptions,
    TimeoutAction,
)


def panel_spec():
    return ContentSpec(
        content="panel",
        components=[
            Container(texts=["keep me"]),
            ActionRow(components=[Button(custom_id="btn_ok", label="OK"), Button(custom_id="btn_no", label="No")]),
        ],
    )


@pytest.fixture
async def handle(channel):
    return await channel.render("chat", panel_spec())


@pytest.fixture
async def make_collector(channel, handle, config):
    collectors = []

    def _make(**kwargs):
        kwargs.setdefault("idle_timeout", 0)
        kwargs.setdefault("absolute_timeout", 0)
        kwargs.setdefault("config", config)
        collector = Collector(handle, channel, **kwargs)
        collectors.append(collector)
        return collector

    yield _make

    for collector in collectors:
        collector.stop("teardown")
        await collector.wait_ended()


class TestRegistration:

    def test_key_without_callable_is_rejected(self, config):
        collector = Collector(config=config)
        with pytest.raises(TypeError):
            collector.on("btn_ok", ListenerOptions())

    def test_unbound_collector_stays_inactive(self, config):
        collector = Collector(config=config)
        assert collector.state == LifecycleState.INACTIVE
        assert collector.handle is None

    @pytest.mark.asyncio
    async def test_fluent_registration(self, make_collector):
        collector = make_collector()
        result = collector.on(lambda e: None).on("btn_ok", lambda e: None).on_end(lambda c, r: None)
        assert result is collector
        assert len(collector.registry) == 2
        assert collector.is_active


class TestDispatch:

    @pytest.mark.asyncio
    async def test_open_session_runs_for_everyone(self, channel, handle, make_collector, settle):
        seen = []
        collector = make_collector()
        collector.on(lambda e: seen.append(e.actor_id))

        await channel.click(handle, "alice", "btn_ok")
        await channel.click(handle, "bob", "btn_no")
        await settle(collector)

        assert sorted(seen) == ["alice", "bob"]
        assert len(collector.collected) == 2

    @pytest.mark.asyncio
    async def test_global_listeners_run_before_keyed(self, channel, handle, make_collector, settle):
        order = []
        collector = make_collector(mode=DispatchMode.SEQUENTIAL)
        collector.on("btn_ok", lambda e: order.append("keyed"))
        collector.on(lambda e: order.append("global"))

        await channel.click(handle, "alice", "btn_ok")
        await settle(collector)

        assert order == ["global", "keyed"]

    @pytest.mark.asyncio
    async def test_sequential_ordering_includes_on_settled(self, channel, handle, make_collector, settle):
        order = []

        async def first(event):
            order.append("L1 start")
            await asyncio.sleep(0.01)
            order.append("L1 end")

        async def first_settled(event):
            await asyncio.sleep(0)
            order.append("L1 settled")

        async def second(event):
            order.append("L2 start")

        collector = make_collector(mode=DispatchMode.SEQUENTIAL)
        collector.on("btn_ok", first, ListenerOptions(on_settled=first_settled))
        collector.on("btn_ok", second)

        await channel.click(handle, "alice", "btn_ok")
        await settle(collector)

        assert order == ["L1 start", "L1 end", "L1 settled", "L2 start"]

    @pytest.mark.asyncio
    async def test_listener_isolation(self, channel, handle, make_collector, settle):
        ran = []

        def broken(event):
            raise RuntimeError("listener failed")

        collector = make_collector(mode=DispatchMode.SEQUENTIAL)
        collector.on("btn_ok", broken, ListenerOptions(on_settled=lambda e: ran.append("settled")))
        collector.on("btn_ok", lambda e: ran.append("L2"))

        await channel.click(handle, "alice", "btn_ok")
        await settle(collector)

        assert ran == ["settled", "L2"]
        assert collector.is_active

    @pytest.mark.asyncio
    async def test_parallel_listeners_all_run(self, channel, handle, make_collector, settle):
        ran = []

        async def slow(event):
            await asyncio.sleep(0.02)
            ran.append("slow")

        collector = make_collector(mode=DispatchMode.PARALLEL)
        collector.on("btn_ok", slow)
        collector.on("btn_ok", lambda e: ran.append("fast"))

        await channel.click(handle, "alice", "btn_ok")
        await settle(collector)

        assert sorted(ran) == ["fast", "slow"]

    @pytest.mark.asyncio
    async def test_listener_participants_replace_session_default(self, channel, handle, make_collector, settle):
        seen = []
        collector = make_collector(participants=["alice"])
        collector.on("btn_ok", lambda e: seen.append(("session", e.actor_id)))
        collector.on("btn_ok", lambda e: seen.append(("bob-only", e.actor_id)), ListenerOptions(participants=["bob"]))

        await channel.click(handle, "bob", "btn_ok")
        await settle(collector)

        assert seen == [("bob-only", "bob")]


class TestAcknowledgement:

    @pytest.mark.asyncio
    async def test_defer_update_once(self, channel, handle, make_collector, settle):
        collector = make_collector(mode=DispatchMode.SEQUENTIAL)
        collector.on("btn_ok", lambda e: None, ListenerOptions(defer=DeferBehavior(update=True)))
        collector.on("btn_ok", lambda e: None, ListenerOptions(defer=True))

        await channel.click(handle, "alice", "btn_ok")
        await settle(collector)

        assert [r.action for r in channel.responses] == ["defer_update"]

    @pytest.mark.asyncio
    async def test_defer_reply_ephemeral(self, channel, handle, make_collector, settle):
        collector = make_collector()
        collector.on("btn_ok", lambda e: None, ListenerOptions(defer=DeferBehavior(ephemeral=True)))

        await channel.click(handle, "alice", "btn_ok")
        await settle(collector)

        [response] = channel.responses
        assert response.action == "defer_reply"
        assert response.ephemeral

    @pytest.mark.asyncio
    async def test_listener_reply_after_defer_is_followup(self, channel, handle, make_collector, settle):
        async def answer(event):
            await event.reply("done")

        collector = make_collector()
        collector.on("btn_ok", answer, ListenerOptions(defer=True))

        await channel.click(handle, "alice", "btn_ok")
        await settle(collector)

        assert [r.action for r in channel.responses] == ["defer_reply", "followup"]

    @pytest.mark.asyncio
    async def test_rejected_actor_gets_one_notice_within_cooldown(
        self, channel, handle, make_collector, settle, clock
    ):
        seen = []
        collector = make_collector(participants=["alice"], not_authorized_message="nope", clock=clock)
        collector.on("btn_ok", lambda e: seen.append(e.actor_id))

        await channel.click(handle, "bob", "btn_ok")
        await settle(collector)
        clock.advance(1)
        await channel.click(handle, "bob", "btn_ok")
        await settle(collector)

        assert seen == []
        assert len(channel.responses_for("bob", "reply")) == 1
        assert len(channel.responses_for("bob", "defer_update")) == 1


class TestUserLock:

    @pytest.mark.asyncio
    async def test_second_event_is_rejected_while_locked(self, channel, handle, make_collector, settle):
        release = asyncio.Event()
        calls = []

        async def blocking(event):
            calls.append(event.actor_id)
            await release.wait()

        collector = make_collector(user_lock=True, user_lock_message="wait", mode=DispatchMode.SEQUENTIAL)
        collector.on("btn_ok", blocking)

        await channel.click(handle, "alice", "btn_ok")
        await settle()
        await channel.click(handle, "alice", "btn_ok")
        await settle()

        assert calls == ["alice"]
        assert collector.guard.holds("alice")
        [notice] = channel.responses_for("alice", "reply")
        assert notice.payload == "wait"
        assert notice.ephemeral

        release.set()
        await settle(collector)
        assert not collector.guard.holds("alice")

        await channel.click(handle, "alice", "btn_ok")
        await settle(collector)
        assert calls == ["alice", "alice"]

    @pytest.mark.asyncio
    async def test_lock_released_after_listener_throws(self, channel, handle, make_collector, settle):
        calls = []

        def flaky(event):
            calls.append(len(calls))
            if len(calls) == 1:
                raise RuntimeError("first call fails")

        collector = make_collector(user_lock=True)
        collector.on("btn_ok", flaky)

        await channel.click(handle, "alice", "btn_ok")
        await settle(collector)
        await channel.click(handle, "alice", "btn_ok")
        await settle(collector)

        assert calls == [0, 1]
        assert collector.guard.active_actor_ids == frozenset()
        assert channel.responses_for("alice", "reply") == []

    @pytest.mark.asyncio
    async def test_parallel_lock_covers_all_listeners(self, channel, handle, make_collector, settle):
        release = asyncio.Event()

        async def blocking(event):
            await release.wait()

        collector = make_collector(user_lock=True, mode=DispatchMode.PARALLEL)
        collector.on("btn_ok", blocking)
        collector.on("btn_ok", lambda e: None)

        await channel.click(handle, "alice", "btn_ok")
        await settle()
        assert collector.guard.holds("alice")

        release.set()
        await settle(collector)
        assert not collector.guard.holds("alice")

    @pytest.mark.asyncio
    async def test_lock_released_when_no_listener_matches(self, channel, handle, make_collector, settle):
        collector = make_collector(user_lock=True)
        collector.on("btn_other", lambda e: None)

        await channel.click(handle, "alice", "btn_ok")
        await settle(collector)

        assert not collector.guard.holds("alice")


class TestTermination:

    @pytest.mark.asyncio
    async def test_delete_content_once_after_absolute_timeout(self, channel, handle, make_collector, settle):
        ended = []
        collector = make_collector(absolute_timeout=0.05, on_timeout=TimeoutAction.DELETE_CONTENT)
        collector.on_end(lambda collected, reason: ended.append(reason))

        assert await asyncio.wait_for(collector.wait_ended(), 1.0) == "time"
        collector.stop()
        await channel.click(handle, "alice", "btn_ok")
        await settle()

        assert ended == ["time"]
        assert channel.count("delete", handle.message_id) == 1
        assert channel.count("edit", handle.message_id) == 0
        assert handle.message_id not in channel.messages

    @pytest.mark.asyncio
    async def test_disable_keeps_container(self, channel, handle, make_collector):
        collector = make_collector(on_timeout=TimeoutAction.DISABLE_AFFORDANCES)
        collector.stop()
        await collector.wait_ended()

        spec = channel.messages[handle.message_id]
        assert isinstance(spec.components[0], Container)
        assert all(b.disabled for b in spec.action_rows[0].components)

    @pytest.mark.asyncio
    async def test_clear_strips_action_rows(self, channel, handle, make_collector):
        collector = make_collector(on_timeout=TimeoutAction.CLEAR_AFFORDANCES)
        collector.stop()
        await collector.wait_ended()

        spec = channel.messages[handle.message_id]
        assert spec.action_rows == []
        assert spec.components == [Container(texts=["keep me"])]

    @pytest.mark.asyncio
    async def test_any_delete_failure_is_swallowed(self, channel, handle, make_collector, monkeypatch, logged_errors):
        async def broken_delete(target):
            raise RuntimeError("gateway unavailable")

        monkeypatch.setattr(channel, "delete", broken_delete)
        collector = make_collector(on_timeout=TimeoutAction.DELETE_CONTENT)
        collector.stop()

        assert await collector.wait_ended() == "manual"
        assert logged_errors == []

    @pytest.mark.asyncio
    async def test_missing_content_is_ignored_on_end(self, channel, handle, make_collector):
        collector = make_collector(on_timeout=TimeoutAction.DISABLE_AFFORDANCES)
        await channel.delete(handle)
        collector.stop()
        assert await collector.wait_ended() == "manual"

    @pytest.mark.asyncio
    async def test_end_listeners_receive_collected_events(self, channel, handle, make_collector, settle):
        ended = []
        collector = make_collector(mode=DispatchMode.SEQUENTIAL)
        collector.on(lambda e: None)
        collector.on_end(lambda collected, reason: ended.append(([e.actor_id for e in collected], reason)))

        await channel.click(handle, "alice", "btn_ok")
        await settle(collector)
        collector.stop("finished")
        await collector.wait_ended()

        assert ended == [(["alice"], "finished")]
        assert channel.bus.subscription_count(handle.message_id) == 0

    @pytest.mark.asyncio
    async def test_max_events_limit(self, channel, handle, make_collector, settle):
        seen = []
        collector = make_collector(max_events=2)
        collector.on(lambda e: seen.append(e.actor_id))

        for actor in ("alice", "bob", "carol"):
            await channel.click(handle, actor, "btn_ok")
            await settle(collector)

        assert await collector.wait_ended() == "limit"
        assert seen == ["alice", "bob"]

    @pytest.mark.asyncio
    async def test_max_users_limit(self, channel, handle, make_collector, settle):
        collector = make_collector(max_users=2)
        collector.on(lambda e: None)

        await channel.click(handle, "alice", "btn_ok")
        await settle(collector)
        await channel.click(handle, "alice", "btn_no")
        await settle(collector)
        assert collector.is_active

        await channel.click(handle, "bob", "btn_ok")
        await settle(collector)
        assert await collector.wait_ended() == "limit"
