"""Tests for participant authorization, warning cooldown and the per-actor lock."""

from types import SimpleNamespace

import pytest

from nanopanel.bus import InteractionEvent
from nanopanel.session import ConcurrencyGuard, ParticipantGate
from nanopanel.session.gate import resolve_actor_id


def make_event(channel, actor_id="bob"):
    return InteractionEvent(
        message_id="m1",
        actor_id=actor_id,
        affordance_id="btn_ok",
        responder=channel.respond,
    )


class TestAuthorization:

    def test_open_session(self):
        for actor in ("alice", "bob", "", "123"):
            assert ParticipantGate.is_authorized(actor, [])

    def test_membership(self):
        assert ParticipantGate.is_authorized("alice", ["alice", "carol"])
        assert not ParticipantGate.is_authorized("bob", ["alice", "carol"])

    def test_resolves_objects_with_id(self):
        user = SimpleNamespace(id=42)
        assert resolve_actor_id(user) == "42"
        assert ParticipantGate.is_authorized("42", [user])

    def test_listener_list_replaces_session_list(self):
        gate = ParticipantGate(["alice"])
        assert gate.allowed_for(None) == ["alice"]
        assert gate.allowed_for(["bob"]) == ["bob"]
        assert gate.allowed_for([]) == []


class TestCooldown:

    @pytest.mark.asyncio
    async def test_two_attempts_within_cooldown_produce_one_notice(self, channel, clock):
        gate = ParticipantGate(["alice"], not_authorized_message="nope", cooldown=5.0, clock=clock)

        assert not await gate.check(make_event(channel))
        clock.advance(1.0)
        assert not await gate.check(make_event(channel))

        notices = [r for r in channel.responses if r.payload == "nope"]
        assert len(notices) == 1
        assert notices[0].ephemeral
        assert [r.action for r in channel.responses] == ["reply", "defer_update"]

    @pytest.mark.asyncio
    async def test_notice_again_after_cooldown(self, channel, clock):
        gate = ParticipantGate(["alice"], not_authorized_message="nope", cooldown=5.0, clock=clock)

        await gate.check(make_event(channel))
        clock.advance(5.0)
        await gate.check(make_event(channel))

        assert len([r for r in channel.responses if r.payload == "nope"]) == 2

    @pytest.mark.asyncio
    async def test_cooldown_is_per_actor(self, channel, clock):
        gate = ParticipantGate(["alice"], not_authorized_message="nope", clock=clock)

        await gate.check(make_event(channel, "bob"))
        await gate.check(make_event(channel, "carol"))

        assert len([r for r in channel.responses if r.payload == "nope"]) == 2

    @pytest.mark.asyncio
    async def test_authorized_actor_leaves_no_trace(self, channel, clock):
        gate = ParticipantGate(["alice"], not_authorized_message="nope", clock=clock)

        assert await gate.check(make_event(channel, "alice"))
        assert channel.responses == []
        assert gate.should_warn("bob")

    @pytest.mark.asyncio
    async def test_empty_message_acknowledges_silently(self, channel, clock):
        gate = ParticipantGate(["alice"], not_authorized_message="", clock=clock)

        await gate.check(make_event(channel))
        assert [r.action for r in channel.responses] == ["defer_update"]


class TestConcurrencyGuard:

    def test_disabled_guard_always_acquires(self):
        guard = ConcurrencyGuard(enabled=False)
        assert guard.try_acquire("alice")
        assert guard.try_acquire("alice")
        assert guard.active_actor_ids == frozenset()

    def test_enabled_guard_excludes_same_actor(self):
        guard = ConcurrencyGuard(enabled=True)
        assert guard.try_acquire("alice")
        assert not guard.try_acquire("alice")
        assert guard.try_acquire("bob")

        guard.release("alice")
        assert guard.try_acquire("alice")
