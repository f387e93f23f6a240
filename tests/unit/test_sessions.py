"""
Unit Tests for Session Store
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from homebrain.app.sessions import SessionStore
from homebrain.core.entities import Action, ActionProp, ActionType, Form, TokenType
from homebrain.core.state_machine import ConversationState, StateTransition


def _await_location(session, make_tokens):
    prop = ActionProp("VPN location", TokenType.COUNTRY, "In which country turn on VPN?")
    action = Action(ActionType.VPN_START, frozenset({"start"}), (prop,))
    form = Form("VPN Form", frozenset({"vpn"}), (action,))
    session.await_slot(form, action, prop, make_tokens("vpn", "start"))


class TestSessionStore:
    """Tests for SessionStore."""

    def test_new_session_is_matching(self):
        store = SessionStore()

        session = store.get_or_create("s1")

        assert session.state == ConversationState.MATCHING
        assert store.get_or_create("s1") is session

    def test_sessions_are_independent(self):
        store = SessionStore()

        assert store.get_or_create("s1") is not store.get_or_create("s2")
        assert len(store) == 2

    def test_terminal_session_released(self):
        store = SessionStore()
        session = store.get_or_create("s1")
        session.state_machine.transition(StateTransition.FAIL)

        store.release(session)

        assert store.get("s1") is None

    def test_pending_session_kept_on_release(self, make_tokens):
        store = SessionStore()
        session = store.get_or_create("s1")
        _await_location(session, make_tokens)

        store.release(session)

        assert store.get_or_create("s1") is session

    def test_expired_clarification_replaced(self, make_tokens):
        store = SessionStore(clarification_timeout_seconds=60)
        session = store.get_or_create("s1")
        _await_location(session, make_tokens)
        session.updated_at = datetime.now(timezone.utc) - timedelta(seconds=120)

        fresh = store.get_or_create("s1")

        assert fresh is not session
        assert fresh.state == ConversationState.MATCHING
        assert session.state == ConversationState.FAILED

    def test_purge_expired(self, make_tokens):
        store = SessionStore(clarification_timeout_seconds=60)
        old = store.get_or_create("old")
        _await_location(old, make_tokens)
        old.updated_at = datetime.now(timezone.utc) - timedelta(seconds=120)
        recent = store.get_or_create("recent")
        _await_location(recent, make_tokens)

        assert store.purge_expired() == 1
        assert store.get("old") is None
        assert store.get("recent") is recent

    def test_lock_per_session(self):
        store = SessionStore()

        assert store.lock_for("s1") is store.lock_for("s1")
        assert store.lock_for("s1") is not store.lock_for("s2")

    @pytest.mark.asyncio
    async def test_lock_dropped_after_terminal_session(self):
        store = SessionStore()

        async with store.acquire("s1"):
            session = store.get_or_create("s1")
            session.state_machine.transition(StateTransition.FAIL)
            store.release(session)
            assert store.lock_count == 1

        assert store.lock_count == 0

    @pytest.mark.asyncio
    async def test_lock_kept_for_pending_session(self, make_tokens):
        store = SessionStore()

        async with store.acquire("s1"):
            _await_location(store.get_or_create("s1"), make_tokens)

        assert store.lock_count == 1
        store.discard("s1")
        assert store.lock_count == 0

    @pytest.mark.asyncio
    async def test_lock_kept_while_another_task_waits(self):
        store = SessionStore()
        order = []

        async def utterance(name):
            async with store.acquire("s1"):
                order.append(name)
                await asyncio.sleep(0.01)

        await asyncio.gather(utterance("first"), utterance("second"))

        assert order == ["first", "second"]
        assert store.lock_count == 0
