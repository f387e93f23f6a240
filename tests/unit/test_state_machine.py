"""
Unit Tests for State Machine

Tests for the conversation state machine and session.
"""

import pytest

from homebrain.core.entities import Action, ActionProp, ActionType, Form, TokenType
from homebrain.core.state_machine import (
    ConversationSession,
    ConversationState,
    ConversationStateMachine,
    InvalidTransitionError,
    StateTransition,
    create_state_diagram_mermaid,
)


class TestConversationStateMachine:
    """Tests for ConversationStateMachine."""

    def test_initial_state(self):
        """Checks the initial state."""
        sm = ConversationStateMachine()

        assert sm.state == ConversationState.MATCHING
        assert not sm.is_terminal

    def test_single_turn_flow(self):
        """MATCHING -> RESOLVED -> DISPATCHING -> DONE."""
        sm = ConversationStateMachine()

        sm.transition(StateTransition.SLOTS_RESOLVED)
        assert sm.state == ConversationState.RESOLVED

        sm.transition(StateTransition.DISPATCH)
        assert sm.state == ConversationState.DISPATCHING

        assert sm.transition(StateTransition.COMPLETE) == ConversationState.DONE
        assert sm.is_terminal

    def test_clarification_flow(self):
        """MATCHING -> AWAITING_SLOT -> AWAITING_SLOT -> RESOLVED."""
        sm = ConversationStateMachine()

        sm.transition(StateTransition.SLOT_MISSING)
        assert sm.is_awaiting_slot

        sm.transition(StateTransition.SLOT_MISSING)
        assert sm.is_awaiting_slot

        sm.transition(StateTransition.SLOTS_RESOLVED)
        assert sm.state == ConversationState.RESOLVED

    @pytest.mark.parametrize("transition", [StateTransition.CANCEL, StateTransition.EXPIRE])
    def test_awaiting_slot_can_be_abandoned(self, transition):
        sm = ConversationStateMachine(initial_state=ConversationState.AWAITING_SLOT)

        sm.transition(transition)

        assert sm.state == ConversationState.FAILED

    def test_invalid_transition(self):
        """Dispatching before resolution is rejected."""
        sm = ConversationStateMachine()

        with pytest.raises(InvalidTransitionError):
            sm.transition(StateTransition.DISPATCH)

        assert sm.state == ConversationState.MATCHING

    def test_terminal_states_have_no_transitions(self):
        sm = ConversationStateMachine(initial_state=ConversationState.DONE)

        assert sm.get_allowed_transitions() == set()
        assert not sm.can_transition(StateTransition.FAIL)

    def test_callbacks(self):
        """Callbacks receive old and new state."""
        sm = ConversationStateMachine()
        changes = []
        sm.on_state_change(lambda old, new: changes.append((old, new)))

        sm.transition(StateTransition.FAIL)

        assert changes == [(ConversationState.MATCHING, ConversationState.FAILED)]

    def test_history(self):
        sm = ConversationStateMachine(session_id="kitchen")

        sm.transition(StateTransition.SLOT_MISSING)
        sm.transition(StateTransition.CANCEL)

        history = sm.get_transition_history()
        assert [h["transition"] for h in history] == ["slot_missing", "cancel"]
        assert history[0]["session_id"] == "kitchen"

    def test_history_is_bounded(self):
        sm = ConversationStateMachine(initial_state=ConversationState.AWAITING_SLOT)

        for _ in range(150):
            sm.transition(StateTransition.SLOT_MISSING)

        assert len(sm.get_transition_history(limit=1000)) == 100

    def test_mermaid_diagram(self):
        diagram = create_state_diagram_mermaid()

        assert diagram.startswith("stateDiagram-v2")
        assert "AWAITING_SLOT --> RESOLVED: slots_resolved" in diagram


class TestConversationSession:
    """Tests for ConversationSession."""

    def test_await_slot_stores_pending_action(self, make_tokens):
        prop = ActionProp("VPN location", TokenType.COUNTRY, "In which country turn on VPN?")
        action = Action(ActionType.VPN_START, frozenset({"start"}), (prop,))
        form = Form("VPN Form", frozenset({"vpn"}), (action,))
        session = ConversationSession(session_id="s1")

        session.await_slot(form, action, prop, make_tokens("vpn", "start"))

        assert session.is_awaiting_slot
        assert session.action is action
        assert session.awaited_prop is prop
        assert [t.value for t in session.tokens] == ["vpn", "start"]
        assert session.age_seconds() >= 0
