"""
Homebrain Conversation State Machine

Finite state machine for one conversation session.
Tracks the multi-turn clarification flow between utterances.

State diagram:

    MATCHING --slot_missing--> AWAITING_SLOT --slot_missing--> AWAITING_SLOT
    MATCHING --slots_resolved--> RESOLVED <--slots_resolved-- AWAITING_SLOT
    RESOLVED --dispatch--> DISPATCHING --complete--> DONE
    AWAITING_SLOT --cancel/expire--> FAILED
    any non-terminal state --fail--> FAILED
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, auto
from typing import Any, Callable, Dict, List, Optional, Set

from homebrain.core.entities import Action, ActionProp, Form, Token


class ConversationState(Enum):
    """States of a conversation session."""
    MATCHING = auto()       # Waiting for an utterance to match
    AWAITING_SLOT = auto()  # Clarifying question asked
    RESOLVED = auto()       # Action and slots known
    DISPATCHING = auto()    # Request sent to the worker
    DONE = auto()           # Worker replied
    FAILED = auto()         # Terminal failure or cancellation


class StateTransition(Enum):
    """Allowed transitions between states."""
    SLOTS_RESOLVED = "slots_resolved"  # MATCHING/AWAITING_SLOT -> RESOLVED
    SLOT_MISSING = "slot_missing"      # MATCHING/AWAITING_SLOT -> AWAITING_SLOT
    DISPATCH = "dispatch"              # RESOLVED -> DISPATCHING
    COMPLETE = "complete"              # DISPATCHING -> DONE
    FAIL = "fail"                      # Any non-terminal -> FAILED
    CANCEL = "cancel"                  # AWAITING_SLOT -> FAILED
    EXPIRE = "expire"                  # AWAITING_SLOT -> FAILED


TERMINAL_STATES = frozenset({ConversationState.DONE, ConversationState.FAILED})


# (current_state, transition) -> next_state
TRANSITION_TABLE: Dict[tuple[ConversationState, StateTransition], ConversationState] = {
    # From MATCHING
    (ConversationState.MATCHING, StateTransition.SLOTS_RESOLVED): ConversationState.RESOLVED,
    (ConversationState.MATCHING, StateTransition.SLOT_MISSING): ConversationState.AWAITING_SLOT,
    (ConversationState.MATCHING, StateTransition.FAIL): ConversationState.FAILED,

    # From AWAITING_SLOT
    (ConversationState.AWAITING_SLOT, StateTransition.SLOTS_RESOLVED): ConversationState.RESOLVED,
    (ConversationState.AWAITING_SLOT, StateTransition.SLOT_MISSING): ConversationState.AWAITING_SLOT,
    (ConversationState.AWAITING_SLOT, StateTransition.CANCEL): ConversationState.FAILED,
    (ConversationState.AWAITING_SLOT, StateTransition.EXPIRE): ConversationState.FAILED,
    (ConversationState.AWAITING_SLOT, StateTransition.FAIL): ConversationState.FAILED,

    # From RESOLVED
    (ConversationState.RESOLVED, StateTransition.DISPATCH): ConversationState.DISPATCHING,
    (ConversationState.RESOLVED, StateTransition.FAIL): ConversationState.FAILED,

    # From DISPATCHING
    (ConversationState.DISPATCHING, StateTransition.COMPLETE): ConversationState.DONE,
    (ConversationState.DISPATCHING, StateTransition.FAIL): ConversationState.FAILED,
}


class InvalidTransitionError(Exception):
    """Exception for invalid transitions."""
    pass


class ConversationStateMachine:
    """
    Conversation state machine.

    Provides:
    - Deterministic behavior (same input -> same output)
    - Safe transitions (only allowed transitions)
    - Transition history for debugging

    Example usage:
        sm = ConversationStateMachine()
        sm.transition(StateTransition.SLOT_MISSING)
        # Now in AWAITING_SLOT state

        sm.transition(StateTransition.SLOTS_RESOLVED)
        # Now in RESOLVED state
    """

    def __init__(
        self,
        initial_state: ConversationState = ConversationState.MATCHING,
        session_id: str = "",
    ) -> None:
        self._state = initial_state
        self._session_id = session_id
        self._callbacks: List[Callable[[ConversationState, ConversationState], None]] = []
        self._transition_history: List[Dict[str, Any]] = []
        self._max_history_size = 100

    @property
    def state(self) -> ConversationState:
        """Current state."""
        return self._state

    @property
    def is_awaiting_slot(self) -> bool:
        return self._state == ConversationState.AWAITING_SLOT

    @property
    def is_terminal(self) -> bool:
        return self._state in TERMINAL_STATES

    def get_allowed_transitions(self) -> Set[StateTransition]:
        """Returns a set of allowed transitions from the current state."""
        return {t for (state, t) in TRANSITION_TABLE if state == self._state}

    def can_transition(self, transition: StateTransition) -> bool:
        return (self._state, transition) in TRANSITION_TABLE

    def transition(self, transition: StateTransition) -> ConversationState:
        """
        Performs a transition to a new state.

        Returns:
            The new state

        Raises:
            InvalidTransitionError: If the transition is not allowed
        """
        key = (self._state, transition)

        if key not in TRANSITION_TABLE:
            allowed = self.get_allowed_transitions()
            raise InvalidTransitionError(
                f"Transition {transition.value} not allowed from state {self._state.name}. "
                f"Allowed: {sorted(t.value for t in allowed)}"
            )

        old_state = self._state
        new_state = TRANSITION_TABLE[key]

        self._log_transition(old_state, new_state, transition)
        self._state = new_state

        for callback in self._callbacks:
            callback(old_state, new_state)

        return new_state

    def on_state_change(self, callback: Callable[[ConversationState, ConversationState], None]) -> None:
        """Registers a callback for state change notifications."""
        self._callbacks.append(callback)

    def get_transition_history(self, limit: int = 50) -> List[Dict[str, Any]]:
        return self._transition_history[-limit:]

    def _log_transition(
        self,
        old_state: ConversationState,
        new_state: ConversationState,
        transition: StateTransition,
    ) -> None:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "from_state": old_state.name,
            "to_state": new_state.name,
            "transition": transition.value,
            "session_id": self._session_id,
        }
        self._transition_history.append(entry)

        if len(self._transition_history) > self._max_history_size:
            self._transition_history = self._transition_history[-self._max_history_size:]


@dataclass
class ConversationSession:
    """
    Per-conversation dialogue state.

    Stores what is needed to resume resolution after a clarifying question.
    """
    session_id: str
    state_machine: ConversationStateMachine = field(default_factory=ConversationStateMachine)
    form: Optional[Form] = None
    action: Optional[Action] = None
    awaited_prop: Optional[ActionProp] = None
    tokens: List[Token] = field(default_factory=list)
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def state(self) -> ConversationState:
        return self.state_machine.state

    @property
    def is_awaiting_slot(self) -> bool:
        return self.state_machine.is_awaiting_slot

    def await_slot(self, form: Form, action: Action, prop: ActionProp, tokens: List[Token]) -> None:
        """Pauses the session on a clarifying question."""
        self.state_machine.transition(StateTransition.SLOT_MISSING)
        self.form = form
        self.action = action
        self.awaited_prop = prop
        self.tokens = list(tokens)
        self.touch()

    def touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc)

    def age_seconds(self, now: Optional[datetime] = None) -> float:
        now = now or datetime.now(timezone.utc)
        return (now - self.updated_at).total_seconds()


def create_state_diagram_mermaid() -> str:
    """Generates a Mermaid state diagram."""
    lines = ["stateDiagram-v2"]
    for (from_state, transition), to_state in TRANSITION_TABLE.items():
        lines.append(f"    {from_state.name} --> {to_state.name}: {transition.value}")
    return "\n".join(lines)
