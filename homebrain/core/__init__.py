"""
Homebrain - Core Domain Package

This package contains pure domain logic without infrastructure dependencies.
All dependencies are inward-facing (towards this package).
"""

from homebrain.core.entities import (
    Action,
    ActionProp,
    ActionType,
    DispatchRequest,
    DispatchResponse,
    Form,
    SlotBinding,
    Token,
    TokenType,
)
from homebrain.core.registry import ActionRegistry
from homebrain.core.state_machine import ConversationState, ConversationStateMachine

__all__ = [
    # Entities
    "TokenType",
    "Token",
    "ActionProp",
    "SlotBinding",
    "ActionType",
    "Action",
    "Form",
    "DispatchRequest",
    "DispatchResponse",
    # Registry
    "ActionRegistry",
    # State Machine
    "ConversationState",
    "ConversationStateMachine",
]
