"""
Homebrain Slot Resolver

Binds utterance tokens to the slots declared by an action.

Resolution is deterministic:
- Props are resolved in declaration order
- Each prop takes the first unconsumed token of its type
- A bound token is never reassigned to another prop
- A missing required prop stops resolution with its clarifying question
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import AbstractSet, Dict, Optional, Sequence, Set, Union

from homebrain.core.entities import Action, ActionProp, SlotBinding, Token


@dataclass(frozen=True)
class Resolved:
    """All required slots are bound."""
    action: Action
    bindings: Dict[str, SlotBinding] = field(default_factory=dict)

    def token(self, name: str) -> Optional[Token]:
        binding = self.bindings.get(name)
        return binding.token if binding else None

    def value(self, name: str, default: Optional[str] = None) -> Optional[str]:
        binding = self.bindings.get(name)
        return binding.value if binding else default

    def values(self) -> Dict[str, str]:
        return {name: b.value for name, b in self.bindings.items()}


@dataclass(frozen=True)
class NeedsClarification:
    """A required slot is missing; the pipeline pauses on its question."""
    action: Action
    prop: ActionProp
    bindings: Dict[str, SlotBinding] = field(default_factory=dict)

    @property
    def question(self) -> str:
        return self.prop.clarifying_question or f"Please specify {self.prop.name}"


ResolutionResult = Union[Resolved, NeedsClarification]


def resolve(
    action: Action,
    tokens: Sequence[Token],
    reserved: AbstractSet[str] = frozenset(),
) -> ResolutionResult:
    """
    Resolves slots of an action.

    Args:
        action: Matched action
        tokens: Utterance tokens in positional order
        reserved: Words that were used for matching and never fill a slot

    Returns:
        Resolved or NeedsClarification
    """
    consumed: Set[int] = {t.position for t in tokens if t.value in reserved}
    bindings: Dict[str, SlotBinding] = {}

    for prop in action.props:
        token = _first_unconsumed(tokens, prop, consumed)
        if token is None:
            if prop.required:
                return NeedsClarification(action=action, prop=prop, bindings=bindings)
            continue

        consumed.add(token.position)
        bindings[prop.name] = SlotBinding(prop=prop, token=token)

    return Resolved(action=action, bindings=bindings)


def _first_unconsumed(
    tokens: Sequence[Token],
    prop: ActionProp,
    consumed: Set[int],
) -> Optional[Token]:
    for token in tokens:
        if token.type == prop.type and token.position not in consumed:
            return token
    return None
