"""
Homebrain Core Domain Entities

This module contains all domain entities (Data Classes).
Registry entities (Form, Action, ActionProp) are built once at startup and
never mutated. Per-utterance state (Token, SlotBinding) is created for each
matching attempt and discarded after dispatch.

Hierarchy:
    Form -> Action -> ActionProp
    Token -> SlotBinding -> DispatchRequest -> DispatchResponse
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from homebrain.core.errors import RegistryError


class TokenType(Enum):
    """Kinds of tokens produced by the tokenizer."""
    COUNTRY = "country"
    NUMBER = "number"
    FREE_TEXT = "free_text"


class ActionType(Enum):
    """Every action the assistant can dispatch. Values are wire names."""
    # Ansible worker
    VPN_START = "VpnStart"
    VPN_STOP = "VpnStop"
    VPN_STATUS = "VpnStatus"

    # Smart devices worker
    TURN_ON_YEELIGHT = "TurnOnYeelight"
    TURN_OFF_YEELIGHT = "TurnOffYeelight"
    SET_YEELIGHT_RANDOM_COLOR = "SetYeelightRandomColor"
    SET_RANDOM_COLOR_IN_EVERY_LIGHT = "SetRandomColorInEveryLight"

    # Spotify worker
    RESUME = "Resume"
    PAUSE = "Pause"
    NEXT_TRACK = "NextTrack"
    PREV_TRACK = "PrevTrack"
    RESTART_TRACK = "RestartTrack"
    PLAY_PLAYLIST = "PlayPlaylist"
    ENABLE_SHUFFLE = "EnableShuffle"
    DISABLE_SHUFFLE = "DisableShuffle"
    CHANGE_PLAYBACK = "ChangePlayback"


@dataclass(frozen=True)
class Token:
    """
    Typed atomic unit of an utterance.

    Attributes:
        type: Token kind
        value: Normalized token text
        position: Index of the token in the utterance
    """
    type: TokenType
    value: str
    position: int


@dataclass(frozen=True)
class ActionProp:
    """
    Slot declaration of an action.

    Attributes:
        name: Slot name
        type: Token type that can fill the slot
        clarifying_question: Question asked when the slot is missing.
            A prop with a question is required.
    """
    name: str
    type: TokenType
    clarifying_question: Optional[str] = None

    @property
    def required(self) -> bool:
        return self.clarifying_question is not None


@dataclass(frozen=True)
class SlotBinding:
    """Token bound to a slot for one matching attempt."""
    prop: ActionProp
    token: Token

    @property
    def value(self) -> str:
        return self.token.value


@dataclass(frozen=True)
class Action:
    """
    Registered action.

    Attributes:
        action_type: Kind of the action
        keywords: Trigger words (lower-cased)
        props: Slot declarations in resolution order
    """
    action_type: ActionType
    keywords: FrozenSet[str] = field(default_factory=frozenset)
    props: Tuple[ActionProp, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "keywords", frozenset(k.lower() for k in self.keywords))
        object.__setattr__(self, "props", tuple(self.props))

    def get_prop_by_type(self, token_type: TokenType) -> Optional[ActionProp]:
        for prop in self.props:
            if prop.type == token_type:
                return prop
        return None

    @property
    def required_props(self) -> List[ActionProp]:
        return [p for p in self.props if p.required]


@dataclass(frozen=True)
class Form:
    """
    Group of actions sharing a vocabulary domain.

    Attributes:
        name: Human-readable form name
        global_keywords: At least one must appear before any action can match
        actions: Actions in registration order
        channel_key: Config key holding the worker channel name
    """
    name: str
    global_keywords: FrozenSet[str] = field(default_factory=frozenset)
    actions: Tuple[Action, ...] = ()
    channel_key: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "global_keywords", frozenset(k.lower() for k in self.global_keywords)
        )
        object.__setattr__(self, "actions", tuple(self.actions))

        seen = set()
        for action in self.actions:
            if action.action_type in seen:
                raise RegistryError(
                    f"Duplicate action {action.action_type.value} in form '{self.name}'"
                )
            seen.add(action.action_type)

    @property
    def action_types(self) -> List[ActionType]:
        return [a.action_type for a in self.actions]

    def get_action(self, action_type: ActionType) -> Optional[Action]:
        for action in self.actions:
            if action.action_type == action_type:
                return action
        return None

    def reserved_words(self, action: Action) -> FrozenSet[str]:
        """Words that trigger matching and therefore never fill a slot."""
        return self.global_keywords | action.keywords

    @classmethod
    def from_descriptor(cls, descriptor: Mapping[str, Any], channel_key: str = "") -> "Form":
        """
        Builds a form from a configuration descriptor.

        Descriptor shape:
            {"name": "VPN Form", "globalKeywords": ["vpn"],
             "actions": [{"actionType": "VpnStart", "keywords": ["start"],
                          "props": [{"name": "...", "type": "country",
                                     "clarifyingQuestion": "..."}]}]}

        Raises:
            RegistryError: On unknown action or token types
        """
        actions = []
        for action_desc in descriptor.get("actions", []):
            try:
                action_type = ActionType(action_desc["actionType"])
            except (KeyError, ValueError):
                raise RegistryError(f"Unknown action type: {action_desc.get('actionType')}")

            props = []
            for prop_desc in action_desc.get("props", []):
                try:
                    token_type = TokenType(str(prop_desc["type"]).lower())
                except (KeyError, ValueError):
                    raise RegistryError(f"Unknown token type: {prop_desc.get('type')}")
                props.append(ActionProp(
                    name=prop_desc["name"],
                    type=token_type,
                    clarifying_question=prop_desc.get("clarifyingQuestion"),
                ))

            actions.append(Action(
                action_type=action_type,
                keywords=frozenset(action_desc.get("keywords", [])),
                props=tuple(props),
            ))

        return cls(
            name=descriptor["name"],
            global_keywords=frozenset(descriptor.get("globalKeywords", [])),
            actions=tuple(actions),
            channel_key=descriptor.get("channelKey", channel_key),
        )


@dataclass(frozen=True)
class DispatchRequest:
    """Wire payload sent to a worker: {"name": ..., "props": {...}}."""
    name: ActionType
    props: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name.value, "props": dict(self.props)}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, raw: str) -> "DispatchRequest":
        """
        Parses a wire payload.

        Raises:
            ValueError: If the payload is not a valid request
        """
        data = json.loads(raw)
        if not isinstance(data, dict) or "name" not in data:
            raise ValueError("Dispatch payload must be an object with a 'name'")
        props = data.get("props") or {}
        if not isinstance(props, dict):
            raise ValueError("Dispatch 'props' must be an object")
        return cls(name=ActionType(data["name"]), props=props)


@dataclass(frozen=True)
class DispatchResponse:
    """Worker reply, opaque unless it reports an error."""
    payload: Any = None
    # Id the request was sent under
    correlation_id: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return isinstance(self.payload, dict) and self.payload.get("status") == "error"

    @property
    def error_message(self) -> Optional[str]:
        if not self.is_error:
            return None
        return str(self.payload.get("message") or "Worker reported an error")


def tokens_text(tokens: Iterable[Token]) -> List[str]:
    """Returns the text of tokens in order."""
    return [t.value for t in tokens]
