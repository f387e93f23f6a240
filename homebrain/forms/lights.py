"""
Lights Query Form

Yeelight commands for the smart-devices worker.

Worker props:
    {"zones": [...], "brightness": 0-100}
An empty zone list means every light.
"""

from __future__ import annotations

from typing import Dict, List, Sequence

from homebrain.core.disambiguator import tokens_from
from homebrain.core.entities import ActionType, DispatchRequest, Form, Token, TokenType
from homebrain.core.ports import ConfigPort
from homebrain.core.slots import Resolved
from homebrain.forms.base import BaseQueryForm

BRIGHTNESS_PROP = "brightness"
ZONE_PROP = "zone"

_COLOR_WORDS = ["random", "color", "colour"]

DESCRIPTOR = {
    "name": "Lights Form",
    "globalKeywords": ["light", "lights", "lamp"],
    "channelKey": "Queues.SmartDevices",
    "actions": [
        {
            "actionType": "TurnOnYeelight",
            "keywords": ["on"],
            "props": [
                {"name": BRIGHTNESS_PROP, "type": "number"},
                {"name": ZONE_PROP, "type": "free_text"},
            ],
        },
        {
            "actionType": "TurnOffYeelight",
            "keywords": ["off"],
            "props": [{"name": ZONE_PROP, "type": "free_text"}],
        },
        {"actionType": "SetYeelightRandomColor", "keywords": _COLOR_WORDS},
        {
            "actionType": "SetRandomColorInEveryLight",
            "keywords": _COLOR_WORDS + ["every", "each"],
        },
    ],
}

# Words that never name a zone
FILLER_WORDS = frozenset({
    "turn", "switch", "the", "a", "in", "at", "please", "set", "to",
    "brightness", "percent", "and", "my",
})


class LightsQueryForm(BaseQueryForm):
    """Lights form for the smart-devices worker."""

    def __init__(self, config: ConfigPort) -> None:
        super().__init__(
            Form.from_descriptor(DESCRIPTOR),
            {
                ActionType.TURN_ON_YEELIGHT: self._turn_on,
                ActionType.TURN_OFF_YEELIGHT: self._turn_off,
                ActionType.SET_YEELIGHT_RANDOM_COLOR: self._no_props,
                ActionType.SET_RANDOM_COLOR_IN_EVERY_LIGHT: self._no_props,
            },
            config,
        )

    async def _turn_on(self, resolved: Resolved, tokens: Sequence[Token]) -> DispatchRequest:
        props: Dict[str, object] = {"zones": self._zones(resolved, tokens)}

        brightness = resolved.value(BRIGHTNESS_PROP)
        if brightness is not None:
            props["brightness"] = max(0, min(100, int(float(brightness))))

        return DispatchRequest(name=ActionType.TURN_ON_YEELIGHT, props=props)

    async def _turn_off(self, resolved: Resolved, tokens: Sequence[Token]) -> DispatchRequest:
        return DispatchRequest(
            name=ActionType.TURN_OFF_YEELIGHT,
            props={"zones": self._zones(resolved, tokens)},
        )

    def _zones(self, resolved: Resolved, tokens: Sequence[Token]) -> List[str]:
        """First non-filler free-text word from the zone slot onward."""
        anchor = resolved.token(ZONE_PROP)
        if anchor is None:
            return []

        reserved = self.form.reserved_words(resolved.action)
        for token in tokens_from(tokens, anchor):
            if token.type != TokenType.FREE_TEXT:
                continue
            if token.value in reserved or token.value in FILLER_WORDS:
                continue
            return [token.value]
        return []
