"""
Unit Tests for Slot Resolver
"""

from homebrain.core.entities import Action, ActionProp, ActionType, TokenType
from homebrain.core.slots import NeedsClarification, Resolved, resolve


LOCATION = ActionProp("VPN location", TokenType.COUNTRY, "In which country turn on VPN?")
BRIGHTNESS = ActionProp("brightness", TokenType.NUMBER)
ZONE = ActionProp("zone", TokenType.FREE_TEXT)


class TestResolve:
    """Tests for resolve()."""

    def test_required_slot_bound(self, make_tokens):
        action = Action(ActionType.VPN_START, frozenset({"start"}), (LOCATION,))

        result = resolve(action, make_tokens("vpn", "start", "country:france"))

        assert isinstance(result, Resolved)
        assert result.value("VPN location") == "france"
        assert result.token("VPN location").position == 2

    def test_missing_required_slot_asks_question(self, make_tokens):
        """A required slot without a token stops with its clarifying question."""
        action = Action(ActionType.VPN_START, frozenset({"start"}), (LOCATION,))

        result = resolve(action, make_tokens("vpn", "start"))

        assert isinstance(result, NeedsClarification)
        assert result.prop is LOCATION
        assert result.question == "In which country turn on VPN?"

    def test_missing_optional_slot_is_skipped(self, make_tokens):
        action = Action(ActionType.TURN_ON_YEELIGHT, frozenset({"on"}), (BRIGHTNESS,))

        result = resolve(action, make_tokens("lights", "on"))

        assert isinstance(result, Resolved)
        assert result.values() == {}
        assert result.value("brightness", "100") == "100"

    def test_first_token_of_type_wins(self, make_tokens):
        action = Action(ActionType.VPN_START, frozenset({"start"}), (LOCATION,))

        result = resolve(action, make_tokens("country:germany", "country:france"))

        assert result.value("VPN location") == "germany"

    def test_token_bound_once(self, make_tokens):
        """Two props of the same type take different tokens."""
        first = ActionProp("from", TokenType.COUNTRY)
        second = ActionProp("to", TokenType.COUNTRY)
        action = Action(ActionType.VPN_START, props=(first, second))

        result = resolve(action, make_tokens("country:germany", "country:france"))

        assert result.values() == {"from": "germany", "to": "france"}

    def test_slots_filter_by_their_own_type(self, make_tokens):
        """A free-text slot listed second still takes the word before the country."""
        note = ActionProp("note", TokenType.FREE_TEXT)
        action = Action(ActionType.VPN_START, props=(LOCATION, note))

        result = resolve(action, make_tokens("tomorrow", "country:france"))

        assert result.values() == {"VPN location": "france", "note": "tomorrow"}
        assert result.token("note").position == 0

    def test_reserved_words_never_fill_slots(self, make_tokens):
        action = Action(ActionType.TURN_ON_YEELIGHT, frozenset({"on"}), (ZONE,))

        result = resolve(
            action,
            make_tokens("lights", "on", "kitchen"),
            reserved=frozenset({"lights", "on"}),
        )

        assert result.value("zone") == "kitchen"

    def test_resolution_is_repeatable(self, make_tokens):
        """Resolving twice does not leak values between attempts."""
        action = Action(ActionType.VPN_START, frozenset({"start"}), (LOCATION,))

        first = resolve(action, make_tokens("vpn", "start", "country:france"))
        second = resolve(action, make_tokens("vpn", "start"))

        assert isinstance(first, Resolved)
        assert isinstance(second, NeedsClarification)
        assert action.props[0].clarifying_question == "In which country turn on VPN?"

    def test_partial_bindings_kept_on_clarification(self, make_tokens):
        playlist = ActionProp("playlist", TokenType.FREE_TEXT, "Which playlist should I play?")
        action = Action(ActionType.PLAY_PLAYLIST, props=(BRIGHTNESS, playlist))

        result = resolve(action, make_tokens("number:5"))

        assert isinstance(result, NeedsClarification)
        assert result.bindings["brightness"].value == "5"
