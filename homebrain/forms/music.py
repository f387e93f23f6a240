"""
Music Query Form

Spotify playback commands for the spotify worker.
"""

from __future__ import annotations

from typing import Sequence

from homebrain.core.disambiguator import tokens_from
from homebrain.core.entities import ActionType, DispatchRequest, Form, Token, tokens_text
from homebrain.core.ports import ConfigPort
from homebrain.core.slots import Resolved
from homebrain.forms.base import BaseQueryForm

PLAYLIST_PROP = "playlist"

# Spoken device words to Spotify device types; the worker defaults to TV
DEVICE_TYPES = {
    "tv": "TV",
    "television": "TV",
    "computer": "Computer",
    "laptop": "Computer",
    "phone": "Smartphone",
    "smartphone": "Smartphone",
    "speaker": "Speaker",
}

DESCRIPTOR = {
    "name": "Music Form",
    "globalKeywords": ["music", "spotify"],
    "channelKey": "Queues.Spotify",
    "actions": [
        {"actionType": "Resume", "keywords": ["resume", "continue", "unpause"]},
        {"actionType": "Pause", "keywords": ["pause", "stop"]},
        {"actionType": "NextTrack", "keywords": ["next", "skip"]},
        {"actionType": "PrevTrack", "keywords": ["previous", "prev", "back"]},
        {"actionType": "RestartTrack", "keywords": ["restart", "again"]},
        {
            "actionType": "PlayPlaylist",
            "keywords": ["play", "playlist"],
            "props": [
                {
                    "name": PLAYLIST_PROP,
                    "type": "free_text",
                    "clarifyingQuestion": "Which playlist should I play?",
                },
            ],
        },
        {"actionType": "EnableShuffle", "keywords": ["shuffle", "enable"]},
        {"actionType": "DisableShuffle", "keywords": ["shuffle", "disable"]},
        {"actionType": "ChangePlayback", "keywords": ["device", "transfer"]},
    ],
}


class MusicQueryForm(BaseQueryForm):
    """Music form for the spotify worker."""

    def __init__(self, config: ConfigPort) -> None:
        handlers = {action_type: self._no_props for action_type in (
            ActionType.RESUME,
            ActionType.PAUSE,
            ActionType.NEXT_TRACK,
            ActionType.PREV_TRACK,
            ActionType.RESTART_TRACK,
            ActionType.ENABLE_SHUFFLE,
            ActionType.DISABLE_SHUFFLE,
        )}
        handlers[ActionType.PLAY_PLAYLIST] = self._play_playlist
        handlers[ActionType.CHANGE_PLAYBACK] = self._change_playback
        super().__init__(Form.from_descriptor(DESCRIPTOR), handlers, config)

    async def _play_playlist(self, resolved: Resolved, tokens: Sequence[Token]) -> DispatchRequest:
        # Playlist names span several words: "play playlist morning coffee"
        anchor = resolved.token(PLAYLIST_PROP)
        name = " ".join(tokens_text(tokens_from(tokens, anchor)))
        return DispatchRequest(name=ActionType.PLAY_PLAYLIST, props={"playlist": name})

    async def _change_playback(self, resolved: Resolved, tokens: Sequence[Token]) -> DispatchRequest:
        for word in tokens_text(tokens):
            device_type = DEVICE_TYPES.get(word.lower())
            if device_type is not None:
                return DispatchRequest(name=ActionType.CHANGE_PLAYBACK, props={"deviceType": device_type})
        return DispatchRequest(name=ActionType.CHANGE_PLAYBACK)
