"""
Homebrain Error Taxonomy

All failures the command pipeline can surface to the user.

Hierarchy:
    HomebrainError
        NoMatchError
        AmbiguousResourceError
        LookupFailureError
        RegistryError
        DispatchError
            RecoverableDispatchError
                BrokerConnectionError
            TerminalDispatchError
                DispatchTimeoutError

A missing required slot is not an error: it is reported as a
NeedsClarification result by the slot resolver.
"""

from __future__ import annotations

from typing import List, Optional


class HomebrainError(Exception):
    """Base error with a message that can be shown to the user."""

    default_user_message = "Something went wrong"

    def __init__(self, message: str = "", user_message: Optional[str] = None) -> None:
        super().__init__(message or self.default_user_message)
        self.user_message = user_message or self.default_user_message


class NoMatchError(HomebrainError):
    """No registered action fits the utterance."""

    default_user_message = "Command not understood"


class AmbiguousResourceError(HomebrainError):
    """Disambiguation left more than one candidate resource."""

    default_user_message = "Several resources match, please be more specific"

    def __init__(self, candidates: List[str], message: str = "") -> None:
        self.candidates = list(candidates)
        super().__init__(
            message or f"Ambiguous resource, candidates: {', '.join(self.candidates)}",
            user_message=f"Which one do you mean: {', '.join(self.candidates)}?",
        )


class LookupFailureError(HomebrainError):
    """Enumeration of backing resources failed or found nothing."""

    default_user_message = "Could not find a matching resource"


class RegistryError(HomebrainError):
    """Invalid form or action registration."""

    default_user_message = "Assistant is misconfigured"


class DispatchError(HomebrainError):
    """Base for failures of the broker round trip."""

    default_user_message = "Failed to execute the command"


class RecoverableDispatchError(DispatchError):
    """Failure that a recovery callback can fix (e.g. a stale connection)."""


class BrokerConnectionError(RecoverableDispatchError):
    """Broker connection was lost or could not be used."""


class TerminalDispatchError(DispatchError):
    """Failure that must not be retried."""


class DispatchTimeoutError(TerminalDispatchError):
    """No correlated response arrived within the timeout."""

    default_user_message = "The device did not respond in time"
