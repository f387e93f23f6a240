"""
Homebrain Resource Disambiguator

Greedy incremental narrowing of candidate resource names (e.g. VPN files)
using the tokens that follow the slot value.

Example:
    candidates: ["vpn_france_paris.ovpn", "vpn_france_lyon.ovpn"]
    tokens:     ["france", "paris"]

    "france"        -> both match, set not smaller, token skipped
    "france paris"  -> only vpn_france_paris.ovpn, set narrowed

The phrase accumulates from the first token, so trailing noise words stop
narrowing without undoing what was already matched.
"""

from __future__ import annotations

import logging
import re
from typing import List, Sequence

from homebrain.core.entities import Token
from homebrain.core.errors import AmbiguousResourceError, LookupFailureError

logger = logging.getLogger(__name__)

_PUNCTUATION = re.compile(r"[^\w\s]|_")
_WHITESPACE = re.compile(r"\s+")


def normalize_resource_name(name: str) -> str:
    """Lower-cases, turns punctuation and underscores into spaces, collapses whitespace."""
    text = _PUNCTUATION.sub(" ", name.lower())
    return _WHITESPACE.sub(" ", text).strip()


def tokens_from(tokens: Sequence[Token], anchor: Token) -> List[Token]:
    """Returns the tokens positioned at or after the anchor token."""
    return [t for t in tokens if t.position >= anchor.position]


def narrow(candidates: Sequence[str], tokens: Sequence[Token]) -> List[str]:
    """
    Narrows candidates with the longest matching token phrase.

    Args:
        candidates: Resource names
        tokens: Tokens in positional order

    Returns:
        Remaining candidates; never empty unless the input was empty
    """
    if len(candidates) <= 1:
        return list(candidates)

    normalized = [(name, normalize_resource_name(name)) for name in candidates]
    phrase: List[str] = []
    current = list(candidates)

    for token in tokens:
        phrase.append(token.value.lower())
        joined = " ".join(phrase)

        # Filter the full set, not the current one
        filtered = [name for name, norm in normalized if joined in norm]

        if filtered and len(filtered) < len(current):
            current = filtered

    return current


def pick(candidates: Sequence[str], tokens: Sequence[Token], strict: bool = True) -> str:
    """
    Picks a single candidate.

    Args:
        candidates: Resource names
        tokens: Tokens used for narrowing
        strict: Raise on ambiguity instead of taking the first candidate

    Raises:
        LookupFailureError: If there are no candidates
        AmbiguousResourceError: If strict and several candidates remain
    """
    if not candidates:
        raise LookupFailureError("No candidates to choose from")

    remaining = narrow(candidates, tokens)
    if len(remaining) > 1:
        if strict:
            raise AmbiguousResourceError(remaining)
        logger.warning(f"Ambiguous resource, taking first of {remaining}")

    return remaining[0]
