"""
Homebrain Command Matcher

Keyword-based selection of the action that best fits an utterance.

Rules:
- A form is considered only if one of its global keywords is present
- Each action scores one point per token equal to one of its keywords
- Highest non-zero score wins, ties go to the first registered action
- Pure functions: the same (form, tokens) always give the same answer
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from homebrain.core.entities import Action, Form, Token
from homebrain.core.registry import ActionRegistry


@dataclass(frozen=True)
class MatchResult:
    """Winning form and action with its keyword score."""
    form: Form
    action: Action
    score: int


def has_global_keyword(form: Form, tokens: Sequence[Token]) -> bool:
    return any(token.value in form.global_keywords for token in tokens)


def score(action: Action, tokens: Sequence[Token]) -> int:
    """Counts tokens equal to one of the action keywords."""
    return sum(1 for token in tokens if token.value in action.keywords)


def match(form: Form, tokens: Sequence[Token]) -> Optional[Action]:
    """
    Selects the best action of a form.

    Args:
        form: Form to match against
        tokens: Normalized utterance tokens

    Returns:
        Winning action, or None when nothing matches
    """
    result = _match_form(form, tokens)
    return result.action if result else None


def match_registry(registry: ActionRegistry, tokens: Sequence[Token]) -> Optional[MatchResult]:
    """
    Selects the best action across all forms.

    Highest score wins; ties go to the earlier registered form.
    """
    best: Optional[MatchResult] = None
    for form in registry:
        result = _match_form(form, tokens)
        if result is not None and (best is None or result.score > best.score):
            best = result
    return best


def _match_form(form: Form, tokens: Sequence[Token]) -> Optional[MatchResult]:
    if not has_global_keyword(form, tokens):
        return None

    best: Optional[MatchResult] = None
    for action in form.actions:
        points = score(action, tokens)
        # Strict comparison keeps the earliest action on ties
        if points > 0 and (best is None or points > best.score):
            best = MatchResult(form=form, action=action, score=points)
    return best
