"""
Homebrain Query Form Base

A query form pairs a Form declaration with one handler per action.
Handlers turn a resolved action into the DispatchRequest sent to the worker.

The handler table is closed: every declared action has exactly one handler,
checked when the form is built.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Dict, Sequence

from homebrain.core.entities import ActionType, DispatchRequest, Form, Token
from homebrain.core.errors import RegistryError
from homebrain.core.ports import ConfigPort
from homebrain.core.slots import Resolved

logger = logging.getLogger(__name__)


# Builds the worker request for one resolved action
ActionHandler = Callable[[Resolved, Sequence[Token]], Awaitable[DispatchRequest]]


class BaseQueryForm:
    """
    Form with its handlers and worker channel.

    Subclasses build their Form and pass a handler for every action type.
    """

    def __init__(
        self,
        form: Form,
        handlers: Dict[ActionType, ActionHandler],
        config: ConfigPort,
    ) -> None:
        declared = set(form.action_types)
        missing = declared - set(handlers)
        extra = set(handlers) - declared

        if missing:
            raise RegistryError(
                f"Form '{form.name}' has no handler for: "
                f"{', '.join(sorted(a.value for a in missing))}"
            )
        if extra:
            raise RegistryError(
                f"Form '{form.name}' has handlers for undeclared actions: "
                f"{', '.join(sorted(a.value for a in extra))}"
            )

        self.form = form
        self.config = config
        self._handlers = dict(handlers)

    @property
    def name(self) -> str:
        return self.form.name

    @property
    def channel_name(self) -> str:
        """Worker channel, read from configuration."""
        return self.config.get(self.form.channel_key)

    async def handle(self, resolved: Resolved, tokens: Sequence[Token]) -> DispatchRequest:
        """
        Builds the request for a resolved action.

        Args:
            resolved: Action with bound slots
            tokens: All utterance tokens, for handlers that look past the slot
        """
        action_type = resolved.action.action_type
        logger.debug(f"Form '{self.name}' handling {action_type.value} with {resolved.values()}")
        return await self._handlers[action_type](resolved, tokens)

    async def _no_props(self, resolved: Resolved, tokens: Sequence[Token]) -> DispatchRequest:
        """Handler for actions that carry no props."""
        return DispatchRequest(name=resolved.action.action_type)
