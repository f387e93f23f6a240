"""
Homebrain Command Pipeline

Main orchestrator for processing commands.
Coordinates all stages: Tokenize -> Match -> Resolve slots -> Build request -> Dispatch

Principles:
- Multi-turn clarification is kept as explicit session state
- Each stage is isolated and testable
- One user-facing message per command, whatever failed
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from homebrain.app.dispatcher import Dispatcher, DispatcherConfig
from homebrain.app.sessions import SessionStore
from homebrain.core.entities import (
    ActionType,
    DispatchRequest,
    DispatchResponse,
    Token,
    tokens_text,
)
from homebrain.core.errors import (
    AmbiguousResourceError,
    HomebrainError,
    NoMatchError,
    RegistryError,
)
from homebrain.core.matcher import match_registry
from homebrain.core.ports import ConfigPort, TokenizerPort
from homebrain.core.registry import ActionRegistry
from homebrain.core.slots import NeedsClarification, resolve
from homebrain.core.state_machine import ConversationSession, StateTransition
from homebrain.forms.base import BaseQueryForm

logger = logging.getLogger(__name__)

DEFAULT_SESSION_ID = "default"

# Utterances that abandon a pending clarification
CANCEL_PHRASES = frozenset({"cancel", "nevermind", "never mind", "abort"})


class PipelineStatus(Enum):
    """Outcome of one processed utterance."""
    SUCCESS = "success"
    CLARIFICATION_NEEDED = "clarification_needed"
    NOT_UNDERSTOOD = "not_understood"
    AMBIGUOUS = "ambiguous"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class PipelineResult:
    """Result of command processing."""

    status: PipelineStatus
    message: str = ""
    question: Optional[str] = None
    action_type: Optional[ActionType] = None
    request: Optional[DispatchRequest] = None
    response: Optional[DispatchResponse] = None
    error: Optional[str] = None
    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.status == PipelineStatus.SUCCESS

    @property
    def needs_clarification(self) -> bool:
        return self.status == PipelineStatus.CLARIFICATION_NEEDED


# Types for callbacks
PipelineCallback = Callable[["CommandPipeline", str, Any], None]


class CommandPipeline:
    """
    Main pipeline for processing commands.

    Processing sequence:
    1. Tokenize (text input only)
    2. Resume a pending clarification, or match the registry
    3. Resolve slots; ask a clarifying question if one is missing
    4. Let the form build the worker request (may disambiguate resources)
    5. Dispatch with one recovery-then-retry cycle

    Example:
    ```python
    pipeline = create_pipeline()
    pipeline.on("clarification_needed", lambda p, e, d: print(d["question"]))

    result = await pipeline.process_text("vpn start")
    # CLARIFICATION_NEEDED: "In which country turn on VPN?"
    result = await pipeline.process_text("france")
    ```
    """

    def __init__(
        self,
        registry: ActionRegistry,
        forms: Iterable[BaseQueryForm],
        dispatcher: Dispatcher,
        sessions: Optional[SessionStore] = None,
        tokenizer: Optional[TokenizerPort] = None,
        config: Optional[ConfigPort] = None,
    ) -> None:
        self.registry = registry
        self.dispatcher = dispatcher
        self.sessions = sessions if sessions is not None else SessionStore()
        self.config = config
        self._tokenizer = tokenizer

        self._forms: Dict[str, BaseQueryForm] = {f.name: f for f in forms}
        for form in registry:
            if form.name not in self._forms:
                raise RegistryError(f"No query form for registered form '{form.name}'")

        # Callbacks for various events
        self._callbacks: Dict[str, List[PipelineCallback]] = {}

    # ============================================
    # Public API
    # ============================================

    async def process_text(self, text: str, session_id: str = DEFAULT_SESSION_ID) -> PipelineResult:
        """
        Tokenizes and processes a text command.

        Args:
            text: Text of the command
            session_id: Conversation the utterance belongs to
        """
        if self._tokenizer is None:
            from homebrain.adapters.text import DeterministicTokenizer
            self._tokenizer = DeterministicTokenizer()

        return await self.process_tokens(self._tokenizer.tokenize(text), session_id)

    async def process_tokens(
        self,
        tokens: Sequence[Token],
        session_id: str = DEFAULT_SESSION_ID,
    ) -> PipelineResult:
        """
        Processes a tokenized utterance.

        Utterances of one session are processed one at a time;
        different sessions run concurrently.

        Returns:
            Processing result
        """
        async with self.sessions.acquire(session_id):
            start_time = datetime.now(timezone.utc)
            tokens = list(tokens)
            session = self._session_for(session_id, tokens)
            try:
                result = await self._process(session, tokens)
            finally:
                self.sessions.release(session)
            result.duration_ms = self._calc_duration(start_time)
            return result

    def cancel(self, session_id: str = DEFAULT_SESSION_ID) -> bool:
        """Abandons a pending clarification. Returns True if one was pending."""
        session = self.sessions.get(session_id)
        if session is None or not session.is_awaiting_slot:
            return False
        session.state_machine.transition(StateTransition.CANCEL)
        self.sessions.discard(session_id)
        return True

    async def close(self) -> None:
        await self.dispatcher.broker.close()

    # ============================================
    # Event System
    # ============================================

    def on(self, event: str, callback: PipelineCallback) -> None:
        """
        Registers a callback for an event.

        Events:
        - command_received: Utterance received
        - action_matched: Action selected
        - clarification_needed: Slot missing, question asked
        - dispatch_complete: Worker replied
        - error: Command failed
        """
        if event not in self._callbacks:
            self._callbacks[event] = []
        self._callbacks[event].append(callback)

    def off(self, event: str, callback: PipelineCallback) -> bool:
        """Removes a callback."""
        if event in self._callbacks:
            try:
                self._callbacks[event].remove(callback)
                return True
            except ValueError:
                pass
        return False

    def _emit(self, event: str, data: Dict[str, Any]) -> None:
        """Calls all callbacks for an event."""
        for callback in self._callbacks.get(event, []):
            try:
                callback(self, event, data)
            except Exception as e:
                logger.error(f"Callback error for event '{event}': {e}")

    # ============================================
    # Internal Methods
    # ============================================

    def _session_for(self, session_id: str, tokens: Sequence[Token]) -> ConversationSession:
        """
        Returns the session the utterance belongs to.

        A follow-up that matches an action on its own is a new command:
        the pending clarification is cancelled and a fresh session started.
        """
        session = self.sessions.get_or_create(session_id)
        if not session.is_awaiting_slot or self._is_cancel(tokens):
            return session
        if match_registry(self.registry, tokens) is None:
            return session

        logger.info(
            f"New command replaces pending {session.action.action_type.value} in session {session_id}"
        )
        session.state_machine.transition(StateTransition.CANCEL)
        return self.sessions.get_or_create(session_id)

    async def _process(self, session: ConversationSession, tokens: List[Token]) -> PipelineResult:
        self._emit("command_received", {"session_id": session.session_id, "tokens": tokens})
        action_type: Optional[ActionType] = None

        try:
            if session.is_awaiting_slot:
                if self._is_cancel(tokens):
                    logger.info(f"Session {session.session_id} cancelled by user")
                    session.state_machine.transition(StateTransition.CANCEL)
                    return PipelineResult(
                        status=PipelineStatus.CANCELLED,
                        message="Cancelled",
                        action_type=session.action.action_type,
                    )

                form, action = session.form, session.action
                tokens = session.tokens + self._shift(tokens, after=session.tokens)
                logger.info(f"Resuming {action.action_type.value} with {tokens_text(tokens)}")
            else:
                matched = match_registry(self.registry, tokens)
                if matched is None:
                    raise NoMatchError(f"No action matches {tokens_text(tokens)}")
                form, action = matched.form, matched.action
                logger.info(f"Matched {action.action_type.value} (score {matched.score})")
                self._emit("action_matched", {"form": form, "action": action})

            action_type = action.action_type

            resolution = resolve(action, tokens, reserved=form.reserved_words(action))
            if isinstance(resolution, NeedsClarification):
                session.await_slot(form, action, resolution.prop, tokens)
                self._emit("clarification_needed", {
                    "action": action,
                    "prop": resolution.prop,
                    "question": resolution.question,
                })
                logger.info(f"Missing '{resolution.prop.name}' for {action_type.value}")
                return PipelineResult(
                    status=PipelineStatus.CLARIFICATION_NEEDED,
                    message=resolution.question,
                    question=resolution.question,
                    action_type=action_type,
                )

            session.state_machine.transition(StateTransition.SLOTS_RESOLVED)

            query_form = self._forms[form.name]
            request = await query_form.handle(resolution, tokens)

            session.state_machine.transition(StateTransition.DISPATCH)
            response = await self.dispatcher.dispatch_with_retry(request, query_form.channel_name)
            session.state_machine.transition(StateTransition.COMPLETE)
            self._emit("dispatch_complete", {"request": request, "response": response})

            if response.is_error:
                logger.warning(f"Worker reported an error for {action_type.value}: {response.error_message}")
                return PipelineResult(
                    status=PipelineStatus.FAILED,
                    message=response.error_message,
                    action_type=action_type,
                    request=request,
                    response=response,
                    error=response.error_message,
                )

            return PipelineResult(
                status=PipelineStatus.SUCCESS,
                message="Done",
                action_type=action_type,
                request=request,
                response=response,
            )

        except NoMatchError as e:
            return self._failure(session, PipelineStatus.NOT_UNDERSTOOD, e, action_type)
        except AmbiguousResourceError as e:
            return self._failure(session, PipelineStatus.AMBIGUOUS, e, action_type)
        except HomebrainError as e:
            return self._failure(session, PipelineStatus.FAILED, e, action_type)
        except Exception as e:
            logger.exception(f"Pipeline error: {e}")
            return self._failure(session, PipelineStatus.FAILED, HomebrainError(str(e)), action_type)

    def _failure(
        self,
        session: ConversationSession,
        status: PipelineStatus,
        error: HomebrainError,
        action_type: Optional[ActionType],
    ) -> PipelineResult:
        logger.info(f"Command failed ({status.value}): {error}")
        if session.state_machine.can_transition(StateTransition.FAIL):
            session.state_machine.transition(StateTransition.FAIL)

        self._emit("error", {"status": status, "error": str(error)})
        return PipelineResult(
            status=status,
            message=error.user_message,
            action_type=action_type,
            error=str(error),
        )

    def _is_cancel(self, tokens: Sequence[Token]) -> bool:
        words = tokens_text(tokens)
        return " ".join(words) in CANCEL_PHRASES or any(w in CANCEL_PHRASES for w in words)

    def _shift(self, tokens: Sequence[Token], after: Sequence[Token]) -> List[Token]:
        """Re-positions follow-up tokens after the earlier ones."""
        offset = max((t.position for t in after), default=-1) + 1
        return [Token(t.type, t.value, t.position + offset) for t in tokens]

    def _calc_duration(self, start_time: datetime) -> float:
        delta = datetime.now(timezone.utc) - start_time
        return delta.total_seconds() * 1000


# ============================================
# Convenience Functions
# ============================================

def create_pipeline(config: Optional[ConfigPort] = None) -> CommandPipeline:
    """
    Creates a pipeline wired to Redis, the local VPN folder and the
    deterministic tokenizer.

    Args:
        config: Configuration store (environment by default)

    Returns:
        Configured CommandPipeline
    """
    from homebrain.adapters.broker import RedisBrokerAdapter
    from homebrain.adapters.files import LocalFileEnumerator
    from homebrain.adapters.text import DeterministicTokenizer
    from homebrain.core.config import ConfigService
    from homebrain.forms import create_forms

    config = config or ConfigService()
    timeout = config.get("Broker.ResponseTimeout", 30.0)

    broker = RedisBrokerAdapter(
        config.get("Broker.Url"),
        default_timeout=timeout,
        reply_ttl=config.get("Broker.ReplyTtl", 60),
    )
    forms = create_forms(config, LocalFileEnumerator())

    return CommandPipeline(
        registry=ActionRegistry(f.form for f in forms),
        forms=forms,
        dispatcher=Dispatcher(broker, DispatcherConfig(response_timeout_seconds=timeout)),
        sessions=SessionStore(config.get("Dialogue.ClarificationTimeout", 60.0)),
        tokenizer=DeterministicTokenizer(),
        config=config,
    )
