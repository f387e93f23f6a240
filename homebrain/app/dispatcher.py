"""
Homebrain Dispatcher

Last stage of the pipeline.
Sends a resolved action to its worker over the broker and waits for the
correlated response.

Retry policy:
- Exactly one attempt, then on a recoverable failure one recovery call
  (e.g. reconnect, refresh a credential) and exactly one more attempt
- The second failure is terminal
- No backoff, no loop
- The retry replays the same request payload; matching is not repeated
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from homebrain.core.entities import DispatchRequest, DispatchResponse
from homebrain.core.errors import (
    DispatchError,
    RecoverableDispatchError,
    TerminalDispatchError,
)
from homebrain.core.ports import BrokerPort

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def execute_with_retry(
    operation: Callable[[], Awaitable[T]],
    recovery: Callable[[], Awaitable[None]],
    retry_on: Tuple[Type[BaseException], ...] = (RecoverableDispatchError,),
) -> T:
    """
    Runs an operation with a single recovery-then-retry cycle.

    Args:
        operation: Coroutine factory for one attempt
        recovery: Called once after a recoverable failure
        retry_on: Exception types that trigger recovery

    Returns:
        Result of the first successful attempt

    Raises:
        The second failure unchanged, or any non-recoverable failure
        of the first attempt without calling recovery
    """
    try:
        return await operation()
    except retry_on as e:
        logger.warning(f"Attempt failed ({type(e).__name__}: {e}), recovering and retrying once")

    await recovery()
    return await operation()


@dataclass
class DispatcherConfig:
    """Dispatcher configuration."""

    # Seconds to wait for a correlated response
    response_timeout_seconds: float = 30.0

    # Logging
    log_payloads: bool = True
    max_payload_log_length: int = 1000


class Dispatcher:
    """
    Sends dispatch requests to workers.

    Example:
    ```python
    dispatcher = Dispatcher(RedisBrokerAdapter(url))
    response = await dispatcher.dispatch_with_retry(
        DispatchRequest(ActionType.VPN_STOP), "ansible"
    )
    ```
    """

    def __init__(self, broker: BrokerPort, config: Optional[DispatcherConfig] = None) -> None:
        self.broker = broker
        self.config = config or DispatcherConfig()

    async def dispatch(self, request: DispatchRequest, channel_name: str) -> DispatchResponse:
        """
        Sends one request and waits for its response.

        Raises:
            BrokerConnectionError: On connection failures (recoverable)
            DispatchTimeoutError: If the worker does not answer in time
        """
        payload = request.to_json()
        if self.config.log_payloads:
            logger.info(f"Dispatching to '{channel_name}': {payload[:self.config.max_payload_log_length]}")

        correlation_id = uuid.uuid4().hex
        raw = await self.broker.send_to_channel_with_response(
            channel_name,
            payload,
            timeout=self.config.response_timeout_seconds,
            correlation_id=correlation_id,
        )
        return self._parse_response(raw, correlation_id)

    async def dispatch_with_retry(self, request: DispatchRequest, channel_name: str) -> DispatchResponse:
        """
        Opens (or reuses) the broker connection and dispatches with one retry.

        Raises:
            TerminalDispatchError: If the request cannot be delivered
        """
        try:
            await self.broker.create_connection()
        except DispatchError as e:
            raise TerminalDispatchError(str(e), user_message=e.user_message) from e

        try:
            return await execute_with_retry(
                lambda: self.dispatch(request, channel_name),
                self.broker.reconnect,
            )
        except TerminalDispatchError:
            raise
        except DispatchError as e:
            logger.error(f"Dispatch of {request.name.value} failed after retry: {e}")
            raise TerminalDispatchError(str(e), user_message=e.user_message) from e

    def _parse_response(self, raw: str, correlation_id: str) -> DispatchResponse:
        try:
            payload = json.loads(raw) if raw else None
        except ValueError:
            payload = raw
        return DispatchResponse(payload=payload, correlation_id=correlation_id)
