"""
Homebrain Queue Worker

Consumer side of a worker channel.
Decodes each request, runs the handler registered for its action and
replies with a status object:

    {"status": "ok", "result": ...}
    {"status": "error", "message": "..."}

Vendor integrations (Yeelight, Spotify, ansible) are injected as handlers.
A recovery callback (e.g. refresh an expired vendor token) gets one
recovery-then-retry cycle, like the dispatcher.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Type

from homebrain.app.dispatcher import execute_with_retry
from homebrain.core.entities import ActionType, DispatchRequest
from homebrain.core.errors import RecoverableDispatchError
from homebrain.core.ports import BrokerPort

logger = logging.getLogger(__name__)

# Runs one action with the request props
WorkerHandler = Callable[[Dict[str, Any]], Awaitable[Any]]


class QueueWorker:
    """
    Serves one channel.

    Example:
    ```python
    worker = QueueWorker(
        broker,
        "spotify",
        {ActionType.PAUSE: spotify.pause, ActionType.RESUME: spotify.resume},
        recovery=spotify.refresh_access,
        recoverable=(TokenExpiredError,),
    )
    await worker.run()
    ```
    """

    def __init__(
        self,
        broker: BrokerPort,
        channel_name: str,
        handlers: Dict[ActionType, WorkerHandler],
        recovery: Optional[Callable[[], Awaitable[None]]] = None,
        recoverable: Tuple[Type[BaseException], ...] = (RecoverableDispatchError,),
    ) -> None:
        self.broker = broker
        self.channel_name = channel_name
        self.handlers = dict(handlers)
        self.recovery = recovery
        self.recoverable = recoverable

    async def run(self) -> None:
        """Connects and consumes the channel until stop() is called."""
        await self.broker.create_connection()
        logger.info(
            f"Worker for '{self.channel_name}' serving: "
            f"{', '.join(a.value for a in self.handlers)}"
        )
        await self.broker.subscribe_to_channel(self.channel_name, self.handle_message)

    def stop(self) -> None:
        self.broker.stop_consuming()

    async def handle_message(self, body: str) -> str:
        """
        Handles one request body.

        Returns:
            JSON reply; failures are reported in the reply, never raised
        """
        try:
            request = DispatchRequest.from_json(body)
        except (ValueError, TypeError) as e:
            logger.warning(f"Unknown or malformed request on '{self.channel_name}': {e}")
            return self._error(f"Unknown action: {e}")

        handler = self.handlers.get(request.name)
        if handler is None:
            logger.warning(f"Unknown action: {request.name.value}")
            return self._error(f"Unknown action: {request.name.value}")

        logger.info(f"Executing action: {request.name.value}")
        try:
            if self.recovery is not None:
                result = await execute_with_retry(
                    lambda: handler(request.props),
                    self.recovery,
                    retry_on=self.recoverable,
                )
            else:
                result = await handler(request.props)
        except Exception as e:
            logger.error(f"Action {request.name.value} failed: {e}")
            return self._error(str(e))

        return json.dumps({"status": "ok", "result": result}, default=str)

    def _error(self, message: str) -> str:
        return json.dumps({"status": "error", "message": message})
