"""
Redis Broker Adapter

Correlated request/response over Redis lists.

Wire layout:
- Requests are pushed onto the list named after the channel as an envelope
  {"correlation_id": ..., "reply_to": ..., "body": <request json>}
- The worker pushes the reply body onto the "reply_to" list and sets a TTL
  on it, so replies nobody waits for anymore expire on their own
- The caller blocks on its own reply list with a bounded timeout

Implements BrokerPort from core/ports.py.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from typing import Any, Optional

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from homebrain.core.errors import BrokerConnectionError, DispatchTimeoutError
from homebrain.core.ports import MessageHandler

logger = logging.getLogger(__name__)

_CONNECTION_ERRORS = (RedisConnectionError, RedisTimeoutError, OSError)


class RedisBrokerAdapter:
    """
    Redis-based message broker.

    Example:
    ```
    broker = RedisBrokerAdapter("redis://localhost:6379/0")
    await broker.create_connection()
    reply = await broker.send_to_channel_with_response(
        "ansible", '{"name": "VpnStop", "props": {}}', timeout=10
    )
    await broker.close()
    ```
    """

    def __init__(
        self,
        url: str,
        default_timeout: float = 30.0,
        reply_ttl: int = 60,
        poll_interval: float = 1.0,
    ) -> None:
        self.url = url
        self.default_timeout = default_timeout
        self.reply_ttl = reply_ttl
        self.poll_interval = poll_interval
        self._client: Optional[Any] = None
        self._lock = asyncio.Lock()
        self._consuming = False

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def create_connection(self) -> None:
        """Opens the connection once; later calls reuse it."""
        async with self._lock:
            if self._client is not None:
                return

            client = aioredis.from_url(self.url, decode_responses=True)
            try:
                await client.ping()
            except _CONNECTION_ERRORS as e:
                await client.aclose()
                raise BrokerConnectionError(f"Cannot connect to broker at {self.url}: {e}") from e

            self._client = client
            logger.info(f"Broker connected: {self.url}")

    async def reconnect(self) -> None:
        """
        Opens a new connection if the last one was lost.

        A failed call already dropped its client, so a connection that is
        present here was opened by another caller and is kept.
        """
        logger.info("Reconnecting to broker")
        await self.create_connection()

    async def close(self) -> None:
        async with self._lock:
            client, self._client = self._client, None
        if client is None:
            return
        try:
            await client.aclose()
        except _CONNECTION_ERRORS as e:
            logger.debug(f"Error while closing broker connection: {e}")

    async def send_to_channel_with_response(
        self,
        channel_name: str,
        payload: str,
        timeout: Optional[float] = None,
        correlation_id: Optional[str] = None,
    ) -> str:
        """
        Sends a payload and waits for the correlated reply.

        Raises:
            BrokerConnectionError: On connection failures
            DispatchTimeoutError: If no reply arrives in time
        """
        client = self._require_client()
        timeout = timeout if timeout is not None else self.default_timeout

        correlation_id = correlation_id or uuid.uuid4().hex
        reply_to = f"{channel_name}:reply:{correlation_id}"
        envelope = json.dumps({
            "correlation_id": correlation_id,
            "reply_to": reply_to,
            "body": payload,
        })

        logger.debug(f"Sending to '{channel_name}' (correlation {correlation_id})")
        try:
            await client.rpush(channel_name, envelope)
            item = await client.blpop([reply_to], timeout=timeout)
        except _CONNECTION_ERRORS as e:
            await self._drop_client(client)
            raise BrokerConnectionError(f"Broker connection lost: {e}") from e

        if item is None:
            raise DispatchTimeoutError(
                f"No response on '{channel_name}' within {timeout}s (correlation {correlation_id})"
            )

        _, body = item
        return body

    async def subscribe_to_channel(self, channel_name: str, handler: MessageHandler) -> None:
        """
        Consumes a channel until stop_consuming() is called.

        Each envelope is passed to the handler and its result is pushed to
        the envelope's reply list.
        """
        client = self._require_client()
        self._consuming = True
        logger.info(f"Consuming channel '{channel_name}'")

        while self._consuming:
            try:
                item = await client.blpop([channel_name], timeout=self.poll_interval)
            except _CONNECTION_ERRORS as e:
                await self._drop_client(client)
                raise BrokerConnectionError(f"Broker connection lost: {e}") from e

            if item is None:
                continue

            _, raw = item
            try:
                envelope = json.loads(raw)
                reply_to = envelope["reply_to"]
                body = envelope["body"]
            except (ValueError, KeyError, TypeError):
                logger.warning(f"Dropping malformed message on '{channel_name}': {raw!r}")
                continue

            reply = await handler(body)

            try:
                await client.rpush(reply_to, reply)
                await client.expire(reply_to, self.reply_ttl)
            except _CONNECTION_ERRORS as e:
                await self._drop_client(client)
                raise BrokerConnectionError(f"Broker connection lost: {e}") from e

        logger.info(f"Stopped consuming channel '{channel_name}'")

    def stop_consuming(self) -> None:
        self._consuming = False

    async def _drop_client(self, client: Any) -> None:
        """Closes a client that lost its connection, unless it was already replaced."""
        async with self._lock:
            if self._client is not client:
                return
            self._client = None
        logger.warning("Broker connection lost, client dropped")
        try:
            await client.aclose()
        except _CONNECTION_ERRORS as e:
            logger.debug(f"Error while closing broker connection: {e}")

    def _require_client(self) -> Any:
        if self._client is None:
            raise BrokerConnectionError("Broker is not connected")
        return self._client
