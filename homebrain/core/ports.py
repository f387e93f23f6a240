"""
Homebrain Core Domain Ports (Interfaces)

This module defines all ports (interfaces) of the system.
Ports are contracts that are implemented by adapters in the infrastructure layer.

Principle: The domain defines WHAT needs to be done.
           Adapters define HOW to do it.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Awaitable, Callable, List, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from homebrain.core.entities import Token


# Handler invoked by the broker for every consumed message; returns the reply body
MessageHandler = Callable[[str], Awaitable[str]]


@runtime_checkable
class BrokerPort(Protocol):
    """
    Port for the message broker.

    Implementations:
        - RedisBrokerAdapter
    """

    @abstractmethod
    async def create_connection(self) -> None:
        """
        Opens the connection, or reuses the open one.

        Safe to call repeatedly.

        Raises:
            BrokerConnectionError: If the broker is unreachable
        """
        ...

    @abstractmethod
    async def send_to_channel_with_response(
        self,
        channel_name: str,
        payload: str,
        timeout: Optional[float] = None,
        correlation_id: Optional[str] = None,
    ) -> str:
        """
        Sends a payload and waits for the correlated reply.

        Args:
            channel_name: Worker channel
            payload: Serialized request
            timeout: Seconds to wait for the reply
            correlation_id: Id pairing the reply with the request (generated if omitted)

        Returns:
            Reply body

        Raises:
            BrokerConnectionError: On connection failures
            DispatchTimeoutError: If no reply arrives in time
        """
        ...

    @abstractmethod
    async def subscribe_to_channel(self, channel_name: str, handler: MessageHandler) -> None:
        """Consumes a channel, replying with the handler result to each message."""
        ...

    @abstractmethod
    def stop_consuming(self) -> None:
        """Makes subscribe_to_channel return after the current message."""
        ...

    @abstractmethod
    async def reconnect(self) -> None:
        """Replaces a lost connection; a live one is kept."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Releases the connection."""
        ...


@runtime_checkable
class FileEnumeratorPort(Protocol):
    """Port for listing backing resources."""

    @abstractmethod
    async def get_dir_files(self, path: str) -> List[str]:
        """
        Returns file names in a directory.

        Raises:
            LookupFailureError: If the directory cannot be read
        """
        ...


@runtime_checkable
class ConfigPort(Protocol):
    """Port for read-only configuration."""

    @abstractmethod
    def get(self, key: str, default: Any = ...) -> Any:
        """Returns the value under a dotted key."""
        ...


@runtime_checkable
class TokenizerPort(Protocol):
    """Port for turning text into typed tokens."""

    @abstractmethod
    def tokenize(self, text: str) -> List["Token"]:
        """
        Splits text into normalized tokens.

        Returns:
            Tokens with contiguous positions starting at 0
        """
        ...
