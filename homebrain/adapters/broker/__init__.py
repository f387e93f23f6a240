"""
Homebrain Broker Adapters Package

Adapters for the message broker used to reach worker processes.
Implements BrokerPort from core/ports.py.
"""

from homebrain.adapters.broker.redis_broker import RedisBrokerAdapter

__all__ = [
    "RedisBrokerAdapter",
]
