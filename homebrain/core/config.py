"""
Configuration utilities for Homebrain.

Provides centralized access to configuration from environment variables.
Values are grouped in sections and read with dotted keys:

    config = ConfigService()
    config.get("Queues.Ansible")
"""

import os
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

_MISSING = object()


def get_broker_url() -> str:
    """
    Get the broker (Redis) URL from environment or default.

    Returns:
        Redis connection URL
    """
    return os.getenv("REDIS_URL", "redis://localhost:6379/0")


def get_vpn_files_path() -> str:
    """
    Get the folder holding VPN configuration files.

    Returns:
        Folder path
    """
    return os.getenv("VPN_FILES_PATH", "vpn")


def get_float(name: str, default: float) -> float:
    """Reads a float variable, falling back to the default on bad input."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def get_bool(name: str, default: bool) -> bool:
    """Reads a boolean variable ("1", "true", "yes", "on" are true)."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def build_config() -> Dict[str, Dict[str, Any]]:
    """Builds the nested configuration mapping from the environment."""
    return {
        "Broker": {
            "Url": get_broker_url(),
            "ResponseTimeout": get_float("BROKER_RESPONSE_TIMEOUT", 30.0),
            "ReplyTtl": int(get_float("BROKER_REPLY_TTL", 60.0)),
        },
        "Queues": {
            "Ansible": os.getenv("ANSIBLE_QUEUE_NAME", "ansible"),
            "SmartDevices": os.getenv("SMART_DEVICES_QUEUE_NAME", "smart-devices"),
            "Spotify": os.getenv("SPOTIFY_QUEUE_NAME", "spotify"),
        },
        "VPN": {
            "FolderFilesPath": get_vpn_files_path(),
        },
        "Dialogue": {
            "ClarificationTimeout": get_float("CLARIFICATION_TIMEOUT", 60.0),
            "StrictDisambiguation": get_bool("STRICT_DISAMBIGUATION", True),
        },
    }


class ConfigService:
    """
    Read-only configuration store with dotted-key access.

    Example:
        config = ConfigService({"VPN": {"FolderFilesPath": "/etc/vpn"}})
        config.get("VPN.FolderFilesPath")  # "/etc/vpn"
    """

    def __init__(self, config: Optional[Mapping[str, Any]] = None) -> None:
        self._config = config if config is not None else build_config()

    def get(self, key: str, default: Any = _MISSING) -> Any:
        """
        Returns the value under a dotted key.

        Raises:
            KeyError: If the key is missing and no default is given
        """
        node: Any = self._config
        for part in key.split("."):
            if not isinstance(node, Mapping) or part not in node:
                if default is _MISSING:
                    raise KeyError(f"Missing config key: {key}")
                return default
            node = node[part]
        return node
