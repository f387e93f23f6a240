"""
Pytest Configuration

Configuration and fixtures for tests.
"""

import json

import pytest
import sys
import os

# Adds the root directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from homebrain.core.config import ConfigService
from homebrain.core.entities import Token, TokenType


def _make_tokens(*words):
    tokens = []
    for position, word in enumerate(words):
        if ":" in word:
            kind, value = word.split(":", 1)
            tokens.append(Token(TokenType(kind), value, position))
        else:
            tokens.append(Token(TokenType.FREE_TEXT, word, position))
    return tokens


@pytest.fixture
def make_tokens():
    """Token factory; words written as "country:france" get that type."""
    return _make_tokens


@pytest.fixture
def config():
    """Config store with fixed values."""
    return ConfigService({
        "Broker": {"Url": "redis://test:6379/0", "ResponseTimeout": 5.0, "ReplyTtl": 60},
        "Queues": {"Ansible": "ansible", "SmartDevices": "smart-devices", "Spotify": "spotify"},
        "VPN": {"FolderFilesPath": "/etc/vpn"},
        "Dialogue": {"ClarificationTimeout": 60.0, "StrictDisambiguation": True},
    })


@pytest.fixture
def vpn_files():
    return ["vpn_france_paris.ovpn", "vpn_france_lyon.ovpn", "vpn_germany_berlin.ovpn"]


@pytest.fixture
def mock_file_enumerator(mocker, vpn_files):
    """Mock for file enumerator."""
    enumerator = mocker.MagicMock()
    enumerator.get_dir_files = mocker.AsyncMock(return_value=vpn_files)
    return enumerator


@pytest.fixture
def mock_broker(mocker):
    """Mock for broker that answers every request with an empty object."""
    broker = mocker.MagicMock()
    broker.create_connection = mocker.AsyncMock()
    broker.reconnect = mocker.AsyncMock()
    broker.close = mocker.AsyncMock()
    broker.send_to_channel_with_response = mocker.AsyncMock(return_value=json.dumps({}))
    return broker
