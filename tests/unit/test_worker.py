"""
Unit Tests for Queue Worker
"""

import json

import pytest

from homebrain.app.worker import QueueWorker
from homebrain.core.entities import ActionType


class TokenExpiredError(Exception):
    pass


class TestQueueWorker:
    """Tests for QueueWorker."""

    @pytest.mark.asyncio
    async def test_runs_handler_with_props(self, mocker, mock_broker):
        handler = mocker.AsyncMock(return_value={"connected": True})
        worker = QueueWorker(mock_broker, "ansible", {ActionType.VPN_START: handler})

        reply = await worker.handle_message('{"name": "VpnStart", "props": {"vpnFileName": "vpn_france_paris"}}')

        handler.assert_awaited_once_with({"vpnFileName": "vpn_france_paris"})
        assert json.loads(reply) == {"status": "ok", "result": {"connected": True}}

    @pytest.mark.asyncio
    async def test_unknown_action(self, mocker, mock_broker):
        worker = QueueWorker(mock_broker, "ansible", {ActionType.VPN_START: mocker.AsyncMock()})

        reply = json.loads(await worker.handle_message('{"name": "Pause", "props": {}}'))

        assert reply["status"] == "error"
        assert "Pause" in reply["message"]

    @pytest.mark.asyncio
    async def test_malformed_message(self, mocker, mock_broker):
        worker = QueueWorker(mock_broker, "ansible", {})

        reply = json.loads(await worker.handle_message("garbage"))

        assert reply["status"] == "error"

    @pytest.mark.asyncio
    async def test_recovery_then_retry(self, mocker, mock_broker):
        """An expired credential is refreshed once and the action replayed."""
        handler = mocker.AsyncMock(side_effect=[TokenExpiredError("expired"), None])
        refresh = mocker.AsyncMock()
        worker = QueueWorker(
            mock_broker,
            "spotify",
            {ActionType.PAUSE: handler},
            recovery=refresh,
            recoverable=(TokenExpiredError,),
        )

        reply = json.loads(await worker.handle_message('{"name": "Pause"}'))

        assert reply == {"status": "ok", "result": None}
        refresh.assert_awaited_once()
        assert handler.await_count == 2

    @pytest.mark.asyncio
    async def test_handler_failure_reported(self, mocker, mock_broker):
        handler = mocker.AsyncMock(side_effect=RuntimeError("No active device found"))
        worker = QueueWorker(mock_broker, "spotify", {ActionType.PAUSE: handler})

        reply = json.loads(await worker.handle_message('{"name": "Pause"}'))

        assert reply == {"status": "error", "message": "No active device found"}

    @pytest.mark.asyncio
    async def test_run_and_stop(self, mock_broker, mocker):
        mock_broker.subscribe_to_channel = mocker.AsyncMock()
        worker = QueueWorker(mock_broker, "spotify", {})

        await worker.run()
        worker.stop()

        mock_broker.create_connection.assert_awaited_once()
        mock_broker.subscribe_to_channel.assert_awaited_once_with("spotify", worker.handle_message)
        mock_broker.stop_consuming.assert_called_once()
