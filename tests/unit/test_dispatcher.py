"""
Unit Tests for Dispatcher

Tests for the recovery-then-retry cycle and the broker round trip.
"""

import json

import pytest

from homebrain.app.dispatcher import Dispatcher, DispatcherConfig, execute_with_retry
from homebrain.core.entities import ActionType, DispatchRequest
from homebrain.core.errors import (
    BrokerConnectionError,
    DispatchTimeoutError,
    RecoverableDispatchError,
    TerminalDispatchError,
)


class TestExecuteWithRetry:
    """Tests for execute_with_retry()."""

    @pytest.mark.asyncio
    async def test_success_without_recovery(self, mocker):
        operation = mocker.AsyncMock(return_value="ok")
        recovery = mocker.AsyncMock()

        assert await execute_with_retry(operation, recovery) == "ok"
        assert operation.await_count == 1
        recovery.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_recovers_once_then_succeeds(self, mocker):
        operation = mocker.AsyncMock(side_effect=[RecoverableDispatchError("stale"), "ok"])
        recovery = mocker.AsyncMock()

        assert await execute_with_retry(operation, recovery) == "ok"
        assert operation.await_count == 2
        assert recovery.await_count == 1

    @pytest.mark.asyncio
    async def test_second_failure_propagates_unchanged(self, mocker):
        """Operation runs at most twice, recovery at most once."""
        second = RecoverableDispatchError("still stale")
        operation = mocker.AsyncMock(side_effect=[RecoverableDispatchError("stale"), second])
        recovery = mocker.AsyncMock()

        with pytest.raises(RecoverableDispatchError) as exc_info:
            await execute_with_retry(operation, recovery)

        assert exc_info.value is second
        assert operation.await_count == 2
        assert recovery.await_count == 1

    @pytest.mark.asyncio
    async def test_terminal_failure_skips_recovery(self, mocker):
        operation = mocker.AsyncMock(side_effect=DispatchTimeoutError("late"))
        recovery = mocker.AsyncMock()

        with pytest.raises(DispatchTimeoutError):
            await execute_with_retry(operation, recovery)

        assert operation.await_count == 1
        recovery.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_custom_retry_on(self, mocker):
        operation = mocker.AsyncMock(side_effect=[PermissionError("token expired"), 42])
        recovery = mocker.AsyncMock()

        assert await execute_with_retry(operation, recovery, retry_on=(PermissionError,)) == 42
        assert recovery.await_count == 1


class TestDispatcher:
    """Tests for Dispatcher."""

    @pytest.mark.asyncio
    async def test_dispatch_sends_payload_and_parses_reply(self, mock_broker):
        mock_broker.send_to_channel_with_response.return_value = json.dumps({"status": "ok"})
        dispatcher = Dispatcher(mock_broker, DispatcherConfig(response_timeout_seconds=7.0))
        request = DispatchRequest(ActionType.VPN_START, {"vpnFileName": "vpn_france_paris"})

        response = await dispatcher.dispatch(request, "ansible")

        assert response.payload == {"status": "ok"}
        channel, payload = mock_broker.send_to_channel_with_response.await_args.args
        assert channel == "ansible"
        assert json.loads(payload) == {"name": "VpnStart", "props": {"vpnFileName": "vpn_france_paris"}}
        assert mock_broker.send_to_channel_with_response.await_args.kwargs["timeout"] == 7.0

    @pytest.mark.asyncio
    async def test_response_carries_correlation_id(self, mock_broker):
        response = await Dispatcher(mock_broker).dispatch(DispatchRequest(ActionType.VPN_STOP), "ansible")

        sent_id = mock_broker.send_to_channel_with_response.await_args.kwargs["correlation_id"]
        assert sent_id
        assert response.correlation_id == sent_id

    @pytest.mark.asyncio
    async def test_non_json_reply_kept_raw(self, mock_broker):
        mock_broker.send_to_channel_with_response.return_value = "done"

        response = await Dispatcher(mock_broker).dispatch(DispatchRequest(ActionType.VPN_STOP), "ansible")

        assert response.payload == "done"

    @pytest.mark.asyncio
    async def test_retry_replays_same_payload(self, mock_broker):
        mock_broker.send_to_channel_with_response.side_effect = [
            BrokerConnectionError("connection reset"),
            "{}",
        ]
        request = DispatchRequest(ActionType.VPN_START, {"vpnFileName": "vpn_france_paris"})

        await Dispatcher(mock_broker).dispatch_with_retry(request, "ansible")

        mock_broker.create_connection.assert_awaited_once()
        mock_broker.reconnect.assert_awaited_once()
        calls = mock_broker.send_to_channel_with_response.await_args_list
        assert len(calls) == 2
        assert calls[0].args == calls[1].args
        assert calls[0].kwargs["correlation_id"] != calls[1].kwargs["correlation_id"]

    @pytest.mark.asyncio
    async def test_failure_after_retry_is_terminal(self, mock_broker):
        mock_broker.send_to_channel_with_response.side_effect = BrokerConnectionError("down")

        with pytest.raises(TerminalDispatchError):
            await Dispatcher(mock_broker).dispatch_with_retry(DispatchRequest(ActionType.VPN_STOP), "ansible")

        assert mock_broker.send_to_channel_with_response.await_count == 2
        mock_broker.reconnect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_timeout_is_not_retried(self, mock_broker):
        """The worker may already have acted, so a timeout is never replayed."""
        mock_broker.send_to_channel_with_response.side_effect = DispatchTimeoutError("late")

        with pytest.raises(DispatchTimeoutError):
            await Dispatcher(mock_broker).dispatch_with_retry(DispatchRequest(ActionType.VPN_STOP), "ansible")

        assert mock_broker.send_to_channel_with_response.await_count == 1
        mock_broker.reconnect.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_connection_failure_is_terminal(self, mock_broker):
        mock_broker.create_connection.side_effect = BrokerConnectionError("unreachable")

        with pytest.raises(TerminalDispatchError):
            await Dispatcher(mock_broker).dispatch_with_retry(DispatchRequest(ActionType.VPN_STOP), "ansible")

        mock_broker.send_to_channel_with_response.assert_not_awaited()
