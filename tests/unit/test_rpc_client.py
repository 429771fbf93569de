"""Tests for the Web3-backed RPC client (mocked provider)."""

import time
from unittest.mock import MagicMock

import pytest
from eth_utils import to_checksum_address

from turbine_tracker.config.constants import CONTRACT_ADDRESS, TOPIC_0
from turbine_tracker.services.blockchain.rpc_client import RpcClient
from turbine_tracker.utils.exceptions import RpcError


@pytest.fixture
def mock_w3():
    """Mock Web3 instance."""
    w3 = MagicMock()
    w3.eth.block_number = 1050
    w3.eth.get_block = MagicMock(return_value={"timestamp": 1_736_000_000})
    w3.eth.get_logs = MagicMock(return_value=[{"blockNumber": 1001}])
    return w3


@pytest.fixture
def client(mock_w3):
    """RpcClient over the mock."""
    c = RpcClient("http://localhost:8545", w3=mock_w3, timeout=1)
    yield c
    c.close()


class TestRpcClient:
    """Test RPC calls and error mapping."""

    @pytest.mark.asyncio
    async def test_block_number(self, client):
        """Head block is read from eth.block_number."""
        assert await client.get_block_number() == 1050

    @pytest.mark.asyncio
    async def test_block_timestamp_in_ms(self, client, mock_w3):
        """Block timestamps are converted to milliseconds."""
        assert await client.get_block_timestamp(1050) == 1_736_000_000_000
        mock_w3.eth.get_block.assert_called_once_with(1050)

    @pytest.mark.asyncio
    async def test_latest_block_timestamp(self, client, mock_w3):
        """No block number means latest."""
        await client.get_block_timestamp()

        mock_w3.eth.get_block.assert_called_once_with("latest")

    @pytest.mark.asyncio
    async def test_missing_block(self, client, mock_w3):
        """An empty block response is an RPC error."""
        mock_w3.eth.get_block.return_value = None

        with pytest.raises(RpcError, match="Failed to fetch block"):
            await client.get_block_timestamp(1)

    @pytest.mark.asyncio
    async def test_fetch_logs_filter(self, client, mock_w3):
        """Logs are filtered by contract, topic and inclusive range."""
        logs = await client.fetch_logs(1001, 1020)

        assert logs == [{"blockNumber": 1001}]
        mock_w3.eth.get_logs.assert_called_once_with({
            "address": to_checksum_address(CONTRACT_ADDRESS),
            "topics": [TOPIC_0],
            "fromBlock": 1001,
            "toBlock": 1020,
        })

    @pytest.mark.asyncio
    async def test_provider_error_is_rpc_error(self, client, mock_w3):
        """Provider exceptions surface as RpcError."""
        mock_w3.eth.get_logs.side_effect = ValueError("query returned more than 10000 results")

        with pytest.raises(RpcError, match="10000 results"):
            await client.fetch_logs(1, 100_000)

    @pytest.mark.asyncio
    @pytest.mark.slow
    async def test_timeout(self, mock_w3):
        """Slow calls time out as RpcError."""
        mock_w3.eth.get_logs.side_effect = lambda _: time.sleep(0.5)
        client = RpcClient("http://localhost:8545", w3=mock_w3, timeout=0.05)

        with pytest.raises(RpcError, match="timed out"):
            await client.fetch_logs(1, 2)
        client.close()
