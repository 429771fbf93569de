"""
RPC client.

Async facade over a synchronous Web3 HTTP provider. Calls run in a
thread pool with a timeout; every failure surfaces as RpcError.
"""

import asyncio
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Protocol, TypeVar

from eth_utils import to_checksum_address
from loguru import logger
from web3 import Web3

from turbine_tracker.config.constants import (
    CONTRACT_ADDRESS,
    RPC_EXECUTOR_MAX_WORKERS,
    RPC_TIMEOUT,
    TOPIC_0,
)
from turbine_tracker.utils.exceptions import RpcError
from turbine_tracker.utils.security import mask_address

T = TypeVar("T")


class ChainClient(Protocol):
    """Node capabilities the sync engine depends on."""

    async def get_block_number(self) -> int: ...

    async def get_block_timestamp(self, block_number: int | None = None) -> int: ...

    async def fetch_logs(
        self, from_block: int, to_block: int
    ) -> list[Mapping[str, Any]]: ...

    def close(self) -> None: ...


class RpcClient:
    """
    Web3-backed chain client.

    Log requests are filtered server-side to one contract address and
    one event signature.
    """

    def __init__(
        self,
        rpc_url: str,
        contract_address: str = CONTRACT_ADDRESS,
        topic0: str = TOPIC_0,
        timeout: float = RPC_TIMEOUT,
        w3: Web3 | None = None,
    ) -> None:
        """
        Initialize client.

        Args:
            rpc_url: HTTP JSON-RPC endpoint
            contract_address: Contract whose logs are fetched
            topic0: Event signature topic
            timeout: Per-call timeout in seconds
            w3: Prebuilt Web3 instance (tests)
        """
        self.rpc_url = rpc_url
        self.timeout = timeout
        self.contract_address = to_checksum_address(contract_address)
        self.topic0 = topic0
        self.w3 = w3 or Web3(
            Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout})
        )
        self._executor = ThreadPoolExecutor(
            max_workers=RPC_EXECUTOR_MAX_WORKERS,
            thread_name_prefix="web3",
        )
        logger.debug(
            f"[RPC] Client for {mask_address(self.contract_address)} at {rpc_url}"
        )

    async def _call(self, operation: str, func: Callable[[], T]) -> T:
        """Run a blocking Web3 call off the event loop."""
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(self._executor, func),
                timeout=self.timeout,
            )
        except TimeoutError as e:
            raise RpcError(f"{operation} timed out after {self.timeout}s") from e
        except RpcError:
            raise
        except Exception as e:
            raise RpcError(f"{operation} failed: {e}") from e

    async def get_block_number(self) -> int:
        """
        Get current block number.

        Returns:
            Chain head block number
        """
        return await self._call("eth_blockNumber", lambda: self.w3.eth.block_number)

    async def get_block_timestamp(self, block_number: int | None = None) -> int:
        """
        Get block timestamp in milliseconds.

        Args:
            block_number: Block to read (default: latest)

        Returns:
            Block timestamp, ms since epoch
        """
        identifier = block_number if block_number is not None else "latest"

        def _timestamp() -> int:
            block = self.w3.eth.get_block(identifier)
            if not block:
                raise RpcError("Failed to fetch block")
            return int(block["timestamp"]) * 1000

        return await self._call("eth_getBlockByNumber", _timestamp)

    async def fetch_logs(
        self, from_block: int, to_block: int
    ) -> list[Mapping[str, Any]]:
        """
        Fetch raw logs of the tracked event in an inclusive block range.

        Args:
            from_block: First block
            to_block: Last block

        Returns:
            Raw log entries
        """
        filter_params = {
            "address": self.contract_address,
            "topics": [self.topic0],
            "fromBlock": from_block,
            "toBlock": to_block,
        }
        logs = await self._call(
            f"eth_getLogs {from_block}-{to_block}",
            lambda: self.w3.eth.get_logs(filter_params),
        )
        logger.debug(f"[RPC] {len(logs)} logs in {from_block}-{to_block}")
        return list(logs)

    def close(self) -> None:
        """Release the worker threads."""
        self._executor.shutdown(wait=False, cancel_futures=True)
