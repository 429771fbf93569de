"""Blockchain node access."""

from .rpc_client import ChainClient, RpcClient

__all__ = ["ChainClient", "RpcClient"]
