"""JSON-RPC chain client for network identity resolution."""

from __future__ import annotations

import itertools
from typing import Any

import bittensor as bt
import httpx

from auctionlist.credentials.errors import MissingNetwork
from auctionlist.credentials.identity import ChainClient, NetworkInfo


class JSONRPCError(Exception):
    """Node answered with a JSON-RPC error object."""

    def __init__(self, code: int, message: str):
        super().__init__(f"{code}: {message}")
        self.code = code


class JSONRPCTransport:
    """Minimal async JSON-RPC 2.0 caller over httpx."""

    def __init__(self, rpc_url: str, timeout: float = 30.0, client: httpx.AsyncClient | None = None):
        self.rpc_url = rpc_url
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._ids = itertools.count(1)

    async def close(self) -> None:
        await self._client.aclose()

    async def call(self, method: str, params: list[Any] | None = None) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }
        resp = await self._client.post(self.rpc_url, json=payload)
        resp.raise_for_status()
        body = resp.json()
        if not isinstance(body, dict):
            raise JSONRPCError(-32700, f"Response is not a JSON-RPC object: {type(body).__name__}")
        if body.get("error"):
            err = body["error"]
            if not isinstance(err, dict):
                err = {"message": err}
            raise JSONRPCError(int(err.get("code", -1)), str(err.get("message", "")))
        return body.get("result")


class JSONRPCChainClient:
    """Resolves the active chain id via ``eth_chainId``.

    Nodes do not report a human network name, so the reported name is the
    configured label (e.g. the name the operator gave the RPC endpoint).
    """

    def __init__(self, transport: JSONRPCTransport, network_label: str = "unknown"):
        self.transport = transport
        self.network_label = network_label
        self._cached: NetworkInfo | None = None

    async def get_network(self) -> NetworkInfo:
        if self._cached is not None:
            return self._cached
        try:
            result = await self.transport.call("eth_chainId")
            if result is None:
                raise MissingNetwork("Node returned no chain id")
            chain_id = int(result, 16) if isinstance(result, str) else int(result)
        except (httpx.HTTPError, JSONRPCError, ValueError, TypeError) as e:
            raise MissingNetwork(f"Could not resolve chain id: {e}") from e
        self._cached = NetworkInfo(chain_id=chain_id, name=self.network_label)
        bt.logging.info({"chain_client": {"event": "network_resolved", "chain_id": chain_id}})
        return self._cached


__all__ = [
    "ChainClient",
    "JSONRPCChainClient",
    "JSONRPCError",
    "JSONRPCTransport",
    "NetworkInfo",
]
