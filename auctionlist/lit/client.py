"""HTTP client for the access-control encryption network gateway.

The gateway fronts the threshold network and exposes:
  GET  /health                -> 200 when the node set is reachable
  POST /save-encryption-key   -> {"encryptedSymmetricKey": "<hex>"}

Request body for save-encryption-key:
  {"accessControlConditions": [...], "symmetricKey": "<hex>",
   "authSig": {...}, "chain": "<network name>"}
"""

from __future__ import annotations

from typing import Any

import bittensor as bt
import httpx

from auctionlist.credentials.errors import EncryptionNetworkError, PolicyRejected
from auctionlist.credentials.models import AuthSig

POLICY_REJECTION_CODES = (400, 422)


class LitGatewayClient:
    """EncryptionNetwork implementation over HTTP."""

    def __init__(
        self,
        gateway_url: str,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.gateway_url = gateway_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        try:
            resp = await self._client.get(f"{self.gateway_url}/health")
        except httpx.TransportError as e:
            raise EncryptionNetworkError(f"Encryption network unreachable: {e}") from e
        if resp.status_code != 200:
            raise EncryptionNetworkError(f"Encryption network not ready: {resp.status_code}")
        self._connected = True
        bt.logging.info({"lit_gateway": {"event": "connected", "url": self.gateway_url}})

    async def close(self) -> None:
        self._connected = False
        await self._client.aclose()

    async def save_encryption_key(
        self,
        access_control_conditions: list[dict[str, Any]],
        symmetric_key: bytes,
        auth_sig: AuthSig,
        chain: str,
    ) -> bytes:
        if not self._connected:
            raise EncryptionNetworkError("Encryption network used before connect()")

        payload = {
            "accessControlConditions": access_control_conditions,
            "symmetricKey": symmetric_key.hex(),
            "authSig": auth_sig.model_dump(by_alias=True),
            "chain": chain,
        }
        try:
            resp = await self._client.post(f"{self.gateway_url}/save-encryption-key", json=payload)
        except httpx.TransportError as e:
            raise EncryptionNetworkError(f"Key wrap request failed: {e}") from e

        if resp.status_code in POLICY_REJECTION_CODES:
            raise PolicyRejected(f"Access policy rejected: {resp.text[:200]}")
        if not resp.is_success:
            raise EncryptionNetworkError(f"Key wrap failed: {resp.status_code} {resp.text[:200]}")

        try:
            handle = resp.json()["encryptedSymmetricKey"]
            return bytes.fromhex(handle.removeprefix("0x"))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise EncryptionNetworkError(f"Malformed key wrap response: {e}") from e


__all__ = ["LitGatewayClient", "POLICY_REJECTION_CODES"]
