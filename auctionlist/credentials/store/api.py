"""HTTP client posting chunk audit files to the auction signature API."""

from __future__ import annotations

import bittensor as bt
import httpx

from auctionlist.credentials.errors import ApiPublishError
from auctionlist.credentials.models import ChunkAuditFile


class SignatureApiClient:
    """POSTs each completed chunk's signatures as JSON to ``url``."""

    def __init__(
        self,
        url: str,
        token: str | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url
        self._token = token
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def post_chunk(self, audit: ChunkAuditFile) -> None:
        try:
            resp = await self._client.post(
                self.url,
                json=audit.model_dump(mode="json", by_alias=True),
                headers=self._headers(),
            )
        except httpx.TransportError as e:
            raise ApiPublishError(f"Signature API unreachable: {e}") from e
        if not resp.is_success:
            raise ApiPublishError(f"Signature API rejected chunk: {resp.status_code} {resp.text[:200]}")
        bt.logging.info({"signature_api": {"event": "chunk_posted", "n": len(audit.signatures)}})


__all__ = ["SignatureApiClient"]
