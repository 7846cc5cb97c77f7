"""Pinata pinning client for sealed credentials."""

from __future__ import annotations

import bittensor as bt
import httpx

from auctionlist.credentials.errors import UploadFailed
from auctionlist.credentials.models import PublicationRecord

PINATA_PIN_JSON_URL = "https://api.pinata.cloud/pinning/pinJSONToIPFS"


class PinataClient:
    """Uploads one PublicationRecord per call; 2xx means accepted.

    Deduplication by content hash is Pinata's concern.
    """

    def __init__(
        self,
        jwt: str,
        url: str = PINATA_PIN_JSON_URL,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        if not jwt:
            raise ValueError("Pinata JWT is required")
        self.url = url
        self._jwt = jwt
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()

    def _auth_headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._jwt}",
        }

    async def pin_json(self, record: PublicationRecord) -> str:
        try:
            resp = await self._client.post(
                self.url, json=record.to_pinata_body(), headers=self._auth_headers(),
            )
        except httpx.TransportError as e:
            raise UploadFailed(f"Pinata unreachable: {e}", address=record.address) from e

        if not resp.is_success:
            raise UploadFailed(
                f"Pinata rejected upload: {resp.status_code} {resp.text[:200]}",
                address=record.address,
            )

        try:
            cid = str(resp.json().get("IpfsHash", ""))
        except ValueError:
            cid = ""
        bt.logging.debug({"pinata": {"event": "pinned", "name": record.name, "cid": cid}})
        return cid


__all__ = ["PINATA_PIN_JSON_URL", "PinataClient"]
