"""Network identity and the per-run authentication assertion.

Two concerns:
- Resolve the active chain id to the network name the encryption network
  expects (static table, falling back to the name the chain client reports).
- Produce one AuthSig per run: a SIWE (EIP-4361) statement signed by the
  authority, used as a bearer credential for every key-wrap request.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Protocol, runtime_checkable

import bittensor as bt
from pydantic import BaseModel, Field
from siwe import SiweMessage

from .errors import MissingNetwork
from .models import AuthSig, checksum
from .signer import AuthoritySigner

DEFAULT_NETWORK_NAMES: dict[int, str] = {
    1: "ethereum",
    5: "goerli",
    100: "xdai",
    137: "polygon",
}


@dataclass(frozen=True)
class NetworkInfo:
    """Active network as reported by the chain client."""

    chain_id: int
    name: str = "unknown"


@runtime_checkable
class ChainClient(Protocol):
    async def get_network(self) -> NetworkInfo:
        ...


class NetworkTable(BaseModel):
    """Injectable chain id -> canonical network name mapping."""

    names: dict[int, str] = Field(default_factory=lambda: dict(DEFAULT_NETWORK_NAMES))

    def name_for(self, chain_id: int, reported: str | None = None) -> str:
        name = self.names.get(chain_id) or reported
        if not name:
            raise MissingNetwork(f"No network name for chain id {chain_id}")
        return name


async def resolve_network(client: ChainClient, table: NetworkTable) -> NetworkInfo:
    """Active network with its canonical name applied."""
    info = await client.get_network()
    if info is None or info.chain_id is None:
        raise MissingNetwork("Chain client did not report a chain id")
    name = table.name_for(info.chain_id, info.name)
    bt.logging.info({"identity": {"event": "network", "chain_id": info.chain_id, "name": name}})
    return NetworkInfo(chain_id=info.chain_id, name=name)


class AuthSettings(BaseModel):
    """SIWE parameters for the run's auth assertion."""

    origin: str = "https://gnosis-auction.com"
    domain: str = "gnosis-auct"
    statement_prefix: str = "Gnosis Auction"
    derived_via: str = "web3.eth.personal.sign"


def _iso_now() -> str:
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


class AuthContextFactory:
    """Builds the run's AuthSig from the authority identity."""

    def __init__(
        self,
        authority: AuthoritySigner,
        settings: AuthSettings | None = None,
        clock: Callable[[], str] = _iso_now,
        nonce_factory: Callable[[], str] = lambda: secrets.token_hex(8),
    ):
        self.authority = authority
        self.settings = settings or AuthSettings()
        self._clock = clock
        self._nonce = nonce_factory

    def prepare_message(self, auction_id: int, chain_id: int) -> str:
        message = SiweMessage(
            domain=self.settings.domain,
            address=checksum(self.authority.address),
            statement=f"{self.settings.statement_prefix} {auction_id}",
            uri=self.settings.origin,
            version="1",
            chain_id=chain_id,
            nonce=self._nonce(),
            issued_at=self._clock(),
        )
        return message.prepare_message()

    async def create(self, auction_id: int, chain_id: int) -> AuthSig:
        text = self.prepare_message(auction_id, chain_id)
        raw = await self.authority.sign_bytes(text.encode("utf-8"))
        bt.logging.info({"identity": {"event": "auth_sig_created", "address": self.authority.address}})
        return AuthSig(
            sig="0x" + raw.hex(),
            derived_via=self.settings.derived_via,
            signed_message=text,
            address=self.authority.address,
        )


__all__ = [
    "AuthContextFactory",
    "AuthSettings",
    "ChainClient",
    "DEFAULT_NETWORK_NAMES",
    "NetworkInfo",
    "NetworkTable",
    "resolve_network",
]
