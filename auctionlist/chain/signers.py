"""MessageSigner implementations.

LocalAccountSigner keeps an eth_account key inside the signer object;
RPCSigner delegates to a node or remote signer that holds the key and
exposes ``personal_sign``. Neither hands key material to callers.
"""

from __future__ import annotations

from eth_account import Account
from eth_account.messages import encode_defunct

from auctionlist.credentials.errors import SigningUnavailable

from .client import JSONRPCError, JSONRPCTransport


class LocalAccountSigner:
    """Signs with a private key loaded into this process."""

    def __init__(self, private_key: str | bytes):
        self._account = Account.from_key(private_key)
        self.address = self._account.address

    async def sign_message(self, message: bytes) -> bytes:
        signed = self._account.sign_message(encode_defunct(primitive=message))
        return bytes(signed.signature)

    def __repr__(self) -> str:
        return f"LocalAccountSigner(address={self.address})"


class RPCSigner:
    """Signs through ``personal_sign`` on an unlocked remote account."""

    def __init__(self, transport: JSONRPCTransport, address: str):
        self.transport = transport
        self.address = address

    async def sign_message(self, message: bytes) -> bytes:
        try:
            result = await self.transport.call("personal_sign", ["0x" + message.hex(), self.address])
        except JSONRPCError as e:
            raise SigningUnavailable(f"Remote signer refused: {e}") from e
        if not isinstance(result, str):
            raise SigningUnavailable("Remote signer returned no signature")
        return bytes.fromhex(result.removeprefix("0x"))


__all__ = ["LocalAccountSigner", "RPCSigner"]
