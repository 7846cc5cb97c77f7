"""Authority signing of commitments.

The authority key never enters this module. Signing is delegated to a
MessageSigner, which applies EIP-191 personal-message framing to the raw
bytes it is given (the ethers ``signMessage(arrayify(digest))`` contract).
The on-chain verifier recovers against
keccak256("\\x19Ethereum Signed Message:\\n32" || commitment).
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import bittensor as bt

from .errors import CredentialError, SignatureEncodingError, SigningUnavailable
from .models import AuthoritySignature

SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


@runtime_checkable
class MessageSigner(Protocol):
    """External signing identity."""

    address: str

    async def sign_message(self, message: bytes) -> bytes:
        """Sign ``message`` with personal-message framing.

        Returns the 65-byte r || s || v signature.
        """
        ...


def split_signature(raw: bytes) -> AuthoritySignature:
    """Decompose a 65-byte r || s || v signature.

    v in {0, 1} is normalized to {27, 28}. Anything that cannot be a valid
    recoverable signature raises SignatureEncodingError.
    """
    if len(raw) != 65:
        raise SignatureEncodingError(f"Expected 65 signature bytes, got {len(raw)}")

    r, s, v = raw[:32], raw[32:64], raw[64]
    if v in (0, 1):
        v += 27
    if v not in (27, 28):
        raise SignatureEncodingError(f"Invalid recovery id v={v}")

    r_int = int.from_bytes(r, "big")
    s_int = int.from_bytes(s, "big")
    if not 0 < r_int < SECP256K1_N or not 0 < s_int < SECP256K1_N:
        raise SignatureEncodingError("Signature r/s out of range")

    return AuthoritySignature(v=v, r=r, s=s)


class AuthoritySigner:
    """Signs commitments as the allow-list authority."""

    def __init__(self, signer: MessageSigner):
        self.signer = signer

    @property
    def address(self) -> str:
        return self.signer.address

    async def sign_bytes(self, message: bytes) -> bytes:
        """Raw signature over ``message``; errors mapped to SigningUnavailable."""
        try:
            raw = await self.signer.sign_message(message)
        except CredentialError:
            raise
        except Exception as e:
            bt.logging.warning({"authority_signer": {"event": "sign_failed", "error": str(e)}})
            raise SigningUnavailable(f"Signer unavailable: {e}") from e

        if isinstance(raw, str):
            try:
                raw = bytes.fromhex(raw.removeprefix("0x"))
            except ValueError as e:
                raise SignatureEncodingError("Signer returned non-hex signature") from e
        return bytes(raw)

    async def sign(self, commitment: bytes) -> AuthoritySignature:
        """Sign the 32 commitment bytes themselves, not their hex text."""
        if len(commitment) != 32:
            raise SignatureEncodingError(f"Commitment must be 32 bytes, got {len(commitment)}")
        raw = await self.sign_bytes(commitment)
        return split_signature(raw)


__all__ = ["AuthoritySigner", "MessageSigner", "split_signature"]
