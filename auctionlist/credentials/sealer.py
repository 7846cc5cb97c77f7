"""Credential sealing: local symmetric encryption + policy-bound key wrap.

The ciphertext layout matches the encryptString blob used by access-control
network clients: a 16-byte IV followed by AES-256-CBC ciphertext with PKCS7
padding. The plaintext is the hex-encoded authority signature as UTF-8.
"""

from __future__ import annotations

import os
from typing import Any, Protocol, runtime_checkable

import bittensor as bt
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .errors import CredentialError, EncryptionNetworkError
from .models import AccessControlCondition, AuthSig, SealedCredential
from .policy import policy_payload

KEY_SIZE = 32
IV_SIZE = 16


@runtime_checkable
class EncryptionNetwork(Protocol):
    """Access-control network that binds symmetric keys to a policy."""

    async def connect(self) -> None:
        ...

    async def save_encryption_key(
        self,
        access_control_conditions: list[dict[str, Any]],
        symmetric_key: bytes,
        auth_sig: AuthSig,
        chain: str,
    ) -> bytes:
        """Return the wrapped key handle for ``symmetric_key``."""
        ...

    async def close(self) -> None:
        ...


def encrypt_string(text: str, key: bytes | None = None) -> tuple[bytes, bytes]:
    """Encrypt ``text`` under a fresh one-time key.

    Returns:
        (iv || ciphertext, key)
    """
    if key is None:
        key = os.urandom(KEY_SIZE)
    iv = os.urandom(IV_SIZE)

    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(text.encode("utf-8")) + padder.finalize()

    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    body = encryptor.update(padded) + encryptor.finalize()
    return iv + body, key


def decrypt_string(blob: bytes, key: bytes) -> str:
    """Inverse of encrypt_string."""
    iv, body = blob[:IV_SIZE], blob[IV_SIZE:]
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(body) + decryptor.finalize()

    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    return (unpadder.update(padded) + unpadder.finalize()).decode("utf-8")


class CredentialSealer:
    """Encrypts signatures so only the policy holder can read them."""

    def __init__(self, network: EncryptionNetwork):
        self.network = network

    async def seal(
        self,
        signature_hex: str,
        policy: list[AccessControlCondition],
        auth_sig: AuthSig,
        chain: str,
    ) -> SealedCredential:
        ciphertext, key = encrypt_string(signature_hex)

        try:
            wrapped = await self.network.save_encryption_key(
                access_control_conditions=policy_payload(policy),
                symmetric_key=key,
                auth_sig=auth_sig,
                chain=chain,
            )
        except CredentialError:
            raise
        except Exception as e:
            bt.logging.warning({"credential_sealer": {"event": "wrap_failed", "error": str(e)}})
            raise EncryptionNetworkError(f"Key wrapping failed: {e}") from e

        if not wrapped:
            raise EncryptionNetworkError("Encryption network returned an empty key handle")

        return SealedCredential(ciphertext=ciphertext, wrapped_key=bytes(wrapped))


__all__ = [
    "CredentialSealer",
    "EncryptionNetwork",
    "decrypt_string",
    "encrypt_string",
]
