"""Error taxonomy for credential generation.

Every failure the batch can hit maps to one of these. Transport layers
translate library exceptions (httpx, eth_account, OSError) into this
hierarchy so the publisher and CLI only ever handle CredentialError.
"""

from __future__ import annotations


class CredentialError(Exception):
    """Base class for all credential generation failures."""

    retryable: bool = False

    def __init__(self, message: str, *, address: str | None = None):
        super().__init__(message)
        self.address = address


class InvalidAddress(CredentialError):
    """Address string is not a well-formed account identifier."""


class MissingNetwork(CredentialError):
    """Chain id or network name could not be resolved."""


class SigningUnavailable(CredentialError):
    """External signer could not be reached or refused to sign."""


class SignatureEncodingError(CredentialError):
    """Returned signature does not decompose into valid (v, r, s)."""


class PolicyRejected(CredentialError):
    """Encryption network refused the access policy shape."""


class EncryptionNetworkError(CredentialError):
    """Key wrapping request to the encryption network failed."""

    retryable = True


class UploadFailed(CredentialError):
    """Pinning service did not acknowledge the upload."""

    retryable = True


class FileSystemError(CredentialError):
    """Local audit state could not be read or written."""


class ApiPublishError(CredentialError):
    """Signature API rejected a chunk audit file."""


class ConfigError(CredentialError):
    """Run configuration is missing or malformed."""


__all__ = [
    "ApiPublishError",
    "ConfigError",
    "CredentialError",
    "EncryptionNetworkError",
    "FileSystemError",
    "InvalidAddress",
    "MissingNetwork",
    "PolicyRejected",
    "SignatureEncodingError",
    "SigningUnavailable",
    "UploadFailed",
]
