"""Allow-list credential generation for permissioned auctions.

Per address: commitment -> authority signature -> access policy ->
sealed credential -> pinning upload -> chunk audit record.
"""

from .commitment import build_commitment, domain_separator
from .errors import (
    ApiPublishError,
    ConfigError,
    CredentialError,
    EncryptionNetworkError,
    FileSystemError,
    InvalidAddress,
    MissingNetwork,
    PolicyRejected,
    SignatureEncodingError,
    SigningUnavailable,
    UploadFailed,
)
from .identity import AuthContextFactory, AuthSettings, NetworkInfo, NetworkTable, resolve_network
from .models import (
    AccessControlCondition,
    AuctionRef,
    AuthSig,
    AuthoritySignature,
    ChunkAuditFile,
    PublicationRecord,
    SealedCredential,
    SignatureEntry,
    SignatureLayout,
)
from .pipeline import AddressPipeline, FailurePolicy, RetryPolicy, Stage
from .policy import build_access_policy
from .publisher import BatchPublisher, PublisherState, RunReport, chunk_addresses, read_addresses
from .sealer import CredentialSealer, decrypt_string, encrypt_string
from .signer import AuthoritySigner, split_signature

__all__ = [
    "AccessControlCondition",
    "AddressPipeline",
    "ApiPublishError",
    "AuctionRef",
    "AuthContextFactory",
    "AuthSettings",
    "AuthSig",
    "AuthoritySignature",
    "AuthoritySigner",
    "BatchPublisher",
    "ChunkAuditFile",
    "ConfigError",
    "CredentialError",
    "CredentialSealer",
    "EncryptionNetworkError",
    "FailurePolicy",
    "FileSystemError",
    "InvalidAddress",
    "MissingNetwork",
    "NetworkInfo",
    "NetworkTable",
    "PolicyRejected",
    "PublicationRecord",
    "PublisherState",
    "RetryPolicy",
    "RunReport",
    "SealedCredential",
    "SignatureEncodingError",
    "SignatureEntry",
    "SignatureLayout",
    "SigningUnavailable",
    "Stage",
    "UploadFailed",
    "build_access_policy",
    "build_commitment",
    "chunk_addresses",
    "decrypt_string",
    "domain_separator",
    "encrypt_string",
    "read_addresses",
    "resolve_network",
    "split_signature",
]
