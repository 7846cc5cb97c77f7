"""Pydantic models for allow-list credential generation.

Wire shapes (audit files, pinning bodies, access-control conditions, auth
sigs) use camelCase aliases because they are consumed by JavaScript
front-ends and the encryption network. Dump with ``by_alias=True``.
"""

from __future__ import annotations

import base64
from enum import Enum

from eth_abi import encode as abi_encode
from eth_utils import (
    is_address,
    is_checksum_address,
    is_checksum_formatted_address,
    to_checksum_address,
)
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import InvalidAddress


# ---------------------------------------------------------------------------
# Address helpers
# ---------------------------------------------------------------------------


def ensure_address(address: str) -> str:
    """Validate an account address and return it unchanged.

    Accepts all-lowercase, all-uppercase or valid EIP-55 mixed case.
    Raises InvalidAddress otherwise.
    """
    if not isinstance(address, str) or not address.startswith("0x"):
        raise InvalidAddress(f"Malformed address: {address!r}", address=str(address))
    if not is_address(address):
        raise InvalidAddress(f"Malformed address: {address!r}", address=address)
    if is_checksum_formatted_address(address) and not is_checksum_address(address):
        raise InvalidAddress(f"Bad EIP-55 checksum: {address!r}", address=address)
    return address


def checksum(address: str) -> str:
    return to_checksum_address(ensure_address(address))


# ---------------------------------------------------------------------------
# Auction reference
# ---------------------------------------------------------------------------


class AuctionRef(BaseModel):
    """Identifies the auction and the allow-list contract for a run."""

    model_config = ConfigDict(frozen=True)

    auction_id: int = Field(ge=0)
    chain_id: int = Field(ge=0)
    allow_list_contract: str

    @field_validator("allow_list_contract")
    @classmethod
    def _checksum_contract(cls, v: str) -> str:
        return checksum(v)


# ---------------------------------------------------------------------------
# Authority signature
# ---------------------------------------------------------------------------


class SignatureLayout(str, Enum):
    """Byte layout of an encoded authority signature.

    PACKED: 65 bytes, v || r || s.
    ABI: abi.encode(uint8 v, bytes32 r, bytes32 s), 96 bytes, as decoded by
    AllowListOffChainManaged.isAllowedBy.
    """

    PACKED = "packed"
    ABI = "abi"


class AuthoritySignature(BaseModel):
    """Recoverable secp256k1 signature over a commitment."""

    model_config = ConfigDict(frozen=True)

    v: int = Field(ge=0, le=255)
    r: bytes = Field(min_length=32, max_length=32)
    s: bytes = Field(min_length=32, max_length=32)

    def encode(self, layout: SignatureLayout = SignatureLayout.PACKED) -> bytes:
        if layout is SignatureLayout.ABI:
            return abi_encode(["uint8", "bytes32", "bytes32"], [self.v, self.r, self.s])
        return bytes([self.v]) + self.r + self.s

    def to_hex(self, layout: SignatureLayout = SignatureLayout.PACKED) -> str:
        return "0x" + self.encode(layout).hex()


# ---------------------------------------------------------------------------
# Access control
# ---------------------------------------------------------------------------


class ReturnValueTest(BaseModel):
    comparator: str = "="
    value: str


class AccessControlCondition(BaseModel):
    """A single evmBasic access-control clause."""

    model_config = ConfigDict(populate_by_name=True)

    condition_type: str = Field(default="evmBasic", alias="conditionType")
    contract_address: str = Field(default="", alias="contractAddress")
    standard_contract_type: str = Field(default="", alias="standardContractType")
    chain: str
    method: str = ""
    parameters: list[str] = Field(default_factory=lambda: [":userAddress"])
    return_value_test: ReturnValueTest = Field(alias="returnValueTest")

    @property
    def expected_value(self) -> str:
        return self.return_value_test.value


class AuthSig(BaseModel):
    """Self-signed bearer assertion for the authority identity."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    sig: str
    derived_via: str = Field(default="web3.eth.personal.sign", alias="derivedVia")
    signed_message: str = Field(alias="signedMessage")
    address: str


# ---------------------------------------------------------------------------
# Sealed credential + publication
# ---------------------------------------------------------------------------


class SealedCredential(BaseModel):
    """Signature ciphertext plus the policy-bound wrapped key."""

    model_config = ConfigDict(frozen=True)

    ciphertext: bytes
    wrapped_key: bytes


class PublicationRecord(BaseModel):
    """Per-address record sent to the pinning service."""

    chain_id: int
    auction_id: int
    address: str
    encrypted_string: str
    encrypted_symmetric_key: str

    @classmethod
    def from_sealed(
        cls, auction: AuctionRef, address: str, sealed: SealedCredential,
    ) -> PublicationRecord:
        return cls(
            chain_id=auction.chain_id,
            auction_id=auction.auction_id,
            address=address,
            encrypted_string=base64.b64encode(sealed.ciphertext).decode("ascii"),
            encrypted_symmetric_key=sealed.wrapped_key.hex(),
        )

    @property
    def name(self) -> str:
        return f"{self.chain_id}-{self.auction_id}-{self.address}"

    def to_pinata_body(self) -> dict:
        return {
            "pinataOptions": {"cidVersion": 1},
            "pinataMetadata": {
                "name": self.name,
                "keyvalues": {
                    "address": self.address,
                    "auctionId": self.auction_id,
                },
            },
            "pinataContent": {
                "encryptedString": self.encrypted_string,
                "encryptedSymmetricKey": self.encrypted_symmetric_key,
            },
        }


# ---------------------------------------------------------------------------
# Local audit state
# ---------------------------------------------------------------------------


class SignatureEntry(BaseModel):
    user: str
    signature: str


class ChunkAuditFile(BaseModel):
    """Plaintext signatures for one chunk, persisted locally."""

    model_config = ConfigDict(populate_by_name=True)

    auction_id: int = Field(alias="auctionId")
    chain_id: int = Field(alias="chainId")
    allow_list_contract: str = Field(alias="allowListContract")
    signatures: list[SignatureEntry] = Field(default_factory=list)

    @classmethod
    def for_auction(cls, auction: AuctionRef) -> ChunkAuditFile:
        return cls(
            auction_id=auction.auction_id,
            chain_id=auction.chain_id,
            allow_list_contract=auction.allow_list_contract,
        )

    @property
    def users(self) -> list[str]:
        return [s.user for s in self.signatures]


class PublishedEntry(BaseModel):
    """An upload the pinning service acknowledged."""

    address: str
    cid: str = ""


__all__ = [
    "AccessControlCondition",
    "AuctionRef",
    "AuthSig",
    "AuthoritySignature",
    "ChunkAuditFile",
    "PublicationRecord",
    "PublishedEntry",
    "ReturnValueTest",
    "SealedCredential",
    "SignatureEntry",
    "SignatureLayout",
    "checksum",
    "ensure_address",
]
