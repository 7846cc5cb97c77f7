"""Domain-separated commitments over (allow-list contract, address, auction).

Mirrors AllowListOffChainManaged:
  DOMAIN_SEPARATOR = keccak256(abi.encode(EIP712Domain typehash,
      keccak256("AccessManager"), keccak256("v1"), chainId, address(this)))
  hash = keccak256(abi.encode(DOMAIN_SEPARATOR, allowee, auctionId))
"""

from __future__ import annotations

from eth_abi import encode as abi_encode
from eth_utils import keccak

from .errors import MissingNetwork
from .models import AuctionRef, checksum

DOMAIN_NAME = "AccessManager"
DOMAIN_VERSION = "v1"
DOMAIN_TYPE_HASH = keccak(
    text="EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"
)


def domain_separator(
    chain_id: int | None,
    verifying_contract: str,
    name: str = DOMAIN_NAME,
    version: str = DOMAIN_VERSION,
) -> bytes:
    """EIP-712 domain hash for the allow-list contract on a chain."""
    if chain_id is None:
        raise MissingNetwork("Chain id is required to build the contract domain")
    return keccak(abi_encode(
        ["bytes32", "bytes32", "bytes32", "uint256", "address"],
        [
            DOMAIN_TYPE_HASH,
            keccak(text=name),
            keccak(text=version),
            chain_id,
            checksum(verifying_contract),
        ],
    ))


def build_commitment(auction: AuctionRef, address: str) -> bytes:
    """32-byte commitment binding ``address`` to the auction."""
    user = checksum(address)
    domain = domain_separator(auction.chain_id, auction.allow_list_contract)
    return keccak(abi_encode(
        ["bytes32", "address", "uint256"],
        [domain, user, auction.auction_id],
    ))


__all__ = [
    "DOMAIN_NAME",
    "DOMAIN_TYPE_HASH",
    "DOMAIN_VERSION",
    "build_commitment",
    "domain_separator",
]
