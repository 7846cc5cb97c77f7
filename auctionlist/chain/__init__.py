"""Blockchain collaborators: network identity, signers, deployments."""

from auctionlist.credentials.identity import ChainClient, NetworkInfo

from .client import JSONRPCChainClient, JSONRPCTransport
from .deployments import load_deployment_address
from .signers import LocalAccountSigner, RPCSigner

__all__ = [
    "ChainClient",
    "JSONRPCChainClient",
    "JSONRPCTransport",
    "LocalAccountSigner",
    "NetworkInfo",
    "RPCSigner",
    "load_deployment_address",
]
