"""Sealed allow-list credentials for permissioned on-chain auctions."""

__version__ = "0.1.0"
