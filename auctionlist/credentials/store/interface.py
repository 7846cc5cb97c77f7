"""Pluggable destinations for credentials and audit records."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from auctionlist.credentials.models import ChunkAuditFile, PublicationRecord


@runtime_checkable
class PinningService(Protocol):
    """Content-addressed storage for sealed credentials."""

    async def pin_json(self, record: PublicationRecord) -> str:
        """Upload one record. Returns its content id (may be empty)."""
        ...


@runtime_checkable
class AuditStore(Protocol):
    """Local persistence of per-chunk plaintext audit files."""

    def write_chunk(self, index: int, audit: ChunkAuditFile) -> Path:
        ...


@runtime_checkable
class SignatureApi(Protocol):
    """Optional API that receives each chunk's signatures."""

    async def post_chunk(self, audit: ChunkAuditFile) -> None:
        ...


__all__ = ["AuditStore", "PinningService", "SignatureApi"]
