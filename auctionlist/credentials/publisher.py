"""Batch publisher: drives credential generation chunk by chunk.

States: IDLE -> READING_INPUT -> (PROCESSING_CHUNK -> PROCESSING_ADDRESS* ->
WRITING_AUDIT)* -> DONE, or FAILED on an unrecovered error.

Execution is strictly sequential: one address at a time, one network call
in flight. An address's audit entry is appended only after its upload is
acknowledged, and a chunk's audit file is written only after every address
in it finished. Under FailurePolicy.ABORT a failing address leaves its chunk
without an audit file; files of earlier chunks remain on disk.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable

import bittensor as bt

from .commitment import build_commitment
from .errors import CredentialError, FileSystemError
from .models import (
    AuctionRef,
    AuthSig,
    ChunkAuditFile,
    PublicationRecord,
    SignatureEntry,
    SignatureLayout,
)
from .pipeline import AddressContext, AddressPipeline, FailurePolicy, RetryPolicy, Stage
from .policy import build_access_policy
from .sealer import CredentialSealer
from .signer import AuthoritySigner
from .store.filesystem import PublicationJournal
from .store.interface import AuditStore, PinningService, SignatureApi

DEFAULT_CHUNK_SIZE = 10


class PublisherState(str, Enum):
    IDLE = "idle"
    READING_INPUT = "reading_input"
    PROCESSING_CHUNK = "processing_chunk"
    PROCESSING_ADDRESS = "processing_address"
    WRITING_AUDIT = "writing_audit"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RunReport:
    """Outcome of a batch run."""

    chunks_written: list[int] = field(default_factory=list)
    audit_paths: list[Path] = field(default_factory=list)
    addresses_processed: int = 0
    resumed: list[str] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)


def read_addresses(path: str | Path) -> list[str]:
    """Comma-separated addresses, each trimmed; empty entries dropped."""
    try:
        with open(path, encoding="utf-8") as f:
            raw = f.read()
    except OSError as e:
        raise FileSystemError(f"Cannot read address file {path}: {e}") from e
    return [a.strip() for a in raw.split(",") if a.strip()]


def chunk_addresses(addresses: list[str], chunk_size: int = DEFAULT_CHUNK_SIZE) -> list[list[str]]:
    """Consecutive chunks of at most ``chunk_size``; the last may be shorter."""
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
    n_chunks = -(-len(addresses) // chunk_size)
    return [
        addresses[i * chunk_size:(i + 1) * chunk_size]
        for i in range(n_chunks)
    ]


class BatchPublisher:
    """Signs, seals, uploads and audits an address list for one auction."""

    def __init__(
        self,
        *,
        auction: AuctionRef,
        network_name: str,
        authority: AuthoritySigner,
        sealer: CredentialSealer,
        pinning: PinningService,
        audit_store: AuditStore,
        auth_sig: AuthSig,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        layout: SignatureLayout = SignatureLayout.PACKED,
        retry: RetryPolicy | None = None,
        failure_policy: FailurePolicy = FailurePolicy.ABORT,
        journal: PublicationJournal | None = None,
        resume: bool = False,
        api: SignatureApi | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
        self.auction = auction
        self.network_name = network_name
        self.authority = authority
        self.sealer = sealer
        self.pinning = pinning
        self.audit_store = audit_store
        self.auth_sig = auth_sig
        self.chunk_size = chunk_size
        self.layout = layout
        self.failure_policy = failure_policy
        self.journal = journal
        self.resume = resume
        self.api = api
        self.pipeline = AddressPipeline(self.build_stages(), retry=retry, sleep=sleep)
        self._state = PublisherState.IDLE

    # -- State --

    @property
    def state(self) -> PublisherState:
        return self._state

    def _transition(self, state: PublisherState) -> None:
        bt.logging.debug({"batch_publisher": {"event": "state", "from": self._state.value, "to": state.value}})
        self._state = state

    # -- Stages --

    def build_stages(self) -> list[Stage]:
        return [
            Stage("commit", self._commit),
            Stage("sign", self._sign),
            Stage("policy", self._policy),
            Stage("seal", self._seal),
            Stage("upload", self._upload),
        ]

    async def _commit(self, ctx: AddressContext) -> None:
        ctx.commitment = build_commitment(self.auction, ctx.address)

    async def _sign(self, ctx: AddressContext) -> None:
        ctx.signature = await self.authority.sign(ctx.commitment)
        ctx.signature_hex = ctx.signature.to_hex(self.layout)

    async def _policy(self, ctx: AddressContext) -> None:
        ctx.policy = build_access_policy(ctx.address, self.network_name)

    async def _seal(self, ctx: AddressContext) -> None:
        if ctx.already_published:
            return
        ctx.sealed = await self.sealer.seal(
            ctx.signature_hex, ctx.policy, self.auth_sig, self.network_name,
        )
        ctx.record = PublicationRecord.from_sealed(self.auction, ctx.address, ctx.sealed)

    async def _upload(self, ctx: AddressContext) -> None:
        if ctx.already_published:
            return
        ctx.cid = await self.pinning.pin_json(ctx.record)
        if self.journal is not None:
            self.journal.record(ctx.address, ctx.cid)

    def _is_published(self, address: str) -> bool:
        return self.resume and self.journal is not None and address in self.journal

    # -- Run --

    async def run_file(self, path: str | Path) -> RunReport:
        self._transition(PublisherState.READING_INPUT)
        try:
            addresses = read_addresses(path)
        except CredentialError:
            self._transition(PublisherState.FAILED)
            raise
        return await self.run(addresses)

    async def run(self, addresses: list[str]) -> RunReport:
        report = RunReport()
        chunks = chunk_addresses(addresses, self.chunk_size)
        bt.logging.info({
            "batch_publisher": {
                "event": "start",
                "auction_id": self.auction.auction_id,
                "chain_id": self.auction.chain_id,
                "addresses": len(addresses),
                "chunks": len(chunks),
            }
        })

        for index, chunk in enumerate(chunks):
            bt.logging.info({"batch_publisher": {"event": "chunk_start", "chunk": index, "size": len(chunk)}})
            try:
                audit = await self.process_chunk(index, chunk, report)
            except CredentialError as e:
                self._transition(PublisherState.FAILED)
                bt.logging.error({
                    "batch_publisher": {
                        "event": "aborted",
                        "chunk": index,
                        "address": e.address,
                        "error_type": type(e).__name__,
                        "error": str(e),
                    }
                })
                raise

            self._transition(PublisherState.WRITING_AUDIT)
            try:
                path = self.audit_store.write_chunk(index, audit)
                if self.api is not None:
                    await self.api.post_chunk(audit)
            except CredentialError:
                self._transition(PublisherState.FAILED)
                raise
            report.chunks_written.append(index)
            report.audit_paths.append(path)
            bt.logging.info({"batch_publisher": {"event": "chunk_done", "chunk": index, "path": str(path)}})

        self._transition(PublisherState.DONE)
        bt.logging.info({
            "batch_publisher": {
                "event": "done",
                "chunks": len(report.chunks_written),
                "processed": report.addresses_processed,
                "resumed": len(report.resumed),
                "failed": len(report.failed),
            }
        })
        return report

    async def process_chunk(self, index: int, chunk: list[str], report: RunReport) -> ChunkAuditFile:
        """Run every address of a chunk; returns the chunk's audit record."""
        self._transition(PublisherState.PROCESSING_CHUNK)
        audit = ChunkAuditFile.for_auction(self.auction)
        offset = index * self.chunk_size

        for i, address in enumerate(chunk):
            self._transition(PublisherState.PROCESSING_ADDRESS)
            ctx = AddressContext(
                index=offset + i,
                address=address,
                already_published=self._is_published(address),
            )
            try:
                await self.pipeline.run(ctx)
            except CredentialError as e:
                if self.failure_policy is FailurePolicy.ABORT:
                    raise
                report.failed.append((address, f"{type(e).__name__}: {e}"))
                bt.logging.warning({
                    "batch_publisher": {
                        "event": "address_skipped",
                        "chunk": index,
                        "address": address,
                        "error_type": type(e).__name__,
                        "error": str(e),
                    }
                })
                continue

            if ctx.already_published:
                report.resumed.append(address)
            report.addresses_processed += 1
            audit.signatures.append(SignatureEntry(user=address, signature=ctx.signature_hex))
            bt.logging.debug({"batch_publisher": {"event": "address_done", "index": ctx.index, "address": address}})

        return audit


__all__ = [
    "BatchPublisher",
    "DEFAULT_CHUNK_SIZE",
    "PublisherState",
    "RunReport",
    "chunk_addresses",
    "read_addresses",
]
