"""Filesystem-backed audit files and publication journal.

Layout under {base_dir} (default ./signatures):
  signatures-{chunk_index}.json        one ChunkAuditFile per completed chunk
  published-{chain_id}-{auction_id}.json  addresses the pinning service acknowledged

Files are written atomically (tmp + rename), so a reader never sees a
partially written chunk. Re-running overwrites same-indexed files; treat the
directory as per-run scratch output.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

import bittensor as bt

from auctionlist.credentials.errors import FileSystemError
from auctionlist.credentials.models import AuctionRef, ChunkAuditFile, PublishedEntry

DEFAULT_DIR = "signatures"


def _write_json_atomic(path: Path, data: Any) -> None:
    """Write JSON to ``path`` via a temp file in the same directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
    try:
        with os.fdopen(tmp_fd, "w", encoding="utf-8") as f:
            json.dump(data, f)
        os.replace(tmp_path, str(path))
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def _read_json(path: Path) -> Any:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


class AuditFileStore:
    """Writes chunk audit files into a local directory."""

    def __init__(self, base_dir: str | Path = DEFAULT_DIR):
        self.base = Path(base_dir)
        try:
            self.base.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileSystemError(f"Cannot create {self.base}: {e}") from e

    def path_for(self, index: int) -> Path:
        return self.base / f"signatures-{index}.json"

    def write_chunk(self, index: int, audit: ChunkAuditFile) -> Path:
        path = self.path_for(index)
        try:
            _write_json_atomic(path, audit.model_dump(mode="json", by_alias=True))
        except OSError as e:
            raise FileSystemError(f"Cannot write {path}: {e}") from e
        bt.logging.debug({"audit_store": {"event": "chunk_written", "path": str(path), "n": len(audit.signatures)}})
        return path


class PublicationJournal:
    """Addresses whose sealed credential was already accepted for an auction.

    Used for idempotent re-entry: a resumed run skips sealing and uploading
    for journaled addresses. Keys are lowercased addresses.
    """

    def __init__(self, base_dir: str | Path, auction: AuctionRef):
        self.path = Path(base_dir) / f"published-{auction.chain_id}-{auction.auction_id}.json"
        self._entries: dict[str, PublishedEntry] = {}
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            data = _read_json(self.path)
        except (OSError, json.JSONDecodeError) as e:
            raise FileSystemError(f"Corrupt publication journal {self.path}: {e}") from e
        for item in data.get("published", []):
            entry = PublishedEntry(**item)
            self._entries[entry.address.lower()] = entry
        bt.logging.info({"publication_journal": {"event": "loaded", "entries": len(self._entries)}})

    def __contains__(self, address: str) -> bool:
        return address.lower() in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, address: str) -> PublishedEntry | None:
        return self._entries.get(address.lower())

    def record(self, address: str, cid: str = "") -> None:
        self._entries[address.lower()] = PublishedEntry(address=address, cid=cid)
        try:
            _write_json_atomic(self.path, {
                "published": [e.model_dump() for e in self._entries.values()],
            })
        except OSError as e:
            raise FileSystemError(f"Cannot write {self.path}: {e}") from e


__all__ = ["AuditFileStore", "DEFAULT_DIR", "PublicationJournal"]
