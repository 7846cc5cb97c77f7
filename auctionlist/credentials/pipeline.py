"""Per-address pipeline: an ordered sequence of fallible async stages.

Stages share an AddressContext and run strictly in order. A stage failure
stops the pipeline for that address; whether the error is retried is
decided by RetryPolicy and the error's ``retryable`` flag, and what the
batch does afterwards is decided by FailurePolicy in the publisher.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Sequence

import bittensor as bt
from pydantic import BaseModel, Field

from .errors import CredentialError
from .models import (
    AccessControlCondition,
    AuthoritySignature,
    PublicationRecord,
    SealedCredential,
)


@dataclass
class AddressContext:
    """Working state for one address as it moves through the stages."""

    index: int
    address: str
    already_published: bool = False
    commitment: bytes = b""
    signature: AuthoritySignature | None = None
    signature_hex: str = ""
    policy: list[AccessControlCondition] = field(default_factory=list)
    sealed: SealedCredential | None = None
    record: PublicationRecord | None = None
    cid: str = ""
    completed: list[str] = field(default_factory=list)


StageFn = Callable[[AddressContext], Awaitable[None]]


@dataclass(frozen=True)
class Stage:
    name: str
    run: StageFn


class RetryPolicy(BaseModel):
    """Per-stage retry for retryable errors. One attempt means no retry."""

    max_attempts: int = Field(default=1, ge=1)
    base_delay: float = Field(default=1.0, ge=0)
    max_delay: float = Field(default=30.0, ge=0)

    def delay(self, attempt: int) -> float:
        return min(self.max_delay, self.base_delay * (2 ** attempt))


class FailurePolicy(str, Enum):
    """What the batch does with an address that fails unrecoverably."""

    ABORT = "abort"
    SKIP = "skip"


class AddressPipeline:
    """Runs stages in order for one address."""

    def __init__(
        self,
        stages: Sequence[Stage],
        retry: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        names = [s.name for s in stages]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate stage names: {names}")
        self.stages = tuple(stages)
        self.retry = retry or RetryPolicy()
        self._sleep = sleep

    async def run(self, ctx: AddressContext) -> AddressContext:
        for stage in self.stages:
            await self._run_stage(stage, ctx)
            ctx.completed.append(stage.name)
        return ctx

    async def _run_stage(self, stage: Stage, ctx: AddressContext) -> None:
        attempts = self.retry.max_attempts
        for attempt in range(attempts):
            try:
                await stage.run(ctx)
                return
            except CredentialError as e:
                if e.address is None:
                    e.address = ctx.address
                if not e.retryable or attempt == attempts - 1:
                    raise
                wait = self.retry.delay(attempt)
                bt.logging.warning({
                    "address_pipeline": {
                        "event": "retry",
                        "stage": stage.name,
                        "address": ctx.address,
                        "attempt": attempt + 1,
                        "wait": wait,
                        "error": str(e),
                    }
                })
                await self._sleep(wait)


__all__ = [
    "AddressContext",
    "AddressPipeline",
    "FailurePolicy",
    "RetryPolicy",
    "Stage",
]
