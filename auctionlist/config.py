"""Typed configuration for a credential generation run.

Sources, lowest to highest priority: model defaults, CLI flags, environment.
Environment variables use the AUCTIONLIST_ prefix with ``__`` between the
section and the field, e.g. AUCTIONLIST_PINATA__JWT or
AUCTIONLIST_CHAIN__RPC_URL. Everything is validated before any network
call is made; failures raise ConfigError.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Literal, Mapping

from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator, model_validator

from auctionlist.credentials.errors import ConfigError, InvalidAddress
from auctionlist.credentials.identity import AuthSettings, NetworkTable
from auctionlist.credentials.models import SignatureLayout, checksum
from auctionlist.credentials.pipeline import FailurePolicy, RetryPolicy
from auctionlist.credentials.publisher import DEFAULT_CHUNK_SIZE
from auctionlist.credentials.store.pinata import PINATA_PIN_JSON_URL

ENV_PREFIX = "AUCTIONLIST_"


class GenerateArgs(BaseModel):
    """The task's own arguments."""

    auction_id: int = Field(ge=0)
    file_with_address: Path
    post_to_api: bool = False
    post_to_dev_api: bool = False

    @field_validator("file_with_address")
    @classmethod
    def _file_exists(cls, v: Path) -> Path:
        if not v.is_file():
            raise ValueError(f"address file not found: {v}")
        return v

    @model_validator(mode="after")
    def _one_destination(self) -> GenerateArgs:
        if self.post_to_api and self.post_to_dev_api:
            raise ValueError("post_to_api and post_to_dev_api are mutually exclusive")
        return self


class ChainSettings(BaseModel):
    rpc_url: str = "http://127.0.0.1:8545"
    network_label: str = "unknown"
    signer: Literal["local", "rpc"] = "local"
    private_key: SecretStr | None = None
    authority_address: str | None = None
    allow_list_contract: str | None = None
    deployments_dir: str = "deployments"
    timeout: float = 30.0

    @field_validator("allow_list_contract", "authority_address")
    @classmethod
    def _checksummed(cls, v: str | None) -> str | None:
        return checksum(v) if v else v

    @model_validator(mode="after")
    def _signer_material(self) -> ChainSettings:
        if self.signer == "local" and self.private_key is None:
            raise ValueError("local signer requires AUCTIONLIST_CHAIN__PRIVATE_KEY")
        if self.signer == "rpc" and not self.authority_address:
            raise ValueError("rpc signer requires an authority address")
        return self


class PinataSettings(BaseModel):
    jwt: SecretStr
    url: str = PINATA_PIN_JSON_URL
    timeout: float = 30.0

    @field_validator("jwt")
    @classmethod
    def _non_empty(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value():
            raise ValueError("Pinata JWT must not be empty")
        return v


class LitSettings(BaseModel):
    gateway_url: str
    timeout: float = 60.0


class ApiSettings(BaseModel):
    url: str | None = None
    dev_url: str | None = None
    token: SecretStr | None = None
    timeout: float = 30.0


class RunSettings(BaseModel):
    output_dir: str = "signatures"
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, ge=1)
    signature_layout: SignatureLayout = SignatureLayout.PACKED
    failure_policy: FailurePolicy = FailurePolicy.ABORT
    resume: bool = False
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    networks: NetworkTable = Field(default_factory=NetworkTable)
    auth: AuthSettings = Field(default_factory=AuthSettings)


class GenerateConfig(BaseModel):
    args: GenerateArgs
    run: RunSettings = Field(default_factory=RunSettings)
    chain: ChainSettings
    pinata: PinataSettings
    lit: LitSettings
    api: ApiSettings = Field(default_factory=ApiSettings)

    @model_validator(mode="after")
    def _api_destination(self) -> GenerateConfig:
        if self.args.post_to_api and not self.api.url:
            raise ValueError("post_to_api requires AUCTIONLIST_API__URL")
        if self.args.post_to_dev_api and not self.api.dev_url:
            raise ValueError("post_to_dev_api requires AUCTIONLIST_API__DEV_URL")
        return self

    @property
    def api_url(self) -> str | None:
        if self.args.post_to_api:
            return self.api.url
        if self.args.post_to_dev_api:
            return self.api.dev_url
        return None


def _parse_env_value(raw: str) -> Any:
    """JSON values (objects, numbers, booleans) pass through; anything else is a string."""
    if raw[:1] in ("{", "[") or raw in ("true", "false"):
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return raw
    return raw


def env_sections(environ: Mapping[str, str] | None = None) -> dict[str, dict[str, Any]]:
    """Group AUCTIONLIST_<SECTION>__<FIELD> variables by section."""
    environ = os.environ if environ is None else environ
    sections: dict[str, dict[str, Any]] = {}
    for key, value in environ.items():
        if not key.startswith(ENV_PREFIX) or "__" not in key:
            continue
        section, _, name = key[len(ENV_PREFIX):].partition("__")
        if not section or not name:
            continue
        sections.setdefault(section.lower(), {})[name.lower()] = _parse_env_value(value)
    return sections


def _merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for k, v in override.items():
        if isinstance(v, Mapping):
            existing = merged.get(k)
            merged[k] = _merge(dict(existing) if isinstance(existing, Mapping) else {}, v)
        elif v is not None:
            merged[k] = v
    return merged


def load_config(
    cli: Mapping[str, Any],
    environ: Mapping[str, str] | None = None,
) -> GenerateConfig:
    """Build a validated GenerateConfig from CLI values and the environment.

    Args:
        cli: Nested dict shaped like GenerateConfig (None values are ignored).
        environ: Environment mapping; defaults to os.environ.
    """
    data = _merge({}, cli)
    data = _merge(data, env_sections(environ))
    try:
        return GenerateConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
    except InvalidAddress as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


__all__ = [
    "ApiSettings",
    "ChainSettings",
    "ENV_PREFIX",
    "GenerateArgs",
    "GenerateConfig",
    "LitSettings",
    "PinataSettings",
    "RunSettings",
    "env_sections",
    "load_config",
]
