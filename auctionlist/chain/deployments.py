"""Lookup of deployed contract addresses from hardhat-deploy artifacts.

Layout: {deployments_dir}/{network}/{ContractName}.json with an "address" key.
"""

from __future__ import annotations

import json
from pathlib import Path

from auctionlist.credentials.errors import ConfigError
from auctionlist.credentials.models import checksum

ALLOW_LIST_CONTRACT_NAME = "AllowListOffChainManaged"


def load_deployment_address(
    deployments_dir: str | Path,
    network: str,
    contract_name: str = ALLOW_LIST_CONTRACT_NAME,
) -> str:
    path = Path(deployments_dir) / network / f"{contract_name}.json"
    if not path.exists():
        raise ConfigError(f"No deployment of {contract_name} for network {network!r} at {path}")
    try:
        with open(path) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Unreadable deployment artifact {path}: {e}") from e

    address = data.get("address")
    if not address:
        raise ConfigError(f"Deployment artifact {path} has no address")
    return checksum(address)


__all__ = ["ALLOW_LIST_CONTRACT_NAME", "load_deployment_address"]
