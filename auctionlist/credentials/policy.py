"""Access policy: who may unwrap a sealed credential.

Exactly one evmBasic clause requiring the requester's resolved address
(":userAddress") to equal the address the credential was issued to.
"""

from __future__ import annotations

from .errors import MissingNetwork
from .models import AccessControlCondition, ReturnValueTest, ensure_address


def build_access_policy(address: str, network_name: str) -> list[AccessControlCondition]:
    """Single-clause policy bound to ``address`` on ``network_name``."""
    ensure_address(address)
    if not network_name:
        raise MissingNetwork("Network name is required for the access policy", address=address)

    return [
        AccessControlCondition(
            chain=network_name,
            return_value_test=ReturnValueTest(comparator="=", value=address),
        )
    ]


def policy_payload(policy: list[AccessControlCondition]) -> list[dict]:
    """Wire form sent to the encryption network."""
    return [c.model_dump(by_alias=True) for c in policy]


__all__ = ["build_access_policy", "policy_payload"]
