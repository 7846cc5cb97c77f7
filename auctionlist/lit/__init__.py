"""Access-control encryption network client."""

from .client import LitGatewayClient

__all__ = ["LitGatewayClient"]
