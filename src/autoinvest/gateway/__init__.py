"""Client Portal gateway access."""

from autoinvest.gateway.client import AuthStatus, GatewayClient
from autoinvest.gateway.health import wait_for_gateway

__all__ = ["AuthStatus", "GatewayClient", "wait_for_gateway"]
