"""Authenticated, cancellable access to the datasource gateway."""
from dsquery.gateway.auth import GatewayAuthTransport, apply_credentials
from dsquery.gateway.client import JSON_HEADERS, open_gateway_client, send_cancellable
from dsquery.gateway.context import GatewayContext, GatewayCredentials

__all__ = [
    "GatewayAuthTransport",
    "apply_credentials",
    "JSON_HEADERS",
    "open_gateway_client",
    "send_cancellable",
    "GatewayContext",
    "GatewayCredentials",
]
