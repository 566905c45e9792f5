from __future__ import annotations

from typing import Optional

import httpx

from dsquery.common.logger import get_logger
from dsquery.gateway.context import GatewayCredentials

logger = get_logger(__name__)

ACCESS_TOKEN_HEADER = "X-Access-Token"
ID_TOKEN_HEADER = "X-Grafana-Id"
AUTHORIZATION_HEADER = "Authorization"


def apply_credentials(request: httpx.Request, credentials: GatewayCredentials) -> str:
    """Sets exactly one authentication scheme on ``request``.

    Returns:
        str: The scheme applied: ``"on_behalf_of"``, ``"api_key"`` or ``"none"``.
    """
    if credentials.has_on_behalf_of:
        request.headers[ACCESS_TOKEN_HEADER] = credentials.access_token_value
        request.headers[ID_TOKEN_HEADER] = credentials.id_token_value
        return "on_behalf_of"
    if credentials.api_key_value:
        request.headers[AUTHORIZATION_HEADER] = f"Bearer {credentials.api_key_value}"
        return "api_key"
    return "none"


class GatewayAuthTransport(httpx.AsyncBaseTransport):
    """Async transport that injects gateway credentials before delegating.

    Only headers are touched; the destination and body pass through as-is and
    errors raised by the underlying transport propagate unchanged.
    """

    def __init__(
        self,
        credentials: GatewayCredentials,
        underlying: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._credentials = credentials
        self._owns_underlying = underlying is None
        self._underlying = underlying or httpx.AsyncHTTPTransport()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        scheme = apply_credentials(request, self._credentials)
        logger.debug(f"Sending {request.method} {request.url.path} with auth scheme '{scheme}'")
        return await self._underlying.handle_async_request(request)

    async def aclose(self) -> None:
        # A caller-supplied transport may be shared with other calls.
        if self._owns_underlying:
            await self._underlying.aclose()
