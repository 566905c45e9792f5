from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Coroutine, Optional

import httpx

from dsquery.common.errors import (
    FrameDecodeError,
    GatewayTransportError,
    QueryCancelledError,
    QueryTimeoutError,
)
from dsquery.common.logger import get_logger
from dsquery.gateway.auth import GatewayAuthTransport
from dsquery.gateway.context import GatewayContext

logger = get_logger(__name__)

JSON_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}


@asynccontextmanager
async def open_gateway_client(
    ctx: GatewayContext,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AsyncIterator[httpx.AsyncClient]:
    """Opens an authenticated client bound to the gateway base URL.

    Args:
        ctx (GatewayContext): Gateway URL, credentials and timeout for this call.
        transport (Optional[httpx.AsyncBaseTransport]): Underlying transport; a
            fresh connection pool is created when omitted.

    Yields:
        httpx.AsyncClient: A client that is closed when the block exits.
    """
    client = httpx.AsyncClient(
        base_url=ctx.url,
        transport=GatewayAuthTransport(ctx.credentials, transport),
        timeout=httpx.Timeout(ctx.timeout_sec),
        headers={"Accept": "application/json"},
    )
    async with client:
        yield client


async def send_cancellable(
    ctx: GatewayContext,
    request: Coroutine[Any, Any, httpx.Response],
    *,
    operation: str,
) -> httpx.Response:
    """Awaits ``request`` while honouring the context's cancel event and timeout.

    Whichever of cancellation or timeout fires first aborts the in-flight
    request task. httpx request failures are re-raised as
    dsquery errors with the httpx exception chained.

    Raises:
        QueryCancelledError: The caller set the cancel event.
        QueryTimeoutError: The timeout elapsed before a response arrived.
        FrameDecodeError: The response body could not be content-decoded.
        GatewayTransportError: Any other network, TLS or redirect failure.
    """
    if ctx.is_cancelled:
        request.close()
        raise QueryCancelledError(f"{operation} cancelled before it was sent")

    request_task = asyncio.ensure_future(request)
    waiters = {request_task}
    cancel_task = None
    if ctx.cancel_event is not None:
        cancel_task = asyncio.ensure_future(ctx.cancel_event.wait())
        waiters.add(cancel_task)

    try:
        done, _ = await asyncio.wait(waiters, timeout=ctx.timeout_sec, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in waiters:
            if not task.done():
                task.cancel()
        await asyncio.gather(*waiters, return_exceptions=True)

    if request_task not in done:
        if cancel_task is not None and cancel_task in done:
            logger.warning(f"{operation} aborted: cancelled by caller")
            raise QueryCancelledError(f"{operation} cancelled by caller")
        logger.warning(f"{operation} aborted: no response within {ctx.timeout_sec}s")
        raise QueryTimeoutError(f"{operation} timed out after {ctx.timeout_sec}s")

    try:
        return request_task.result()
    except httpx.TimeoutException as exc:
        raise QueryTimeoutError(f"{operation} timed out: {exc}") from exc
    except httpx.DecodingError as exc:
        raise FrameDecodeError(f"{operation} returned an undecodable body: {exc}") from exc
    except httpx.RequestError as exc:
        raise GatewayTransportError(f"{operation} failed: {exc}") from exc
