# n8n_gateway/shared/_httpx_utils.py
"""httpx client construction for calls to the n8n public API."""

from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncGenerator, Protocol

import httpx

__all__ = [
    "API_KEY_HEADER",
    "DEFAULT_TIMEOUT_SECONDS",
    "N8nHttpClientFactory",
    "create_n8n_http_client",
    "n8n_headers",
]

API_KEY_HEADER = "X-N8N-API-KEY"
DEFAULT_TIMEOUT_SECONDS = 30.0


def n8n_headers(api_key: str, extra: dict[str, str] | None = None) -> dict[str, str]:
    """Fixed headers for every n8n call; `extra` wins on conflicts."""
    headers = {
        API_KEY_HEADER: api_key,
        "Accept": "application/json",
        "Content-Type": "application/json",
    }
    if extra:
        headers.update(extra)
    return headers


class N8nHttpClientFactory(Protocol):
    def __call__(
        self,
        api_key: str,
        *,
        headers: dict[str, str] | None = None,
        timeout: httpx.Timeout | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> AsyncContextManager[httpx.AsyncClient]: ...


@asynccontextmanager
async def create_n8n_http_client(
    api_key: str,
    *,
    headers: dict[str, str] | None = None,
    timeout: httpx.Timeout | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Yield an AsyncClient authenticated against one n8n instance.

    Redirects are followed and the timeout defaults to 30 seconds. The client
    is closed when the context exits, so connections are never shared between
    operations.
    """
    client = httpx.AsyncClient(
        headers=n8n_headers(api_key, headers),
        timeout=timeout if timeout is not None else httpx.Timeout(DEFAULT_TIMEOUT_SECONDS),
        transport=transport,
        follow_redirects=True,
    )
    try:
        yield client
    finally:
        await client.aclose()
