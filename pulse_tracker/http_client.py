"""Shared HTTP client handling."""

import httpx

# Seconds before any vendor request is abandoned
DEFAULT_TIMEOUT = 30.0

_async_http_client: httpx.AsyncClient | None = None
_async_http_client_options: tuple[bool, float] | None = None


def _limits() -> httpx.Limits:
    return httpx.Limits(
        max_connections=20,
        max_keepalive_connections=10,
        keepalive_expiry=30.0,
    )


async def _get_async_http_client(
    verify_ssl: bool = True, timeout: float = DEFAULT_TIMEOUT
) -> httpx.AsyncClient:
    """Get or create a global async HTTP client with connection pooling.

    Recreates the client if the SSL or timeout setting has changed.
    """
    global _async_http_client, _async_http_client_options
    options = (verify_ssl, timeout)

    if (
        _async_http_client is None
        or _async_http_client.is_closed
        or _async_http_client_options != options
    ):
        if _async_http_client is not None and not _async_http_client.is_closed:
            await _async_http_client.aclose()

        _async_http_client = httpx.AsyncClient(
            verify=verify_ssl, timeout=timeout, limits=_limits()
        )
        _async_http_client_options = options
    return _async_http_client


async def close_async_http_client():
    """Close the global async HTTP client. Call this when shutting down."""
    global _async_http_client, _async_http_client_options
    if _async_http_client is not None and not _async_http_client.is_closed:
        await _async_http_client.aclose()
    _async_http_client = None
    _async_http_client_options = None
