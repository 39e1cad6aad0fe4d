from __future__ import annotations

from typing import Optional

import httpx

# shared by outbound adapters (the delivery gateway)
_LIMITS = httpx.Limits(max_connections=20, max_keepalive_connections=10)

_shared: Optional[httpx.AsyncClient] = None


async def open_http_client(timeout: float = 10.0) -> httpx.AsyncClient:
    """
    Lifespan hook: build the process-wide client once. Later calls return
    the existing client unchanged, whatever `timeout` they pass.
    """
    global _shared
    if _shared is None:
        _shared = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            limits=_LIMITS,
            headers={"Accept": "application/json"},
        )
    return _shared


def get_http_client() -> httpx.AsyncClient:
    if _shared is None:
        raise RuntimeError("shared HTTP client is not open; call open_http_client()")
    return _shared


async def close_http_client() -> None:
    global _shared
    client, _shared = _shared, None
    if client is not None:
        await client.aclose()
