"""Shared async HTTP client utilities for repository access.

Provides a thin wrapper around ``httpx.AsyncClient`` with standardised
timeouts, user-agent headers, and error classification. The Maven client
and the download manager both go through this module so that HTTP
behaviour is consistent and testable.

Every call makes exactly one attempt. Failures are classified so that
``jx.core.retry`` can decide what to retry:

- 404 / 410 -> ``NotFoundError`` (permanent)
- 5xx, 429, timeouts, connection errors -> ``NetworkError(transient=True)``
- any other non-2xx status -> ``NetworkError(transient=False)``
"""

from __future__ import annotations

import logging

import httpx

from jx import __version__
from jx.exceptions import NetworkError, NotFoundError

logger = logging.getLogger(__name__)

# Timeout for all repository HTTP requests (seconds).
DEFAULT_TIMEOUT: float = 30.0

# User-Agent sent with every request.
USER_AGENT: str = f"jx/{__version__}"

_NOT_FOUND = frozenset({404, 410})


def create_client(timeout: float = DEFAULT_TIMEOUT) -> httpx.AsyncClient:
    """Build the shared client used for one install run."""
    return httpx.AsyncClient(
        timeout=timeout,
        headers={"User-Agent": USER_AGENT},
        follow_redirects=True,
    )


async def fetch_bytes(
    client: httpx.AsyncClient,
    url: str,
    *,
    auth: tuple[str, str] | None = None,
) -> bytes:
    """GET *url* and return the body.

    Raises:
        NotFoundError: The server answered 404 or 410.
        NetworkError: Any other failure; ``transient`` tells whether a
            retry may help.
    """
    try:
        resp = await client.get(url, auth=auth)
    except httpx.TimeoutException as exc:
        logger.debug("Timeout fetching %s", url)
        raise NetworkError(f"Timed out fetching {url}") from exc
    except httpx.RequestError as exc:
        logger.debug("Request error for %s: %s", url, exc)
        raise NetworkError(f"Cannot reach {url}: {exc}") from exc

    status = resp.status_code
    if status in _NOT_FOUND:
        raise NotFoundError(f"Not found: {url}")
    if status >= 500 or status == 429:
        raise NetworkError(f"HTTP {status} from {url}", status_code=status)
    if status >= 400:
        raise NetworkError(f"HTTP {status} from {url}", transient=False, status_code=status)
    return resp.content


async def fetch_text(
    client: httpx.AsyncClient,
    url: str,
    *,
    auth: tuple[str, str] | None = None,
) -> str:
    """GET *url* and decode the body as UTF-8 (errors replaced)."""
    data = await fetch_bytes(client, url, auth=auth)
    return data.decode("utf-8", errors="replace")
