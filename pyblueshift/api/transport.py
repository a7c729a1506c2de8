"""HTTP transport shared by every BluOS and provider lookup.

A single bounded-timeout GET. There are no retries here: discovery relies on
broad fan-out, while sync and resolution simply report failure upward.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping

import aiohttp

from ..exceptions import BluOSConnectionError, BluOSResponseError, BluOSTimeoutError

_LOGGER = logging.getLogger(__name__)

__all__ = ["fetch_text", "is_success"]


def is_success(status: int) -> bool:
    """Return True for a 2xx HTTP status."""
    return 200 <= status < 300


async def fetch_text(
    url: str,
    connect_timeout: float,
    read_timeout: float,
    session: aiohttp.ClientSession | None = None,
    params: Mapping[str, str] | None = None,
) -> str:
    """GET url and return the decoded response body.

    Args:
        url: Absolute URL to fetch.
        connect_timeout: Seconds allowed to establish the connection.
        read_timeout: Seconds allowed between reads of the response.
        session: Optional aiohttp session (a private one is created and closed if None).
        params: Optional query parameters.

    Returns:
        Response body as text.

    Raises:
        BluOSTimeoutError: If the request did not complete in time.
        BluOSConnectionError: If the host could not be reached.
        BluOSResponseError: If the response status is not 2xx.
    """
    local_session = False
    if session is None:
        session = aiohttp.ClientSession()
        local_session = True

    client_timeout = aiohttp.ClientTimeout(total=None, connect=connect_timeout, sock_read=read_timeout)

    try:
        # Hard ceiling on top of the per-phase limits, so a slow trickle cannot stall us
        async with asyncio.timeout(connect_timeout + read_timeout):
            async with session.get(url, params=params, timeout=client_timeout) as response:
                if not is_success(response.status):
                    raise BluOSResponseError(f"HTTP {response.status}", status=response.status, url=url)
                return await response.text(errors="replace")
    except (TimeoutError, aiohttp.ServerTimeoutError) as err:
        raise BluOSTimeoutError("Request timed out", url=url, last_error=err) from err
    except (aiohttp.ClientError, OSError) as err:
        raise BluOSConnectionError(f"Request failed: {err}", url=url, last_error=err) from err
    finally:
        if local_session:
            await session.close()
