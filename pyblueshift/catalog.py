"""Playback status and preset catalog sync.

Both operations recover from every network or parse failure at their own
boundary: an offline receiver is an ordinary outcome, not an exception.
Catalog sync follows "fetch current truth and replace" semantics; the
``success`` flag of :class:`CatalogSync` tells a failed sync apart from a
receiver that really has no presets.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

import aiohttp

from .api.constants import NOW_PLAYING_EMPTY, NOW_PLAYING_PAUSED
from .client import BluOSClient
from .config import setting
from .exceptions import BluOSError, BluOSInvalidDataError
from .models import PlaybackMode, PlaybackState, Preset, Receiver

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "CatalogSync",
    "fetch_catalog",
    "fetch_status",
    "format_now_playing",
    "sync_catalogs",
]


@dataclass
class CatalogSync:
    """Outcome of one catalog fetch for one receiver.

    Iterating yields the presets in receiver order. When ``success`` is False the
    preset list is always empty and ``error`` says why.
    """

    receiver_key: str
    presets: list[Preset] = field(default_factory=list)
    success: bool = True
    error: str | None = None

    def __iter__(self) -> Iterator[Preset]:
        return iter(self.presets)

    def __len__(self) -> int:
        return len(self.presets)

    @classmethod
    def failed(cls, receiver: Receiver, error: str) -> CatalogSync:
        """Build a failed sync result."""
        return cls(receiver_key=receiver.key, presets=[], success=False, error=error)


async def fetch_status(
    receiver: Receiver,
    *,
    timeout: float | None = None,
    session: aiohttp.ClientSession | None = None,
) -> PlaybackState | None:
    """Fetch a receiver's playback status.

    Returns:
        PlaybackState, or None when the receiver is unreachable, answers with a
        non-success status, or sends something that is not a status document.
    """
    timeout = float(setting("status_timeout", timeout))
    async with BluOSClient(receiver, session=session, timeout=timeout) as client:
        try:
            return await client.get_status()
        except BluOSError as err:
            _LOGGER.debug("Status unavailable for %s: %s", receiver.display_name, err)
            return None


async def fetch_catalog(
    receiver: Receiver,
    *,
    timeout: float | None = None,
    session: aiohttp.ClientSession | None = None,
) -> CatalogSync:
    """Fetch a receiver's preset catalog.

    Returns:
        CatalogSync with every preset on success; on any failure an empty,
        unsuccessful CatalogSync (never a partial catalog).
    """
    async with BluOSClient(receiver, session=session, timeout=timeout) as client:
        try:
            presets = await client.get_presets()
        except BluOSInvalidDataError as err:
            _LOGGER.warning("Unparseable preset list from %s: %s", receiver.display_name, err)
            return CatalogSync.failed(receiver, str(err))
        except BluOSError as err:
            _LOGGER.debug("Preset sync failed for %s: %s", receiver.display_name, err)
            return CatalogSync.failed(receiver, str(err))

    _LOGGER.debug("Fetched %d preset(s) from %s", len(presets), receiver.display_name)
    return CatalogSync(receiver_key=receiver.key, presets=presets)


async def sync_catalogs(
    receivers: Iterable[Receiver],
    *,
    timeout: float | None = None,
    session: aiohttp.ClientSession | None = None,
) -> dict[str, CatalogSync]:
    """Fetch the catalogs of several receivers concurrently.

    Returns:
        Mapping of receiver key to its CatalogSync. Callers replace the stored
        catalog of each receiver whose sync succeeded.
    """
    unique = list({receiver.key: receiver for receiver in receivers}.values())
    results = await asyncio.gather(
        *(fetch_catalog(receiver, timeout=timeout, session=session) for receiver in unique)
    )
    synced = {result.receiver_key: result for result in results}
    ok = sum(1 for result in results if result.success)
    _LOGGER.info("Synced presets from %d/%d receiver(s)", ok, len(results))
    return synced


def _present(value: str | None) -> bool:
    return bool(value and value.strip())


def format_now_playing(state: PlaybackState | None) -> str:
    """Format a playback state as a one-line "now playing" label.

    Streaming radio reports the station in title1 and the current track in
    title2; local playback reports the track in title1 and the artist
    separately. title3 (previous track) is ignored.
    """
    if state is None:
        return NOW_PLAYING_EMPTY

    mode = state.mode
    if mode is PlaybackMode.PAUSED:
        return NOW_PLAYING_PAUSED
    if mode not in (PlaybackMode.PLAYING, PlaybackMode.STREAMING):
        return NOW_PLAYING_EMPTY

    title1, title2, artist = state.title1, state.title2, state.artist
    if _present(title1) and _present(title2):
        return f"{title1} - {title2}"
    if _present(title2):
        return str(title2)
    if _present(artist) and _present(title1):
        return f"{artist} - {title1}"
    if _present(title1):
        return str(title1)
    return NOW_PLAYING_EMPTY
