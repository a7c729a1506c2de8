"""Playlist parsing and stream candidate selection.

Providers often hand out PLS/M3U playlists instead of raw audio URLs, and
usually several of them at different bitrates. This module picks the best
candidate and dereferences playlists to the first stream they list.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from urllib.parse import urlsplit

import aiohttp

from .api.constants import PLAYLIST_EXTENSIONS, STREAM_SCHEMES
from .api.transport import fetch_text

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "dereference_playlist",
    "is_playlist_url",
    "is_stream_url",
    "parse_m3u",
    "parse_pls",
    "select_best_candidate",
    "stream_bitrate",
]

# e.g. "groovesalad130.pls" -> 130. Only these extensions are recognized.
_BITRATE_RE = re.compile(r"(\d+)\.(pls|m3u|mp3|aac)")
_PLS_ENTRY_RE = re.compile(r"^\s*File\d+\s*=\s*(.+?)\s*$", re.IGNORECASE | re.MULTILINE)


def is_stream_url(value: str | None) -> bool:
    """True if value is an http(s) URL."""
    return bool(value) and value.strip().lower().startswith(STREAM_SCHEMES)


def stream_bitrate(url: str) -> int | None:
    """Bitrate advertised in a stream URL, or None when there is none."""
    match = _BITRATE_RE.search(url)
    if not match:
        return None
    return int(match.group(1))


def select_best_candidate(urls: Sequence[str]) -> str | None:
    """Pick the candidate with the highest advertised bitrate.

    Candidates without a parseable bitrate rank as 0; ties keep the earliest,
    so with no bitrates at all the first candidate wins.
    """
    if not urls:
        return None
    return max(urls, key=lambda url: stream_bitrate(url) or 0)


def is_playlist_url(url: str) -> bool:
    """True if url points at a PLS or M3U playlist file."""
    path = urlsplit(url.strip()).path.lower()
    return path.endswith(PLAYLIST_EXTENSIONS)


def parse_pls(content: str) -> str | None:
    """Return the first ``FileN=`` entry of a PLS playlist."""
    match = _PLS_ENTRY_RE.search(content)
    if match:
        return match.group(1)
    return None


def parse_m3u(content: str) -> str | None:
    """Return the first http(s) line of an M3U playlist."""
    for line in content.splitlines():
        line = line.strip()
        if line and not line.startswith("#") and is_stream_url(line):
            return line
    return None


async def dereference_playlist(
    url: str,
    timeout: float,
    session: aiohttp.ClientSession | None = None,
) -> str | None:
    """Fetch a playlist and return the stream it points at.

    Returns:
        The first entry if it is an http(s) URL, otherwise None.

    Raises:
        BluOSError: If the playlist cannot be fetched.
    """
    content = await fetch_text(url, timeout, timeout, session=session)
    if urlsplit(url.strip()).path.lower().endswith(".pls"):
        entry = parse_pls(content)
    else:
        entry = parse_m3u(content)

    if not is_stream_url(entry):
        _LOGGER.debug("Playlist %s has no usable stream entry (got %r)", url, entry)
        return None
    return entry.strip() if entry else None
