"""BluOS receiver client.

This module provides the BluOSClient class that wraps the handful of control
endpoints this library needs: /Status, /Presets, /RadioBrowse and the
fire-and-forget playback actions.
"""

from __future__ import annotations

import logging
from types import TracebackType

import aiohttp

from .api.constants import (
    API_ENDPOINT_PAUSE,
    API_ENDPOINT_PLAY,
    API_ENDPOINT_PRESET,
    API_ENDPOINT_PRESETS,
    API_ENDPOINT_RADIO_BROWSE,
    API_ENDPOINT_STATUS,
)
from .api.parser import parse_preset_elements, parse_status_fields
from .api.transport import fetch_text
from .config import setting
from .exceptions import BluOSError
from .models import PlaybackState, Preset, Receiver

_LOGGER = logging.getLogger(__name__)

__all__ = ["BluOSClient"]


class BluOSClient:
    """HTTP client for a single BluOS receiver.

    Example:
        ```python
        import asyncio
        from pyblueshift import BluOSClient, Receiver

        async def main():
            async with BluOSClient(Receiver(host="192.168.1.40")) as client:
                state = await client.get_status()
                presets = await client.get_presets()
                await client.play_preset(presets[0].remote_id)

        asyncio.run(main())
        ```

    Args:
        receiver: Receiver to talk to.
        session: Optional shared aiohttp ClientSession. When omitted the client
            creates its own and closes it in :meth:`close`.
        timeout: Connect and read timeout in seconds (default from config).
    """

    def __init__(
        self,
        receiver: Receiver,
        session: aiohttp.ClientSession | None = None,
        timeout: float | None = None,
    ) -> None:
        self.receiver = receiver
        self.timeout = float(setting("timeout", timeout))
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> BluOSClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    @property
    def host(self) -> str:
        """Receiver host."""
        return self.receiver.host

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def _request(self, path: str, params: dict[str, str] | None = None, timeout: float | None = None) -> str:
        """GET a receiver endpoint and return the body.

        Raises:
            BluOSError: If the request fails or returns a non-success status.
        """
        url = f"{self.receiver.base_url}{path}"
        effective = timeout if timeout is not None else self.timeout
        return await fetch_text(url, effective, effective, session=self._get_session(), params=params)

    # ------------------------------------------------------------------
    # State and catalog
    # ------------------------------------------------------------------

    async def get_status(self, timeout: float | None = None) -> PlaybackState:
        """Fetch the current playback status.

        Raises:
            BluOSError: If the receiver is unreachable or the body is not a status document.
        """
        body = await self._request(API_ENDPOINT_STATUS, timeout=timeout)
        fields = parse_status_fields(body)
        return PlaybackState(**fields)

    async def get_presets(self, timeout: float | None = None) -> list[Preset]:
        """Fetch the preset catalog in receiver order.

        Presets repeating an already seen remote id are dropped so composite ids
        stay unique.

        Raises:
            BluOSError: If the receiver is unreachable or the body cannot be parsed.
        """
        body = await self._request(API_ENDPOINT_PRESETS, timeout=timeout)
        presets: list[Preset] = []
        seen: set[str] = set()
        for entry in parse_preset_elements(body):
            remote_id = str(entry["id"])
            if remote_id in seen:
                _LOGGER.warning("Duplicate preset id %s on %s, keeping the first", remote_id, self.host)
                continue
            seen.add(remote_id)
            presets.append(
                Preset.from_remote(
                    self.receiver,
                    remote_id=remote_id,
                    name=str(entry["name"]),
                    url=str(entry["url"]),
                    image=entry.get("image"),
                )
            )
        return presets

    async def radio_browse(self, service: str, timeout: float | None = None) -> str:
        """Fetch the raw /RadioBrowse response for a radio service (e.g. "TuneIn")."""
        return await self._request(API_ENDPOINT_RADIO_BROWSE, params={"service": service}, timeout=timeout)

    # ------------------------------------------------------------------
    # Control actions (fire-and-forget)
    # ------------------------------------------------------------------

    async def _command(self, path: str, params: dict[str, str] | None = None) -> bool:
        try:
            await self._request(path, params=params)
        except BluOSError as err:
            _LOGGER.debug("Command %s failed on %s: %s", path, self.host, err)
            return False
        return True

    async def play_preset(self, remote_id: str) -> bool:
        """Start the preset with the receiver-assigned id."""
        if not remote_id or not remote_id.strip():
            return False
        return await self._command(API_ENDPOINT_PRESET, {"id": remote_id})

    async def play_url(self, url: str) -> bool:
        """Play a stream URL directly."""
        return await self._command(API_ENDPOINT_PLAY, {"url": url})

    async def pause(self) -> bool:
        """Pause playback."""
        return await self._command(API_ENDPOINT_PAUSE)

    async def resume(self) -> bool:
        """Resume playback."""
        return await self._command(API_ENDPOINT_PLAY)

    async def toggle_play_pause(self) -> bool:
        """Pause when playing or streaming, otherwise play."""
        try:
            state = await self.get_status()
        except BluOSError as err:
            _LOGGER.debug("Could not read status of %s before toggling: %s", self.host, err)
            state = None
        if state is not None and state.is_playing:
            return await self.pause()
        return await self.resume()

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._owns_session and self._session is not None:
            if not self._session.closed:
                await self._session.close()
            self._session = None
