"""Resolve preset references into playable stream URLs.

A TuneIn preset only stores an opaque station id. Turning it into a stream
takes several dependent hops:

1. classify the preset url (inputs are never exported)
2. extract the station id (or a raw stream URL disguised as one)
3. ask the owning receiver for its TuneIn partner credentials
4. ask TuneIn for candidate streams
5. pick the highest-bitrate candidate
6. dereference PLS/M3U playlists

Each stage returns ``Advance`` with the updated state or ``Stop`` with an
outcome; the first state carrying a ``final_url`` is committed. A failing hop
never raises out of :func:`resolve`: the preset comes back unchanged and
tagged as unresolved.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from urllib.parse import unquote

import aiohttp

from .api.constants import (
    RESOLVE_CONCURRENCY,
    TUNEIN_FORMATS,
    TUNEIN_PREFIX,
    TUNEIN_SERVICE,
    TUNEIN_TUNE_URL,
)
from .api.parser import parse_radio_browse_credentials, parse_tune_candidates
from .api.transport import fetch_text
from .client import BluOSClient
from .config import setting
from .models import Preset, PresetKind, Receiver, ResolutionOutcome, ResolvedPreset
from .playlist import dereference_playlist, is_playlist_url, is_stream_url, select_best_candidate

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "Advance",
    "ResolutionState",
    "Stop",
    "StreamResolver",
    "resolve",
    "resolve_many",
]

UNRESOLVED = ResolutionOutcome.UNRESOLVED_UPSTREAM_LOOKUP_FAILED


@dataclass(frozen=True)
class ResolutionState:
    """Everything learned so far about one preset."""

    preset: Preset
    receiver: Receiver | None
    reference_id: str | None = None
    partner_id: str | None = None
    serial: str | None = None
    candidates: tuple[str, ...] = ()
    selected: str | None = None
    final_url: str | None = None


@dataclass(frozen=True)
class Advance:
    """Continue with the next stage."""

    state: ResolutionState


@dataclass(frozen=True)
class Stop:
    """End the chain, returning the original preset with this outcome."""

    outcome: ResolutionOutcome
    reason: str


Stage = Callable[[ResolutionState], Awaitable[Advance | Stop]]


class StreamResolver:
    """Runs the resolution chain for presets.

    Args:
        timeout: Timeout in seconds for each network hop (default from config).
        session: aiohttp session shared by every hop.
    """

    def __init__(self, session: aiohttp.ClientSession, timeout: float | None = None) -> None:
        self.session = session
        self.timeout = float(setting("resolve_timeout", timeout))

    @property
    def stages(self) -> list[tuple[str, Stage]]:
        """The chain, in execution order."""
        return [
            ("classify", self.classify),
            ("extract_reference", self.extract_reference),
            ("discover_credentials", self.discover_credentials),
            ("query_provider", self.query_provider),
            ("select_candidate", self.select_candidate),
            ("dereference", self.dereference),
        ]

    async def resolve(self, preset: Preset, receiver: Receiver | None) -> ResolvedPreset:
        """Resolve one preset; never raises for lookup failures."""
        state = ResolutionState(preset=preset, receiver=receiver)

        for name, stage in self.stages:
            try:
                step = await stage(state)
            except Exception as err:  # noqa: BLE001
                _LOGGER.debug("Resolution of %r failed in %s: %s", preset.name, name, err)
                return self._stopped(preset, Stop(UNRESOLVED, f"{name}: {err}"))

            if isinstance(step, Stop):
                _LOGGER.debug("Resolution of %r stopped in %s: %s", preset.name, name, step.reason)
                return self._stopped(preset, step)

            state = step.state
            if state.final_url:
                break

        if not state.final_url:
            return self._stopped(preset, Stop(UNRESOLVED, "no stream found"))

        _LOGGER.debug("Resolved %r to %s", preset.name, state.final_url)
        return ResolvedPreset(
            preset=preset.with_url(state.final_url),
            original_url=preset.url,
            outcome=ResolutionOutcome.RESOLVED,
        )

    @staticmethod
    def _stopped(preset: Preset, stop: Stop) -> ResolvedPreset:
        return ResolvedPreset(preset=preset, original_url=preset.url, outcome=stop.outcome, detail=stop.reason)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def classify(self, state: ResolutionState) -> Advance | Stop:
        """Route by url kind; inputs and aggregator schemes are never looked up."""
        kind = state.preset.kind
        if kind is PresetKind.INPUT:
            return Stop(ResolutionOutcome.IGNORED_NON_EXPORTABLE_SCHEME, "non-exportable scheme")
        if kind is PresetKind.DIRECT:
            return Advance(replace(state, final_url=state.preset.url))
        if kind is PresetKind.UNKNOWN:
            return Stop(UNRESOLVED, "no resolver for this reference")
        return Advance(state)

    async def extract_reference(self, state: ResolutionState) -> Advance | Stop:
        """Strip the provider marker and handle the two legacy id shapes."""
        raw = state.preset.url.strip()[len(TUNEIN_PREFIX) :].strip()
        if not raw:
            return Stop(UNRESOLVED, "empty reference")

        # A percent-encoded stream URL stored in place of a station id
        if raw.lower().startswith(("http%3a", "https%3a")):
            decoded = unquote(raw)
            if decoded.lower().startswith("http"):
                return Advance(replace(state, final_url=decoded))
            return Stop(UNRESOLVED, "undecodable embedded URL")

        # "s25510/http://opml.radiotime.com/Tune.ashx?id=s25510..." keeps only the id
        reference_id = raw.split("/", 1)[0]
        if not reference_id:
            return Stop(UNRESOLVED, "empty reference")
        return Advance(replace(state, reference_id=reference_id))

    async def discover_credentials(self, state: ResolutionState) -> Advance | Stop:
        """Read the TuneIn partner id (and serial) from the receiver's RadioBrowse."""
        if state.receiver is None:
            return Stop(UNRESOLVED, "no receiver for credential lookup")

        client = BluOSClient(state.receiver, session=self.session, timeout=self.timeout)
        body = await client.radio_browse(TUNEIN_SERVICE)
        partner_id, serial = parse_radio_browse_credentials(body)
        if not partner_id:
            return Stop(UNRESOLVED, "no partner id in RadioBrowse response")
        return Advance(replace(state, partner_id=partner_id, serial=serial))

    async def query_provider(self, state: ResolutionState) -> Advance | Stop:
        """Ask TuneIn for the candidate streams of the station."""
        params = {"id": str(state.reference_id), "partnerId": str(state.partner_id)}
        if state.serial:
            params["serial"] = state.serial
        params["formats"] = TUNEIN_FORMATS

        body = await fetch_text(TUNEIN_TUNE_URL, self.timeout, self.timeout, session=self.session, params=params)
        candidates = parse_tune_candidates(body)
        if not candidates:
            return Stop(UNRESOLVED, "provider returned no streams")
        return Advance(replace(state, candidates=tuple(candidates)))

    async def select_candidate(self, state: ResolutionState) -> Advance | Stop:
        """Keep the highest-bitrate candidate."""
        selected = select_best_candidate(state.candidates)
        if selected is None:
            return Stop(UNRESOLVED, "no candidate")
        return Advance(replace(state, selected=selected))

    async def dereference(self, state: ResolutionState) -> Advance | Stop:
        """Follow a playlist to its first stream; raw audio URLs pass through."""
        selected = str(state.selected)
        if is_playlist_url(selected):
            entry = await dereference_playlist(selected, self.timeout, session=self.session)
            if entry is None:
                return Stop(UNRESOLVED, "playlist has no stream entry")
            return Advance(replace(state, final_url=entry))
        if not is_stream_url(selected):
            return Stop(UNRESOLVED, "candidate is not an http(s) URL")
        return Advance(replace(state, final_url=selected))


async def resolve(
    preset: Preset,
    receiver: Receiver | None,
    *,
    timeout: float | None = None,
    session: aiohttp.ClientSession | None = None,
) -> ResolvedPreset:
    """Resolve a preset to a playable stream.

    Args:
        preset: Preset to resolve.
        receiver: Receiver used for the TuneIn credential lookup (normally the
            one that owns the preset).
        timeout: Timeout in seconds for each network hop.
        session: Optional aiohttp session (created and closed locally if None).

    Returns:
        ResolvedPreset. On any failure the preset url is left unchanged and the
        outcome says why.
    """
    local_session = False
    if session is None:
        session = aiohttp.ClientSession()
        local_session = True

    try:
        return await StreamResolver(session, timeout).resolve(preset, receiver)
    finally:
        if local_session:
            await session.close()


async def resolve_many(
    presets: Sequence[Preset],
    receivers: Mapping[str, Receiver] | Iterable[Receiver],
    *,
    max_concurrency: int = RESOLVE_CONCURRENCY,
    timeout: float | None = None,
    session: aiohttp.ClientSession | None = None,
) -> list[ResolvedPreset]:
    """Resolve a batch of presets concurrently.

    Each preset is resolved with the receiver matching its ``receiver_key``.
    One preset failing never affects the others.

    Returns:
        One ResolvedPreset per input preset, in input order.
    """
    if isinstance(receivers, Mapping):
        by_key = dict(receivers)
    else:
        by_key = {receiver.key: receiver for receiver in receivers}

    local_session = False
    if session is None:
        session = aiohttp.ClientSession()
        local_session = True

    resolver = StreamResolver(session, timeout)
    semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def bounded(preset: Preset) -> ResolvedPreset:
        async with semaphore:
            return await resolver.resolve(preset, by_key.get(preset.receiver_key))

    try:
        results = await asyncio.gather(*(bounded(preset) for preset in presets))
    finally:
        if local_session:
            await session.close()

    resolved = sum(1 for result in results if result.resolved)
    _LOGGER.info("Resolved %d/%d preset(s)", resolved, len(results))
    return list(results)
