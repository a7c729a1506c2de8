"""Pydantic models for BluOS receivers, playback state and presets.

All models are plain values: the library produces and consumes them but never
stores them. Persisting receivers and preset catalogs is up to the caller.
"""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .api.constants import (
    BLUOS_PORT,
    NON_EXPORTABLE_PREFIXES,
    STATE_PAUSE,
    STATE_PLAY,
    STATE_STOP,
    STATE_STREAM,
    TUNEIN_PREFIX,
)

__all__ = [
    "PlaybackMode",
    "PlaybackState",
    "Preset",
    "PresetKind",
    "Receiver",
    "ResolutionOutcome",
    "ResolvedPreset",
]

# A leading URI scheme, e.g. "http://" or "icy://"
_SCHEME_RE = re.compile(r"[a-z][a-z0-9+.-]*://")


class Receiver(BaseModel):
    """A controllable BluOS receiver.

    The address (host, port) is the receiver's identity and never changes; use
    :meth:`renamed` to get a copy with a different label.
    """

    model_config = ConfigDict(frozen=True)

    host: str
    port: int = Field(default=BLUOS_PORT, ge=1, le=65535)
    label: str = ""
    network_id: str | None = None  # opaque caller-owned scope tag

    @field_validator("host")
    @classmethod
    def _strip_host(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("host must not be empty")
        return v

    @property
    def key(self) -> str:
        """Stable identity string, ``host:port``."""
        return f"{self.host}:{self.port}"

    @property
    def base_url(self) -> str:
        """Base URL of the control API."""
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"http://{host}:{self.port}"

    @property
    def display_name(self) -> str:
        """Label, or the host when no label was given."""
        return self.label or self.host

    def renamed(self, label: str) -> Receiver:
        """Return a copy of this receiver with a new label."""
        return self.model_copy(update={"label": label})


class PlaybackMode(str, Enum):
    """Normalized playback mode."""

    PLAYING = "playing"
    PAUSED = "paused"
    STOPPED = "stopped"
    STREAMING = "streaming"

    @classmethod
    def from_token(cls, token: str | None) -> PlaybackMode:
        """Map a raw /Status token; anything unrecognized is treated as stopped."""
        return _STATE_TO_MODE.get((token or "").strip().lower(), cls.STOPPED)


_STATE_TO_MODE: dict[str, PlaybackMode] = {
    STATE_PLAY: PlaybackMode.PLAYING,
    STATE_STREAM: PlaybackMode.STREAMING,
    STATE_PAUSE: PlaybackMode.PAUSED,
    STATE_STOP: PlaybackMode.STOPPED,
}


class PlaybackState(BaseModel):
    """Snapshot of a receiver's /Status.

    ``state`` keeps the raw token (e.g. ``"connecting"``); ``mode`` is the safe,
    normalized view of it. ``title3`` usually holds the previous track.
    """

    state: str = STATE_STOP
    title1: str | None = None
    title2: str | None = None
    title3: str | None = None
    artist: str | None = None
    album: str | None = None

    @field_validator("state", mode="before")
    @classmethod
    def _normalize_state(cls, v: str | None) -> str:
        if v is None:
            return STATE_STOP
        v = str(v).strip().lower()
        return v or STATE_STOP

    @property
    def mode(self) -> PlaybackMode:
        """Normalized playback mode."""
        return PlaybackMode.from_token(self.state)

    @property
    def is_playing(self) -> bool:
        """True while playing or streaming."""
        return self.mode in (PlaybackMode.PLAYING, PlaybackMode.STREAMING)


class PresetKind(str, Enum):
    """What a preset url points at."""

    DIRECT = "direct"
    INPUT = "input"
    PROVIDER_REFERENCE = "provider_reference"
    UNKNOWN = "unknown"


def classify_url(url: str) -> PresetKind:
    """Classify a preset url by its prefix."""
    lowered = url.strip().lower()
    if lowered.startswith(tuple(prefix.lower() for prefix in NON_EXPORTABLE_PREFIXES)):
        return PresetKind.INPUT
    if lowered.startswith(TUNEIN_PREFIX.lower()):
        return PresetKind.PROVIDER_REFERENCE
    if _SCHEME_RE.match(lowered):
        return PresetKind.DIRECT
    return PresetKind.UNKNOWN


class Preset(BaseModel):
    """A preset stored on a receiver."""

    model_config = ConfigDict(frozen=True)

    id: str  # "{receiver_key}_{remote_id}", unique across receivers
    remote_id: str
    name: str
    url: str
    image: str | None = None
    receiver_key: str

    @classmethod
    def from_remote(
        cls,
        receiver: Receiver,
        remote_id: str,
        name: str,
        url: str,
        image: str | None = None,
    ) -> Preset:
        """Build a preset for receiver, deriving its composite id."""
        return cls(
            id=f"{receiver.key}_{remote_id}",
            remote_id=remote_id,
            name=name,
            url=url,
            image=image,
            receiver_key=receiver.key,
        )

    @property
    def kind(self) -> PresetKind:
        """Classification of the url."""
        return classify_url(self.url)

    def with_url(self, url: str) -> Preset:
        """Return a copy with the url replaced."""
        return self.model_copy(update={"url": url})


class ResolutionOutcome(str, Enum):
    """Result of resolving a preset to a stream."""

    RESOLVED = "resolved"
    UNRESOLVED_UPSTREAM_LOOKUP_FAILED = "unresolved-upstream-lookup-failed"
    IGNORED_NON_EXPORTABLE_SCHEME = "ignored-non-exportable-scheme"


class ResolvedPreset(BaseModel):
    """A preset after a resolution pass.

    ``preset.url`` holds the playable stream when resolved; ``original_url``
    always keeps the reference the receiver reported.
    """

    preset: Preset
    original_url: str
    outcome: ResolutionOutcome
    detail: str | None = None  # why resolution stopped, when it did

    @property
    def url(self) -> str:
        """Current url (the stream when resolved)."""
        return self.preset.url

    @property
    def name(self) -> str:
        """Preset display name."""
        return self.preset.name

    @property
    def resolved(self) -> bool:
        """True when url is a playable stream."""
        return self.outcome is ResolutionOutcome.RESOLVED
