"""pyblueshift - discovery, preset sync and stream resolution for BluOS receivers."""

from __future__ import annotations

from .catalog import CatalogSync, fetch_catalog, fetch_status, format_now_playing, sync_catalogs
from .client import BluOSClient
from .discovery import DiscoveredHost, compute_host_range, probe_host, scan_for_receivers
from .exceptions import (
    BluOSConnectionError,
    BluOSError,
    BluOSInvalidDataError,
    BluOSRequestError,
    BluOSResponseError,
    BluOSTimeoutError,
)
from .export import ExportSummary, render_m3u, summarize
from .models import (
    PlaybackMode,
    PlaybackState,
    Preset,
    PresetKind,
    Receiver,
    ResolutionOutcome,
    ResolvedPreset,
)
from .resolver import StreamResolver, resolve, resolve_many

__version__ = "0.1.0"

__all__ = [
    "BluOSClient",
    "BluOSConnectionError",
    "BluOSError",
    "BluOSInvalidDataError",
    "BluOSRequestError",
    "BluOSResponseError",
    "BluOSTimeoutError",
    "CatalogSync",
    "DiscoveredHost",
    "ExportSummary",
    "PlaybackMode",
    "PlaybackState",
    "Preset",
    "PresetKind",
    "Receiver",
    "ResolutionOutcome",
    "ResolvedPreset",
    "StreamResolver",
    "compute_host_range",
    "fetch_catalog",
    "fetch_status",
    "format_now_playing",
    "probe_host",
    "render_m3u",
    "resolve",
    "resolve_many",
    "scan_for_receivers",
    "summarize",
    "sync_catalogs",
]
