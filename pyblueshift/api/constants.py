"""BluOS API constants.

This module contains the control port, endpoint paths, timeouts, provider URLs
and preset url prefixes used when talking to BluOS receivers and TuneIn.
"""

from __future__ import annotations

from typing import Final

# Control protocol port used by every BluOS receiver
BLUOS_PORT: Final = 11000

# Receiver endpoints
API_ENDPOINT_STATUS: Final = "/Status"
API_ENDPOINT_PRESETS: Final = "/Presets"
API_ENDPOINT_RADIO_BROWSE: Final = "/RadioBrowse"
API_ENDPOINT_PRESET: Final = "/Preset"
API_ENDPOINT_PLAY: Final = "/Play"
API_ENDPOINT_PAUSE: Final = "/Pause"

# Timeouts (seconds)
DEFAULT_TIMEOUT: Final = 5.0  # catalog sync, control actions
STATUS_TIMEOUT: Final = 3.0  # status is polled often, keep it snappy
PROBE_TIMEOUT: Final = 2.0  # per-host discovery probe
SCAN_TIMEOUT: Final = 30.0  # wall-clock ceiling for a whole subnet scan
RESOLVE_TIMEOUT: Final = 5.0  # each hop of the resolution chain

# Discovery limits
MAX_SCAN_HOSTS: Final = 254
SCAN_CONCURRENCY: Final = 32
FALLBACK_PREFIX_LENGTH: Final = 24

# Batch resolution fan-out
RESOLVE_CONCURRENCY: Final = 4

# Preset url prefixes (matched case-insensitively)
TUNEIN_PREFIX: Final = "TuneIn:"
NON_EXPORTABLE_PREFIXES: Final = ("Capture:", "RadioParadise:")

# TuneIn (RadioTime) provider
TUNEIN_SERVICE: Final = "TuneIn"
TUNEIN_TUNE_URL: Final = "http://opml.radiotime.com/Tune.ashx"
TUNEIN_FORMATS: Final = "mp3,aac,ogg"

# Candidate stream selection
PLAYLIST_EXTENSIONS: Final = (".pls", ".m3u")
STREAM_SCHEMES: Final = ("http://", "https://")

# Recognized /Status state tokens
STATE_PLAY: Final = "play"
STATE_STREAM: Final = "stream"
STATE_PAUSE: Final = "pause"
STATE_STOP: Final = "stop"

NOW_PLAYING_EMPTY: Final = "-"
NOW_PLAYING_PAUSED: Final = "Paused"
