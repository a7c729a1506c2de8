"""Tolerant field extraction for BluOS XML responses.

BluOS bodies are not always well-formed (HTML entities, attributes in varying
order, elements broken over several lines), so this module uses patterns rather
than an XML parser. Nothing here raises on malformed input: a missing field is
simply ``None`` or an empty list.
"""

from __future__ import annotations

import html
import logging
import re
from collections.abc import Iterable
from urllib.parse import unquote

from ..exceptions import BluOSInvalidDataError

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "decode_entities",
    "extract_attribute_repeated",
    "extract_elements",
    "extract_tag",
    "parse_identity",
    "parse_preset_elements",
    "parse_radio_browse_credentials",
    "parse_status_fields",
    "parse_tune_candidates",
]

# Start-tag body: quoted values may contain ">"
_TAG_BODY = r"""(?:[^>"']|"[^"]*"|'[^']*')*"""
_ATTRIBUTE_RE = re.compile(r"""([\w:.-]+)\s*=\s*(?:"([^"]*)"|'([^']*)')""", re.DOTALL)

_STATUS_FIELDS = ("state", "title1", "title2", "title3", "artist", "album")


def decode_entities(text: str) -> str:
    """Decode named, decimal and hex character references (``&amp;``, ``&#39;``, ``&#x2019;``)."""
    return html.unescape(text)


def extract_tag(body: str | None, tag: str) -> str | None:
    """Return the decoded text of the first ``<tag>`` element, or None.

    The element may carry attributes and its text may span several lines.
    Empty or whitespace-only text counts as missing.
    """
    if not body:
        return None
    pattern = re.compile(rf"<{re.escape(tag)}(?:\s{_TAG_BODY})?>(.*?)</{re.escape(tag)}\s*>", re.DOTALL)
    match = pattern.search(body)
    if not match:
        return None
    value = decode_entities(match.group(1)).strip()
    return value or None


def _parse_attributes(raw: str) -> dict[str, str]:
    attributes: dict[str, str] = {}
    for match in _ATTRIBUTE_RE.finditer(raw):
        name = match.group(1)
        value = match.group(2) if match.group(2) is not None else match.group(3)
        attributes.setdefault(name, decode_entities(value))
    return attributes


def extract_elements(body: str | None, element: str) -> list[dict[str, str]]:
    """Return the decoded attributes of every ``<element ...>`` start tag, in document order."""
    if not body:
        return []
    pattern = re.compile(rf"<{re.escape(element)}(\s{_TAG_BODY}?)?/?>", re.DOTALL)
    return [_parse_attributes(match.group(1) or "") for match in pattern.finditer(body)]


def extract_attribute_repeated(
    body: str | None,
    element: str,
    attribute_names: Iterable[str],
) -> list[dict[str, str | None]]:
    """Project every ``<element>`` onto the requested attributes (missing ones are None)."""
    names = list(attribute_names)
    return [{name: attrs.get(name) for name in names} for attrs in extract_elements(body, element)]


def parse_status_fields(body: str) -> dict[str, str | None]:
    """Extract the playback fields from a /Status body.

    Raises:
        BluOSInvalidDataError: If the body is not a status document.
    """
    if "<status" not in body:
        raise BluOSInvalidDataError("Response is not a /Status document")
    return {field: extract_tag(body, field) for field in _STATUS_FIELDS}


def parse_identity(body: str | None) -> tuple[str, str | None] | None:
    """Extract (name, model) from an identity response, or None without a name.

    Accepts both the element form (``<name>``/``<modelName>``) and the attribute
    form (``name="..."``/``modelName="..."``) seen on different firmware.
    """
    if not body:
        return None
    name = extract_tag(body, "name")
    model = extract_tag(body, "modelName")
    if name is None:
        attrs: dict[str, str] = {}
        for candidate in ("status", "SyncStatus"):
            elements = extract_elements(body, candidate)
            if elements:
                attrs = elements[0]
                break
        name = (attrs.get("name") or "").strip() or None
        model = model or (attrs.get("modelName") or "").strip() or None
    if name is None:
        return None
    return name, model


def parse_preset_elements(body: str) -> list[dict[str, str | None]]:
    """Extract every preset from a /Presets body.

    Returns one dict per ``<preset>`` with keys id, name, url and image.

    Raises:
        BluOSInvalidDataError: If the body has no ``<presets`` root or any
            preset lacks id, name or url. Never returns a partial list.
    """
    if not re.search(r"<presets\b", body):
        raise BluOSInvalidDataError("Response is not a /Presets document")

    presets = extract_attribute_repeated(body, "preset", ("id", "name", "url", "image"))
    for entry in presets:
        missing = [key for key in ("id", "name", "url") if not entry.get(key)]
        if missing:
            raise BluOSInvalidDataError(f"Preset element missing {', '.join(missing)}")
        if not entry.get("image"):
            entry["image"] = None
    return presets


def parse_tune_candidates(body: str | None) -> list[str]:
    """Extract candidate stream URLs from a provider Tune response.

    Prefers the ``URL`` of ``<outline type="audio">`` elements; falls back to the
    http(s) lines of a plain newline-separated list.
    """
    if not body:
        return []
    structured = [
        attrs["URL"].strip()
        for attrs in extract_elements(body, "outline")
        if attrs.get("type") == "audio" and attrs.get("URL", "").strip()
    ]
    if structured:
        return structured
    return [line.strip() for line in body.splitlines() if line.strip().lower().startswith("http")]


def parse_radio_browse_credentials(body: str | None) -> tuple[str | None, str | None]:
    """Extract (partner_id, serial) from a /RadioBrowse response.

    The credentials live in the first percent-encoded ``URL="..."`` attribute, e.g.
    ``URL="https%3A%2F%2Fapi.radiotime.com%2F...serial%3DABC%26partnerId%3DXYZ"``.
    """
    if not body:
        return None, None
    match = re.search(r'\bURL\s*=\s*"([^"]+)"', body)
    if not match:
        return None, None
    decoded = unquote(decode_entities(match.group(1)))

    partner = re.search(r'partnerId=([^&"]+)', decoded)
    serial = re.search(r'serial=([^&"]+)', decoded)
    return (partner.group(1) if partner else None, serial.group(1) if serial else None)
