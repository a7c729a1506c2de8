"""Render resolved presets as an M3U backup playlist.

Only resolved presets become playlist entries. Unresolved and ignored presets
are listed as comments, with their original reference, so nothing disappears
from the backup silently.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from .models import ResolutionOutcome, ResolvedPreset

__all__ = ["ExportSummary", "render_m3u", "summarize"]

M3U_HEADER = "#EXTM3U"
M3U_TITLE = "# Exported from Blueshift"


@dataclass
class ExportSummary:
    """Presets of an export pass grouped by outcome."""

    exported: list[ResolvedPreset] = field(default_factory=list)
    skipped: list[ResolvedPreset] = field(default_factory=list)
    ignored: list[ResolvedPreset] = field(default_factory=list)

    @property
    def message(self) -> str:
        """One-line human summary, e.g. "Exported 3 preset(s), skipped 1 preset(s)"."""
        text = f"Exported {len(self.exported)} preset(s)"
        if self.skipped:
            text += f", skipped {len(self.skipped)} preset(s)"
        if self.ignored:
            text += f", ignored {len(self.ignored)} preset(s)"
        return text


def summarize(results: Iterable[ResolvedPreset]) -> ExportSummary:
    """Group resolution results by outcome, keeping their order."""
    summary = ExportSummary()
    for result in results:
        if result.outcome is ResolutionOutcome.RESOLVED:
            summary.exported.append(result)
        elif result.outcome is ResolutionOutcome.IGNORED_NON_EXPORTABLE_SCHEME:
            summary.ignored.append(result)
        else:
            summary.skipped.append(result)
    return summary


def _single_line(text: str) -> str:
    return " ".join(text.split())


def render_m3u(results: Iterable[ResolvedPreset]) -> str:
    """Render an extended M3U playlist of the resolved presets."""
    summary = summarize(results)
    lines = [M3U_HEADER, M3U_TITLE]
    if summary.skipped:
        lines.append(f"# Note: {len(summary.skipped)} preset(s) could not be resolved")
    if summary.ignored:
        lines.append(f"# Note: {len(summary.ignored)} preset(s) ignored (non-exportable scheme)")
    lines.append("")

    if summary.skipped or summary.ignored:
        lines.append("# --- Skipped / Ignored presets ---")
        for result in summary.skipped:
            lines.append(f"# SKIPPED (unresolved): {_single_line(result.name)} -> {result.original_url}")
        for result in summary.ignored:
            lines.append(f"# IGNORED (non-exportable scheme): {_single_line(result.name)} -> {result.original_url}")
        lines.append("# --- End of skipped / ignored list ---")
        lines.append("")

    for result in summary.exported:
        lines.append(f"#EXTINF:-1,{_single_line(result.name)}")
        lines.append(result.url)

    return "\n".join(lines) + "\n"
