"""
Human-readable digests of claude-mem results.

Tools hand these strings back to the agent alongside the raw data; the CLI
and the MCP server print or return them directly.
"""

from __future__ import annotations

from typing import Sequence

from .models import MemoryStats, Observation, SearchResult, ServiceStatus

#: Preview lengths for observation content.
SEARCH_PREVIEW_CHARS = 200
CONTEXT_PREVIEW_CHARS = 150
TIMELINE_PREVIEW_CHARS = 100

NO_SEARCH_RESULTS = "No relevant memories found."
NO_TIMELINE = "No timeline data available."
NO_CONTEXT = "No recent context available."


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def truncate(text: str | None, max_chars: int, ellipsis: bool = False) -> str:
    """Cut *text* to *max_chars*, optionally marking the cut with ``...``."""
    if not text:
        return ""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + ("..." if ellipsis else "")


def date_part(created_at: str | None) -> str:
    """The date portion of an ISO timestamp (``""`` when absent)."""
    if not created_at:
        return ""
    return created_at.split("T")[0]


def join_or_none(values: Sequence[str] | None) -> str:
    if values is None:
        return "none"
    return ", ".join(str(v) for v in values)


# ---------------------------------------------------------------------------
# Result digests
# ---------------------------------------------------------------------------


def format_search_results(results: Sequence[SearchResult]) -> str:
    if not results:
        return NO_SEARCH_RESULTS

    entries = []
    for i, result in enumerate(results, 1):
        obs = result.observation
        entries.append(
            f"[{i}] {obs.type or 'observation'} ({date_part(obs.created_at) or 'unknown'})\n"
            f"   {truncate(obs.content, SEARCH_PREVIEW_CHARS, ellipsis=True)}\n"
            f"   Concepts: {join_or_none(obs.concepts)}\n"
            f"   Files: {join_or_none(obs.files)}"
        )
    return f"Found {len(results)} relevant memories:\n\n" + "\n\n".join(entries)


def format_timeline(observations: Sequence[Observation]) -> str:
    if not observations:
        return NO_TIMELINE

    lines = [
        f"[{obs.id if obs.id is not None else '?'}] {date_part(obs.created_at)} | "
        f"{obs.type or 'obs'}: {truncate(obs.content, TIMELINE_PREVIEW_CHARS)}"
        for obs in observations
    ]
    return f"Timeline ({len(observations)} observations):\n\n" + "\n".join(lines)


def format_context(observations: Sequence[Observation]) -> str:
    if not observations:
        return NO_CONTEXT

    lines = [
        f"• {obs.type or 'obs'}: {truncate(obs.content, CONTEXT_PREVIEW_CHARS)}"
        for obs in observations
    ]
    return "Recent context:\n\n" + "\n".join(lines)


def format_observations(observations: Sequence[Observation], header: str) -> str:
    """Generic listing used for decisions and other by-type queries."""
    if not observations:
        return f"{header}: none found."

    lines = [
        f"[{obs.id if obs.id is not None else '?'}] {date_part(obs.created_at) or 'unknown'} | "
        f"{obs.type or 'obs'}: {truncate(obs.content, SEARCH_PREVIEW_CHARS, ellipsis=True)}"
        for obs in observations
    ]
    return f"{header} ({len(observations)}):\n\n" + "\n".join(lines)


# ---------------------------------------------------------------------------
# Scalar digests
# ---------------------------------------------------------------------------


def format_status(status: ServiceStatus) -> str:
    if status.running:
        version = f" (version {status.version})" if status.version else ""
        return f"Claude-mem status: running{version}"
    return f"Claude-mem status: not running ({status.error or 'unknown error'})"


def format_stats(stats: MemoryStats) -> str:
    if stats.is_empty:
        return "Memory statistics: unavailable"

    def _show(value: object) -> str:
        return "unknown" if value is None else str(value)

    return (
        "Memory statistics:\n"
        f"  Observations: {_show(stats.total_observations)}\n"
        f"  Sessions:     {_show(stats.total_sessions)}\n"
        f"  Last updated: {_show(stats.last_updated)}"
    )
