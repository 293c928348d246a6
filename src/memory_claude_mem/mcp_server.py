"""
MCP (Model Context Protocol) server for claude-mem.

Exposes the claude-mem REST API as a set of Claude tools so that Claude can
search and record observations across sessions.

Run as a stdio server (Claude Desktop / claude.ai):
    python -m memory_claude_mem.mcp_server

Or via the installed entry-point:
    claudemem-mcp

Configuration (environment variables):
    CLAUDE_MEM_API_URL       - claude-mem API URL (default: http://localhost:37777)
    CLAUDE_MEM_ENABLED       - set to "false" to disable the server
    CLAUDE_MEM_MAX_RESULTS   - default number of search results (default: 10)
"""

from __future__ import annotations

import json
import logging

from mcp.server.fastmcp import FastMCP

from .client import ClaudeMemClient
from .config import PluginConfig
from .formatting import (
    format_context,
    format_observations,
    format_search_results,
    format_stats,
    format_status,
    format_timeline,
)
from .plugin import CONTEXT_DEFAULT_LIMIT, TIMELINE_DEFAULT_LIMIT

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Resolve configuration from environment (with sensible defaults)
# ---------------------------------------------------------------------------

_CONFIG = PluginConfig.from_env()

# Lazy-initialised singleton; holds nothing but the base URL.
_client: ClaudeMemClient | None = None


def _get_client() -> ClaudeMemClient:
    global _client
    if _client is None:
        _client = ClaudeMemClient(_CONFIG.api_url)
    return _client


# ---------------------------------------------------------------------------
# FastMCP server
# ---------------------------------------------------------------------------

mcp = FastMCP(
    "claude-mem",
    instructions=(
        "Persistent memory backed by claude-mem. "
        "Use `claudemem_search` to find past observations, decisions and learnings. "
        "Use `claudemem_context` at the start of a session to load recent context. "
        "Use `claudemem_timeline` to see what happened around a given observation. "
        "Use `claudemem_decisions` and `claudemem_how_it_works` for design history. "
        "Use `claudemem_remember` to record something worth keeping."
    ),
)


@mcp.tool()
async def claudemem_search(
    query: str,
    limit: int | None = None,
    type: str | None = None,  # noqa: A002
) -> str:
    """
    Search persistent memory with semantic search.

    Args:
        query: Search query for memory retrieval.
        limit: Max results (defaults to CLAUDE_MEM_MAX_RESULTS).
        type:  Filter by observation type: decision, bugfix, feature,
               refactor, discovery, change.

    Returns:
        A numbered digest of the matching observations.
    """
    results = await _get_client().search(
        query,
        limit=limit if limit is not None else _CONFIG.max_results,
        observation_type=type,
    )
    return format_search_results(results)


@mcp.tool()
async def claudemem_timeline(
    observation_id: int | None = None,
    limit: int = TIMELINE_DEFAULT_LIMIT,
) -> str:
    """
    Chronological timeline of observations around a specific point.

    Args:
        observation_id: Center the timeline around this observation ID.
        limit:          Number of observations to return (default 20).
    """
    timeline = await _get_client().get_timeline(observation_id=observation_id, limit=limit)
    return format_timeline(timeline)


@mcp.tool()
async def claudemem_context(
    project_path: str | None = None,
    limit: int = CONTEXT_DEFAULT_LIMIT,
) -> str:
    """
    Recent observations for injecting into the current session.

    Args:
        project_path: Filter by project path.
        limit:        Max observations to return (default 5).
    """
    context = await _get_client().get_recent_context(project_path=project_path, limit=limit)
    return format_context(context)


@mcp.tool()
async def claudemem_decisions(limit: int = 20) -> str:
    """List recorded design decisions."""
    decisions = await _get_client().get_decisions(limit=limit)
    return format_observations(decisions, "Decisions")


@mcp.tool()
async def claudemem_how_it_works(query: str) -> str:
    """
    Explain how part of the project works from recorded observations.

    Args:
        query: The component or behaviour to explain.
    """
    results = await _get_client().get_how_it_works(query)
    return format_search_results(results)


@mcp.tool()
async def claudemem_remember(
    content: str,
    type: str = "discovery",  # noqa: A002
    concepts: list[str] | None = None,
    files: list[str] | None = None,
    session_id: str | None = None,
) -> str:
    """
    Record a new observation.

    Args:
        content:    The fact to remember.
        type:       decision, bugfix, feature, refactor, discovery or change.
        concepts:   Concept tags.
        files:      Related file paths.
        session_id: Identifier of the current session.

    Returns:
        A confirmation message with the new observation ID.
    """
    result = await _get_client().add_observation(
        type,
        content,
        concepts=concepts,
        files=files,
        session_id=session_id,
    )
    if not result.success:
        return "Failed to record observation."
    return f"Recorded observation {result.id}."


@mcp.tool()
async def claudemem_status() -> str:
    """Check whether the claude-mem service is running."""
    return format_status(await _get_client().get_status())


@mcp.tool()
async def claudemem_stats() -> str:
    """
    Memory statistics.

    Returns:
        JSON object with totalObservations, totalSessions and lastUpdated,
        or a message when statistics are unavailable.
    """
    stats = await _get_client().get_stats()
    if stats.is_empty:
        return format_stats(stats)
    return json.dumps(stats.to_dict(), indent=2)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------


def main() -> None:
    """Run the MCP server over stdio (used by Claude Desktop)."""
    logging.basicConfig(
        level=logging.WARNING,
        format="%(name)s - %(levelname)s - %(message)s",
    )
    if not _CONFIG.enabled:
        logger.warning("claude-mem integration is disabled (CLAUDE_MEM_ENABLED); not serving.")
        return
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
