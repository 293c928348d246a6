"""
Plugin adapter exposing claude-mem to an agent host.

The host owns tool invocation, hook dispatch and its CLI; this module only
implements the host's registration contract, described by
:class:`PluginHost`.  ``ClaudeMemPlugin.register`` adds:

* three query tools (``claudemem_search``, ``claudemem_timeline``,
  ``claudemem_context``) returning a text digest plus the raw results,
* an ``afterAgentResponse`` hook that records long agent responses as
  ``discovery`` observations,
* a ``claudemem`` CLI command group (``status``, ``search``, ``stats``).

Tools and the hook read the host's configuration on every call and turn
into no-ops when the integration is disabled.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Protocol, Sequence

from . import cli
from .client import ClaudeMemClient
from .config import CONFIG_SCHEMA, PluginConfig
from .formatting import (
    NO_CONTEXT,
    NO_SEARCH_RESULTS,
    NO_TIMELINE,
    format_context,
    format_search_results,
    format_timeline,
)
from .models import OBSERVATION_TYPES

logger = logging.getLogger(__name__)

AFTER_AGENT_RESPONSE = "afterAgentResponse"

#: Responses shorter than this are not worth capturing.
MIN_CAPTURE_CHARS = 100
#: Captured responses are cut to this many characters.
MAX_CAPTURE_CHARS = 1000

TIMELINE_DEFAULT_LIMIT = 20
CONTEXT_DEFAULT_LIMIT = 5


# ---------------------------------------------------------------------------
# Host contract
# ---------------------------------------------------------------------------


@dataclass
class PluginContext:
    """Per-call context the host passes to tool factories and hooks."""

    config: Mapping[str, Any] | None = None


@dataclass
class ToolResult:
    content: str
    data: list[dict[str, Any]] | None = None


@dataclass
class ToolSpec:
    name: str
    description: str
    input_schema: dict[str, Any]
    execute: Callable[[Mapping[str, Any]], Awaitable[ToolResult]]


@dataclass
class AgentResponseEvent:
    response: str | None = None
    session_id: str | None = None


@dataclass
class CliContext:
    """Handed to CLI registrars; *program* is an argparse sub-parsers action."""

    program: Any


ToolFactory = Callable[[PluginContext], ToolSpec | None]
HookHandler = Callable[[PluginContext, AgentResponseEvent], Awaitable[None]]
CliRegistrar = Callable[[CliContext], None]


class PluginHost(Protocol):
    """Registration surface offered by the agent host."""

    def register_tool(self, factory: ToolFactory, *, names: Sequence[str]) -> None: ...

    def register_hook(self, event: str, handler: HookHandler) -> None: ...

    def register_cli(self, registrar: CliRegistrar, *, commands: Sequence[str]) -> None: ...


# ---------------------------------------------------------------------------
# Plugin
# ---------------------------------------------------------------------------


class ClaudeMemPlugin:
    """
    Persistent memory via claude-mem with semantic search.

    Parameters
    ----------
    client_factory:
        Builds a client for a configured API URL.  Defaults to
        :class:`ClaudeMemClient`; tests pass a factory bound to a fake
        transport.
    """

    id = "memory-claude-mem"
    name = "Memory (Claude-Mem)"
    description = "Persistent memory via claude-mem with semantic search"
    kind = "memory"
    config_schema = CONFIG_SCHEMA

    def __init__(
        self,
        client_factory: Callable[[str], ClaudeMemClient] = ClaudeMemClient,
    ) -> None:
        self._client_factory = client_factory
        # Strong references to in-flight capture tasks.
        self._captures: set[asyncio.Task[None]] = set()

    def register(self, host: PluginHost) -> None:
        host.register_tool(self.search_tool, names=["claudemem_search"])
        host.register_tool(self.timeline_tool, names=["claudemem_timeline"])
        host.register_tool(self.context_tool, names=["claudemem_context"])

        # Not every host supports hooks.
        register_hook = getattr(host, "register_hook", None)
        if register_hook is not None:
            register_hook(AFTER_AGENT_RESPONSE, self.capture_response)

        host.register_cli(self.register_commands, commands=["claudemem"])

    # ------------------------------------------------------------------
    # Tools
    # ------------------------------------------------------------------

    def search_tool(self, ctx: PluginContext) -> ToolSpec | None:
        config = PluginConfig.from_mapping(ctx.config)
        if not config.enabled:
            return None
        client = self._client_factory(config.api_url)

        async def execute(params: Mapping[str, Any]) -> ToolResult:
            limit = params.get("limit")
            results = await client.search(
                params["query"],
                limit=limit if limit is not None else config.max_results,
                observation_type=params.get("type"),
            )
            if not results:
                return ToolResult(content=NO_SEARCH_RESULTS)
            return ToolResult(
                content=format_search_results(results),
                data=[r.to_dict() for r in results],
            )

        return ToolSpec(
            name="claudemem_search",
            description=(
                "Search persistent memory from claude-mem.\n"
                "Uses semantic search across past observations, decisions, and learnings.\n"
                "Returns relevant context from previous sessions."
            ),
            input_schema={
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "Search query for memory retrieval",
                    },
                    "limit": {
                        "type": "number",
                        "description": f"Max results (default: {config.max_results})",
                    },
                    "type": {
                        "type": "string",
                        "description": "Filter by observation type: " + ", ".join(OBSERVATION_TYPES),
                    },
                },
                "required": ["query"],
            },
            execute=execute,
        )

    def timeline_tool(self, ctx: PluginContext) -> ToolSpec | None:
        config = PluginConfig.from_mapping(ctx.config)
        if not config.enabled:
            return None
        client = self._client_factory(config.api_url)

        async def execute(params: Mapping[str, Any]) -> ToolResult:
            limit = params.get("limit")
            timeline = await client.get_timeline(
                observation_id=params.get("observationId"),
                limit=limit if limit is not None else TIMELINE_DEFAULT_LIMIT,
            )
            if not timeline:
                return ToolResult(content=NO_TIMELINE)
            return ToolResult(
                content=format_timeline(timeline),
                data=[obs.to_dict() for obs in timeline],
            )

        return ToolSpec(
            name="claudemem_timeline",
            description=(
                "Get chronological timeline of observations around a specific point.\n"
                "Useful for understanding the sequence of events and decisions."
            ),
            input_schema={
                "type": "object",
                "properties": {
                    "observationId": {
                        "type": "number",
                        "description": "Center timeline around this observation ID",
                    },
                    "limit": {
                        "type": "number",
                        "description": "Number of observations to return",
                    },
                },
            },
            execute=execute,
        )

    def context_tool(self, ctx: PluginContext) -> ToolSpec | None:
        config = PluginConfig.from_mapping(ctx.config)
        if not config.enabled:
            return None
        client = self._client_factory(config.api_url)

        async def execute(params: Mapping[str, Any]) -> ToolResult:
            limit = params.get("limit")
            context = await client.get_recent_context(
                project_path=params.get("projectPath"),
                limit=limit if limit is not None else CONTEXT_DEFAULT_LIMIT,
            )
            if not context:
                return ToolResult(content=NO_CONTEXT)
            return ToolResult(
                content=format_context(context),
                data=[obs.to_dict() for obs in context],
            )

        return ToolSpec(
            name="claudemem_context",
            description=(
                "Get recent context for session injection.\n"
                "Returns the most relevant recent observations for the current context."
            ),
            input_schema={
                "type": "object",
                "properties": {
                    "projectPath": {
                        "type": "string",
                        "description": "Filter by project path",
                    },
                    "limit": {
                        "type": "number",
                        "description": "Max observations to return",
                    },
                },
            },
            execute=execute,
        )

    # ------------------------------------------------------------------
    # Hook
    # ------------------------------------------------------------------

    async def capture_response(self, ctx: PluginContext, event: AgentResponseEvent) -> None:
        """
        Record a significant agent response as a ``discovery`` observation.

        The observation is sent from a background task, so the hook returns
        without waiting on the service.  Failures are logged, never raised.
        """
        config = PluginConfig.from_mapping(ctx.config)
        if not config.enabled or not config.auto_capture:
            return

        response = event.response
        if not response or len(response) < MIN_CAPTURE_CHARS:
            return

        task = asyncio.create_task(
            self._record(config.api_url, response[:MAX_CAPTURE_CHARS], event.session_id)
        )
        self._captures.add(task)
        task.add_done_callback(self._capture_done)

    async def flush_captures(self) -> None:
        """Wait for in-flight captures, e.g. before the host shuts down."""
        if self._captures:
            await asyncio.gather(*self._captures, return_exceptions=True)

    async def _record(self, api_url: str, content: str, session_id: str | None) -> None:
        client = self._client_factory(api_url)
        await client.add_observation(
            "discovery",
            content,
            concepts=[],
            files=[],
            session_id=session_id,
        )

    def _capture_done(self, task: asyncio.Task[None]) -> None:
        self._captures.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.debug("Failed to capture observation: %s", exc)

    # ------------------------------------------------------------------
    # CLI
    # ------------------------------------------------------------------

    def register_commands(self, ctx: CliContext) -> argparse.ArgumentParser:
        parser = ctx.program.add_parser(
            "claudemem",
            help="Claude-mem memory management.",
            description="Claude-mem memory management.",
        )
        return cli.add_commands(parser)


plugin = ClaudeMemPlugin()
