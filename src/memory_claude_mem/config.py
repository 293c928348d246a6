"""
Plugin configuration.

The host hands the plugin a mapping using camelCase keys (``apiUrl``,
``enabled``, ``maxResults``, ``autoCapture``).  The standalone CLI and the
MCP server read the same settings from the environment:

    CLAUDE_MEM_API_URL       - claude-mem API URL (default: http://localhost:37777)
    CLAUDE_MEM_ENABLED       - enable the integration (default: true)
    CLAUDE_MEM_MAX_RESULTS   - default search result count (default: 10)
    CLAUDE_MEM_AUTO_CAPTURE  - capture agent responses (default: true)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping

from .client import DEFAULT_BASE_URL

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 10

_FALSE_VALUES = {"0", "false", "off", "no"}

CONFIG_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "apiUrl": {
            "type": "string",
            "description": f"Claude-mem API URL (default: {DEFAULT_BASE_URL})",
            "default": DEFAULT_BASE_URL,
        },
        "enabled": {
            "type": "boolean",
            "description": "Enable claude-mem integration",
            "default": True,
        },
        "maxResults": {
            "type": "number",
            "description": "Maximum search results to return",
            "default": DEFAULT_MAX_RESULTS,
        },
        "autoCapture": {
            "type": "boolean",
            "description": "Automatically capture observations from conversations",
            "default": True,
        },
    },
}


def _pick(raw: Mapping[str, Any], camel: str, snake: str) -> Any:
    if camel in raw:
        return raw[camel]
    return raw.get(snake)


def _env_flag(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() not in _FALSE_VALUES


def _max_results(value: Any, source: str) -> int:
    """Parse a max-results setting, falling back to the default when malformed."""
    if value is None or value == "":
        return DEFAULT_MAX_RESULTS
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(
            "Ignoring invalid %s %r; using %d", source, value, DEFAULT_MAX_RESULTS
        )
        return DEFAULT_MAX_RESULTS


@dataclass(frozen=True)
class PluginConfig:
    api_url: str = DEFAULT_BASE_URL
    enabled: bool = True
    max_results: int = DEFAULT_MAX_RESULTS
    auto_capture: bool = True

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> PluginConfig:
        """
        Build a config from the host's mapping.

        Missing keys take their defaults; ``enabled`` and ``autoCapture`` are
        only switched off by an explicit ``False``.
        """
        raw = raw or {}
        api_url = _pick(raw, "apiUrl", "api_url")
        max_results = _pick(raw, "maxResults", "max_results")
        return cls(
            api_url=api_url or DEFAULT_BASE_URL,
            enabled=_pick(raw, "enabled", "enabled") is not False,
            max_results=_max_results(max_results, "maxResults"),
            auto_capture=_pick(raw, "autoCapture", "auto_capture") is not False,
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> PluginConfig:
        """Build a config from ``CLAUDE_MEM_*`` environment variables."""
        env = os.environ if environ is None else environ
        max_results = env.get("CLAUDE_MEM_MAX_RESULTS")
        return cls(
            api_url=env.get("CLAUDE_MEM_API_URL") or DEFAULT_BASE_URL,
            enabled=_env_flag(env.get("CLAUDE_MEM_ENABLED"), True),
            max_results=_max_results(max_results, "CLAUDE_MEM_MAX_RESULTS"),
            auto_capture=_env_flag(env.get("CLAUDE_MEM_AUTO_CAPTURE"), True),
        )
