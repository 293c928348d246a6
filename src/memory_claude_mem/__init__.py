"""
memory-claude-mem: claude-mem persistent memory for agent hosts.

Provides an async client for claude-mem's local REST API and a plugin
adapter exposing it as agent tools, a response-capture hook and CLI
commands.
"""

from .client import ClaudeMemClient
from .config import PluginConfig
from .models import (
    AddObservationResult,
    MemoryStats,
    Observation,
    SearchResult,
    ServiceStatus,
    SessionSummary,
)
from .plugin import ClaudeMemPlugin

__all__ = [
    "ClaudeMemClient",
    "ClaudeMemPlugin",
    "PluginConfig",
    "Observation",
    "SearchResult",
    "SessionSummary",
    "ServiceStatus",
    "MemoryStats",
    "AddObservationResult",
]
