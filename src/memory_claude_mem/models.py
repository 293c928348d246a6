"""
Wire types returned by the claude-mem REST API.

All fields are optional and nothing is validated: whatever the service
returns is carried through as-is.  Each type knows how to build itself from
a decoded JSON object (``from_dict``) and how to turn itself back into the
wire shape (``to_dict``) so adapters can hand the raw data to their caller.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

#: Observation type tags understood by claude-mem.
OBSERVATION_TYPES: tuple[str, ...] = (
    "decision",
    "bugfix",
    "feature",
    "refactor",
    "discovery",
    "change",
)


def _compact(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


# ---------------------------------------------------------------------------
# Observations and search results
# ---------------------------------------------------------------------------


@dataclass
class Observation:
    """A single captured fact."""

    id: int | None = None
    type: str | None = None
    content: str | None = None
    concepts: list[str] | None = None
    files: list[str] | None = None
    created_at: str | None = None
    session_id: str | None = None
    prompt_number: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Observation:
        return cls(
            id=data.get("id"),
            type=data.get("type"),
            content=data.get("content"),
            concepts=data.get("concepts"),
            files=data.get("files"),
            created_at=data.get("created_at"),
            session_id=data.get("session_id"),
            prompt_number=data.get("prompt_number"),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact(asdict(self))


@dataclass
class SearchResult:
    """An observation paired with its relevance score and highlights."""

    observation: Observation = field(default_factory=Observation)
    score: float | None = None
    highlights: list[str] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SearchResult:
        """
        Build a result from one entry of a search response.

        Entries normally nest the observation under ``observation``; an entry
        without it is taken to be the observation itself.
        """
        nested = data.get("observation")
        if isinstance(nested, dict):
            observation = Observation.from_dict(nested)
        else:
            observation = Observation.from_dict(data)
        return cls(
            observation=observation,
            score=data.get("score"),
            highlights=data.get("highlights"),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "observation": self.observation.to_dict(),
                "score": self.score,
                "highlights": self.highlights,
            }
        )


@dataclass
class SessionSummary:
    """Session-level rollup as stored by claude-mem."""

    id: str | None = None
    request: str | None = None
    investigated: list[str] | None = None
    learned: list[str] | None = None
    completed: list[str] | None = None
    next_steps: list[str] | None = None
    created_at: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionSummary:
        return cls(
            id=data.get("id"),
            request=data.get("request"),
            investigated=data.get("investigated"),
            learned=data.get("learned"),
            completed=data.get("completed"),
            next_steps=data.get("next_steps"),
            created_at=data.get("created_at"),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact(asdict(self))


# ---------------------------------------------------------------------------
# Scalar call results
# ---------------------------------------------------------------------------


@dataclass
class ServiceStatus:
    """Result of a health check."""

    running: bool
    version: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(asdict(self))


@dataclass
class MemoryStats:
    """
    Memory statistics.  A record with every field ``None`` is what a failed
    stats call returns.
    """

    total_observations: int | None = None
    total_sessions: int | None = None
    last_updated: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MemoryStats:
        return cls(
            total_observations=data.get("totalObservations"),
            total_sessions=data.get("totalSessions"),
            last_updated=data.get("lastUpdated"),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "totalObservations": self.total_observations,
                "totalSessions": self.total_sessions,
                "lastUpdated": self.last_updated,
            }
        )

    @property
    def is_empty(self) -> bool:
        return not self.to_dict()


@dataclass
class AddObservationResult:
    success: bool
    id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(asdict(self))


# ---------------------------------------------------------------------------
# Response-shape decoding
# ---------------------------------------------------------------------------


def unwrap_payload(payload: Any, field_name: str) -> list[Any]:
    """
    Extract the item list from a response body.

    The service answers either with a wrapper object holding the list under
    *field_name* (``{"results": [...]}``) or with the bare list.  The wrapper
    is tried first; anything that is neither shape yields an empty list.
    """
    if isinstance(payload, dict):
        items = payload.get(field_name)
        return items if isinstance(items, list) else []
    if isinstance(payload, list):
        return payload
    return []


def observations_from_payload(payload: Any) -> list[Observation]:
    """Decode an ``observations`` response into :class:`Observation` objects."""
    return [
        Observation.from_dict(item)
        for item in unwrap_payload(payload, "observations")
        if isinstance(item, dict)
    ]


def search_results_from_payload(payload: Any) -> list[SearchResult]:
    """Decode a ``results`` response into :class:`SearchResult` objects."""
    return [
        SearchResult.from_dict(item)
        for item in unwrap_payload(payload, "results")
        if isinstance(item, dict)
    ]
