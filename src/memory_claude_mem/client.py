"""
Async HTTP client for the claude-mem REST API.

The API runs on ``localhost:37777`` by default.  Every public method makes
one request (two when an endpoint has a fallback) and never raises: on a
connection error, timeout, non-2xx status or malformed body the failure is
logged and a safe default is returned instead.

Usage example::

    from memory_claude_mem import ClaudeMemClient

    client = ClaudeMemClient()
    results = await client.search("auth token refresh", limit=5)
    for r in results:
        print(r.observation.type, r.observation.content)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from .models import (
    AddObservationResult,
    MemoryStats,
    Observation,
    SearchResult,
    ServiceStatus,
    observations_from_payload,
    search_results_from_payload,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:37777"

#: Per-call deadlines, in seconds.
HEALTH_TIMEOUT = 3.0
STATS_TIMEOUT = 5.0
DEFAULT_TIMEOUT = 10.0

#: Limit used when ``get_how_it_works`` falls back to a plain search.
HOW_IT_WORKS_FALLBACK_LIMIT = 10


class ClaudeMemAPIError(Exception):
    """Raised internally when the service answers with a non-2xx status."""

    def __init__(self, operation: str, status_code: int) -> None:
        self.operation = operation
        self.status_code = status_code
        super().__init__(f"{operation} failed: {status_code}")


def _params(**values: Any) -> dict[str, Any]:
    """Drop query parameters whose value is absent or falsy."""
    return {k: v for k, v in values.items() if v}


class ClaudeMemClient:
    """
    Client for a claude-mem service.

    Parameters
    ----------
    base_url:
        Root URL of the service.  A trailing slash is ignored.
    _transport:
        Optional httpx transport, used by tests to stand in for the service.
    """

    def __init__(
        self,
        base_url: str | None = DEFAULT_BASE_URL,
        _transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self._transport = _transport

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_status(self) -> ServiceStatus:
        """Check whether the claude-mem service is running."""
        try:
            response = await self._request("GET", "/api/health", timeout=HEALTH_TIMEOUT)
            if not response.is_success:
                return ServiceStatus(running=False, error=f"HTTP {response.status_code}")
            data = response.json()
        except Exception as exc:
            logger.debug("Claude-mem health check error: %s", exc)
            return ServiceStatus(running=False, error=str(exc) or "Connection failed")

        version = data.get("version") if isinstance(data, dict) else None
        return ServiceStatus(running=True, version=version)

    async def search(
        self,
        query: str,
        limit: int | None = None,
        observation_type: str | None = None,
        max_date: str | None = None,
    ) -> list[SearchResult]:
        """Semantic search across stored observations."""
        params = {"query": query}
        params.update(_params(limit=limit, type=observation_type, max_date=max_date))
        try:
            data = await self._get_json("Search", "/api/search", params)
            return search_results_from_payload(data)
        except Exception as exc:
            logger.error("Claude-mem search error: %s", exc)
            return []

    async def get_timeline(
        self,
        observation_id: int | None = None,
        limit: int | None = None,
    ) -> list[Observation]:
        """Chronological observations, optionally centred on *observation_id*."""
        params = _params(observation_id=observation_id, limit=limit)
        try:
            data = await self._get_json("Timeline", "/api/timeline", params)
            return observations_from_payload(data)
        except Exception as exc:
            logger.error("Claude-mem timeline error: %s", exc)
            return []

    async def get_recent_context(
        self,
        project_path: str | None = None,
        limit: int | None = None,
    ) -> list[Observation]:
        """
        Recent observations for session injection.

        When ``/api/context/recent`` answers with a non-2xx status the same
        query is sent once to ``/api/context/inject``.
        """
        params = _params(project_path=project_path, limit=limit)
        try:
            response = await self._request("GET", "/api/context/recent", params=params)
            if not response.is_success:
                logger.debug(
                    "Claude-mem context/recent returned %s, trying context/inject",
                    response.status_code,
                )
                response = await self._request("GET", "/api/context/inject", params=params)
                if not response.is_success:
                    raise ClaudeMemAPIError("Context", response.status_code)
            return observations_from_payload(response.json())
        except Exception as exc:
            logger.error("Claude-mem context error: %s", exc)
            return []

    async def add_observation(
        self,
        observation_type: str | None,
        content: str,
        concepts: list[str] | None = None,
        files: list[str] | None = None,
        session_id: str | None = None,
    ) -> AddObservationResult:
        """Record a new observation."""
        body: dict[str, Any] = {
            "type": observation_type,
            "content": content,
            "concepts": concepts if concepts is not None else [],
            "files": files if files is not None else [],
        }
        if session_id is not None:
            body["session_id"] = session_id

        try:
            response = await self._request(
                "POST", "/api/sessions/observations", json_body=body
            )
            if not response.is_success:
                raise ClaudeMemAPIError("Add observation", response.status_code)
            data = response.json()
        except Exception as exc:
            logger.error("Claude-mem add observation error: %s", exc)
            return AddObservationResult(success=False)

        new_id = data.get("id") if isinstance(data, dict) else None
        return AddObservationResult(success=True, id=new_id)

    async def get_stats(self) -> MemoryStats:
        """Memory statistics; an empty record on failure."""
        try:
            data = await self._get_json("Stats", "/api/stats", timeout=STATS_TIMEOUT)
        except Exception as exc:
            logger.error("Claude-mem stats error: %s", exc)
            return MemoryStats()
        return MemoryStats.from_dict(data) if isinstance(data, dict) else MemoryStats()

    async def search_by_type(
        self,
        observation_type: str | None = None,
        limit: int | None = None,
    ) -> list[Observation]:
        """Observations of one type (``discovery`` when none is given)."""
        params = {"type": observation_type or "discovery"}
        params.update(_params(limit=limit))
        try:
            data = await self._get_json("Search by type", "/api/search/by-type", params)
            return observations_from_payload(data)
        except Exception as exc:
            logger.error("Claude-mem search by type error: %s", exc)
            return []

    async def get_decisions(self, limit: int = 20) -> list[Observation]:
        """Shortcut for ``search_by_type("decision")``."""
        return await self.search_by_type("decision", limit=limit)

    async def get_how_it_works(self, query: str) -> list[SearchResult]:
        """
        How-it-works explanations for *query*.

        Falls back to a plain :meth:`search` when the dedicated endpoint
        answers with a non-2xx status.
        """
        try:
            response = await self._request(
                "GET", "/api/how-it-works", params={"query": query}
            )
            if not response.is_success:
                logger.debug(
                    "Claude-mem how-it-works returned %s, falling back to search",
                    response.status_code,
                )
                return await self.search(query, limit=HOW_IT_WORKS_FALLBACK_LIMIT)
            return search_results_from_payload(response.json())
        except Exception as exc:
            logger.error("Claude-mem how-it-works error: %s", exc)
            return []

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """
        Send one request and read its body within *timeout* seconds overall.

        httpx applies its timeout to each connect, read and write separately;
        ``asyncio.wait_for`` bounds the whole exchange, so a service trickling
        its body cannot hold the call past the deadline.
        """
        if timeout is None:
            timeout = DEFAULT_TIMEOUT
        async with httpx.AsyncClient(
            base_url=self.base_url,
            transport=self._transport,
            timeout=timeout,
        ) as client:
            return await asyncio.wait_for(
                client.request(
                    method,
                    path,
                    params=params or None,
                    json=json_body,
                    headers={"Accept": "application/json"},
                ),
                timeout,
            )

    async def _get_json(
        self,
        operation: str,
        path: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """GET *path* and decode the body, raising on a non-2xx status."""
        response = await self._request("GET", path, params=params, timeout=timeout)
        if not response.is_success:
            raise ClaudeMemAPIError(operation, response.status_code)
        return response.json()
