"""
Shared pytest fixtures for memory-claude-mem tests.

The claude-mem service is simulated with ``httpx.MockTransport``: a
``FakeService`` maps (method, path) pairs to canned responses and records
every request it receives, so tests can assert on query parameters, bodies
and per-call timeouts without any network access.
"""

from __future__ import annotations

from typing import Any

import httpx
import pytest

from memory_claude_mem.client import ClaudeMemClient


class FakeService:
    """
    Stand-in for a claude-mem server.

    Routes are registered with :meth:`route`; anything unrouted answers 404.
    A route may carry an exception instead of a response, which is raised
    from the transport exactly as httpx would raise a network failure.
    """

    def __init__(self) -> None:
        self._routes: dict[tuple[str, str], dict[str, Any]] = {}
        self.requests: list[httpx.Request] = []

    def route(
        self,
        method: str,
        path: str,
        *,
        status: int = 200,
        json: Any = None,
        text: str | None = None,
        exc: type[Exception] | None = None,
    ) -> None:
        self._routes[(method, path)] = {"status": status, "json": json, "text": text, "exc": exc}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        canned = self._routes.get((request.method, request.url.path))
        if canned is None:
            return httpx.Response(404, json={"error": "not found"})
        if canned["exc"] is not None:
            raise canned["exc"]("simulated failure", request=request)
        if canned["text"] is not None:
            return httpx.Response(canned["status"], text=canned["text"])
        return httpx.Response(canned["status"], json=canned["json"])

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture()
def service() -> FakeService:
    return FakeService()


@pytest.fixture()
def client(service: FakeService) -> ClaudeMemClient:
    """Client wired to the fake service."""
    return ClaudeMemClient(_transport=service.transport())


@pytest.fixture()
def client_factory(service: FakeService):
    """Factory with the ``ClaudeMemClient(base_url)`` signature, bound to the fake service."""

    def _factory(base_url: str | None = None) -> ClaudeMemClient:
        return ClaudeMemClient(base_url, _transport=service.transport())

    return _factory
