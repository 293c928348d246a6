"""Tests for ClaudeMemClient against a simulated claude-mem service."""

from __future__ import annotations

import asyncio
import contextlib
import json
import time

import httpx
import pytest

import memory_claude_mem.client as client_module
from memory_claude_mem.client import (
    DEFAULT_TIMEOUT,
    HEALTH_TIMEOUT,
    STATS_TIMEOUT,
    ClaudeMemClient,
)
from memory_claude_mem.models import (
    AddObservationResult,
    MemoryStats,
    Observation,
    SearchResult,
)

OBS_A = {
    "id": 1,
    "type": "decision",
    "content": "Use httpx for the client.",
    "concepts": ["http"],
    "files": ["client.py"],
    "created_at": "2026-01-02T10:00:00Z",
}
OBS_B = {"id": 2, "type": "bugfix", "content": "Fixed trailing slash handling."}


def _timeout_of(request: httpx.Request) -> float:
    return request.extensions["timeout"]["read"]


@contextlib.asynccontextmanager
async def _trickling_server(interval: float = 0.2, length: int = 40):
    """
    A real local HTTP server that sends its headers at once and then the
    body one byte per *interval*, so no single read ever times out.
    """
    handlers: set[asyncio.Task] = set()

    async def _handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        handlers.add(asyncio.current_task())
        try:
            await reader.readuntil(b"\r\n\r\n")
            writer.write(
                b"HTTP/1.1 200 OK\r\n"
                b"Content-Type: application/json\r\n"
                + f"Content-Length: {length}\r\n\r\n".encode()
            )
            await writer.drain()
            for _ in range(length):
                await asyncio.sleep(interval)
                writer.write(b" ")
                await writer.drain()
        except (ConnectionError, asyncio.IncompleteReadError):
            pass
        finally:
            writer.close()

    server = await asyncio.start_server(_handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    try:
        yield f"http://127.0.0.1:{port}"
    finally:
        for task in handlers:
            task.cancel()
        await asyncio.gather(*handlers, return_exceptions=True)
        server.close()
        await server.wait_closed()


class TestClientConstruction:
    def test_default_base_url(self):
        assert ClaudeMemClient().base_url == "http://localhost:37777"

    def test_trailing_slash_is_stripped(self):
        assert ClaudeMemClient("http://mem:9000/").base_url == "http://mem:9000"

    def test_none_falls_back_to_default(self):
        assert ClaudeMemClient(None).base_url == "http://localhost:37777"

    @pytest.mark.asyncio
    async def test_requests_go_to_configured_base_url(self, service):
        service.route("GET", "/api/stats", json={})
        client = ClaudeMemClient("http://mem.local:9000/", _transport=service.transport())
        await client.get_stats()
        assert str(service.requests[0].url).startswith("http://mem.local:9000/api/stats")


class TestGetStatus:
    @pytest.mark.asyncio
    async def test_running_with_version(self, client, service):
        service.route("GET", "/api/health", json={"version": "4.2.0"})
        status = await client.get_status()
        assert status.running is True
        assert status.version == "4.2.0"
        assert status.error is None

    @pytest.mark.asyncio
    async def test_uses_three_second_timeout(self, client, service):
        service.route("GET", "/api/health", json={})
        await client.get_status()
        assert _timeout_of(service.requests[0]) == HEALTH_TIMEOUT == 3.0

    @pytest.mark.asyncio
    async def test_non_success_reports_http_status(self, client, service):
        service.route("GET", "/api/health", status=503)
        status = await client.get_status()
        assert status.running is False
        assert status.error == "HTTP 503"

    @pytest.mark.asyncio
    async def test_connection_error_reports_not_running(self, client, service):
        service.route("GET", "/api/health", exc=httpx.ConnectError)
        status = await client.get_status()
        assert status.running is False
        assert status.error

    @pytest.mark.asyncio
    async def test_timeout_reports_not_running(self, client, service):
        service.route("GET", "/api/health", exc=httpx.ReadTimeout)
        status = await client.get_status()
        assert status.running is False


class TestTotalDeadline:
    @pytest.mark.asyncio
    async def test_slow_body_cannot_outlast_health_deadline(self, monkeypatch):
        monkeypatch.setattr(client_module, "HEALTH_TIMEOUT", 0.5)
        async with _trickling_server() as url:
            started = time.monotonic()
            status = await ClaudeMemClient(url).get_status()
            elapsed = time.monotonic() - started
        assert status.running is False
        assert status.error
        assert elapsed < 2.0

    @pytest.mark.asyncio
    async def test_slow_body_cannot_outlast_default_deadline(self, monkeypatch):
        monkeypatch.setattr(client_module, "DEFAULT_TIMEOUT", 0.5)
        async with _trickling_server() as url:
            started = time.monotonic()
            results = await ClaudeMemClient(url).search("slow")
            elapsed = time.monotonic() - started
        assert results == []
        assert elapsed < 2.0


class TestSearch:
    @pytest.mark.asyncio
    async def test_wrapper_and_bare_shapes_decode_identically(self, client, service):
        items = [{"observation": OBS_A, "score": 0.9}, {"observation": OBS_B}]

        service.route("GET", "/api/search", json={"results": items})
        wrapped = await client.search("http")

        service.route("GET", "/api/search", json=items)
        bare = await client.search("http")

        assert wrapped == bare
        assert len(wrapped) == 2
        assert isinstance(wrapped[0], SearchResult)
        assert wrapped[0].observation.content == OBS_A["content"]
        assert wrapped[0].score == 0.9

    @pytest.mark.asyncio
    async def test_builds_query_params(self, client, service):
        service.route("GET", "/api/search", json={"results": []})
        await client.search("auth", limit=5, observation_type="bugfix", max_date="2026-01-01")
        params = service.requests[0].url.params
        assert params["query"] == "auth"
        assert params["limit"] == "5"
        assert params["type"] == "bugfix"
        assert params["max_date"] == "2026-01-01"

    @pytest.mark.asyncio
    async def test_omits_absent_params(self, client, service):
        service.route("GET", "/api/search", json={"results": []})
        await client.search("auth", limit=0)
        params = service.requests[0].url.params
        assert dict(params) == {"query": "auth"}

    @pytest.mark.asyncio
    async def test_uses_default_timeout(self, client, service):
        service.route("GET", "/api/search", json=[])
        await client.search("x")
        assert _timeout_of(service.requests[0]) == DEFAULT_TIMEOUT == 10.0

    @pytest.mark.asyncio
    async def test_non_success_returns_empty_list(self, client, service):
        service.route("GET", "/api/search", status=500)
        assert await client.search("x") == []

    @pytest.mark.asyncio
    async def test_client_error_status_returns_empty_list(self, client, service):
        service.route("GET", "/api/search", status=400)
        assert await client.search("x") == []

    @pytest.mark.asyncio
    async def test_timeout_returns_empty_list(self, client, service):
        service.route("GET", "/api/search", exc=httpx.ReadTimeout)
        assert await client.search("x") == []

    @pytest.mark.asyncio
    async def test_malformed_json_returns_empty_list(self, client, service):
        service.route("GET", "/api/search", text="<html>oops</html>")
        assert await client.search("x") == []

    @pytest.mark.asyncio
    async def test_wrapper_without_field_returns_empty_list(self, client, service):
        service.route("GET", "/api/search", json={"unexpected": True})
        assert await client.search("x") == []

    @pytest.mark.asyncio
    async def test_failure_is_logged(self, client, service, caplog):
        service.route("GET", "/api/search", status=500)
        with caplog.at_level("ERROR", logger="memory_claude_mem.client"):
            await client.search("x")
        assert "search error" in caplog.text


class TestGetTimeline:
    @pytest.mark.asyncio
    async def test_wrapper_and_bare_shapes_decode_identically(self, client, service):
        service.route("GET", "/api/timeline", json={"observations": [OBS_A, OBS_B]})
        wrapped = await client.get_timeline()
        service.route("GET", "/api/timeline", json=[OBS_A, OBS_B])
        bare = await client.get_timeline()
        assert wrapped == bare
        assert [o.id for o in wrapped] == [1, 2]

    @pytest.mark.asyncio
    async def test_builds_query_params(self, client, service):
        service.route("GET", "/api/timeline", json=[])
        await client.get_timeline(observation_id=42, limit=20)
        params = service.requests[0].url.params
        assert params["observation_id"] == "42"
        assert params["limit"] == "20"

    @pytest.mark.asyncio
    async def test_no_params_when_unset(self, client, service):
        service.route("GET", "/api/timeline", json=[])
        await client.get_timeline()
        assert not service.requests[0].url.params

    @pytest.mark.asyncio
    async def test_connection_error_returns_empty_list(self, client, service):
        service.route("GET", "/api/timeline", exc=httpx.ConnectError)
        assert await client.get_timeline() == []


class TestGetRecentContext:
    @pytest.mark.asyncio
    async def test_primary_success_skips_fallback(self, client, service):
        service.route("GET", "/api/context/recent", json={"observations": [OBS_A]})
        result = await client.get_recent_context(project_path="/repo", limit=5)
        assert [o.id for o in result] == [1]
        assert service.calls("/api/context/inject") == []
        params = service.requests[0].url.params
        assert params["project_path"] == "/repo"
        assert params["limit"] == "5"

    @pytest.mark.asyncio
    async def test_falls_back_to_inject_once(self, client, service):
        service.route("GET", "/api/context/recent", status=404)
        service.route("GET", "/api/context/inject", json=[OBS_B])
        result = await client.get_recent_context(limit=3)
        assert [o.id for o in result] == [2]
        assert len(service.calls("/api/context/recent")) == 1
        inject_calls = service.calls("/api/context/inject")
        assert len(inject_calls) == 1
        assert inject_calls[0].url.params["limit"] == "3"

    @pytest.mark.asyncio
    async def test_fallback_failure_returns_empty_list(self, client, service):
        service.route("GET", "/api/context/recent", status=500)
        service.route("GET", "/api/context/inject", status=500)
        assert await client.get_recent_context() == []
        assert len(service.calls("/api/context/inject")) == 1

    @pytest.mark.asyncio
    async def test_primary_timeout_returns_empty_list(self, client, service):
        service.route("GET", "/api/context/recent", exc=httpx.ReadTimeout)
        assert await client.get_recent_context() == []


class TestAddObservation:
    @pytest.mark.asyncio
    async def test_defaults_concepts_and_files_to_empty_lists(self, client, service):
        service.route("POST", "/api/sessions/observations", json={"id": 42})
        result = await client.add_observation("bugfix", "fixed X")
        assert result == AddObservationResult(success=True, id=42)

        body = json.loads(service.requests[0].content)
        assert body == {"type": "bugfix", "content": "fixed X", "concepts": [], "files": []}

    @pytest.mark.asyncio
    async def test_sends_all_fields(self, client, service):
        service.route("POST", "/api/sessions/observations", json={"id": 7})
        await client.add_observation(
            "feature",
            "Added stats command.",
            concepts=["cli"],
            files=["cli.py"],
            session_id="sess-1",
        )
        request = service.requests[0]
        assert request.method == "POST"
        body = json.loads(request.content)
        assert body["concepts"] == ["cli"]
        assert body["files"] == ["cli.py"]
        assert body["session_id"] == "sess-1"

    @pytest.mark.asyncio
    async def test_non_success_returns_failure(self, client, service):
        service.route("POST", "/api/sessions/observations", status=422)
        result = await client.add_observation("change", "x")
        assert result.success is False
        assert result.id is None

    @pytest.mark.asyncio
    async def test_timeout_returns_failure(self, client, service):
        service.route("POST", "/api/sessions/observations", exc=httpx.WriteTimeout)
        assert (await client.add_observation("change", "x")).success is False


class TestGetStats:
    @pytest.mark.asyncio
    async def test_decodes_stats(self, client, service):
        service.route(
            "GET",
            "/api/stats",
            json={"totalObservations": 120, "totalSessions": 8, "lastUpdated": "2026-03-01"},
        )
        stats = await client.get_stats()
        assert stats == MemoryStats(total_observations=120, total_sessions=8, last_updated="2026-03-01")

    @pytest.mark.asyncio
    async def test_uses_five_second_timeout(self, client, service):
        service.route("GET", "/api/stats", json={})
        await client.get_stats()
        assert _timeout_of(service.requests[0]) == STATS_TIMEOUT == 5.0

    @pytest.mark.asyncio
    async def test_non_success_returns_empty_record(self, client, service):
        service.route("GET", "/api/stats", status=500)
        stats = await client.get_stats()
        assert stats.is_empty

    @pytest.mark.asyncio
    async def test_connection_error_returns_empty_record(self, client, service):
        service.route("GET", "/api/stats", exc=httpx.ConnectError)
        assert (await client.get_stats()).is_empty


class TestSearchByType:
    @pytest.mark.asyncio
    async def test_defaults_type_to_discovery(self, client, service):
        service.route("GET", "/api/search/by-type", json=[])
        await client.search_by_type()
        assert service.requests[0].url.params["type"] == "discovery"

    @pytest.mark.asyncio
    async def test_decodes_observations(self, client, service):
        service.route("GET", "/api/search/by-type", json={"observations": [OBS_B]})
        result = await client.search_by_type("bugfix", limit=3)
        assert result == [Observation.from_dict(OBS_B)]
        params = service.requests[0].url.params
        assert params["type"] == "bugfix"
        assert params["limit"] == "3"

    @pytest.mark.asyncio
    async def test_non_success_returns_empty_list(self, client, service):
        service.route("GET", "/api/search/by-type", status=502)
        assert await client.search_by_type("feature") == []

    @pytest.mark.asyncio
    async def test_get_decisions_uses_decision_type(self, client, service):
        service.route("GET", "/api/search/by-type", json=[OBS_A])
        result = await client.get_decisions(limit=5)
        assert [o.type for o in result] == ["decision"]
        params = service.requests[0].url.params
        assert params["type"] == "decision"
        assert params["limit"] == "5"

    @pytest.mark.asyncio
    async def test_get_decisions_default_limit(self, client, service):
        service.route("GET", "/api/search/by-type", json=[])
        await client.get_decisions()
        assert service.requests[0].url.params["limit"] == "20"


class TestGetHowItWorks:
    @pytest.mark.asyncio
    async def test_decodes_results(self, client, service):
        service.route("GET", "/api/how-it-works", json={"results": [{"observation": OBS_A}]})
        result = await client.get_how_it_works("client")
        assert result[0].observation.id == 1
        assert service.requests[0].url.params["query"] == "client"
        assert service.calls("/api/search") == []

    @pytest.mark.asyncio
    async def test_falls_back_to_search_with_limit_ten(self, client, service):
        service.route("GET", "/api/how-it-works", status=404)
        service.route("GET", "/api/search", json={"results": [{"observation": OBS_B}]})
        result = await client.get_how_it_works("slash")
        assert [r.observation.id for r in result] == [2]

        search_calls = service.calls("/api/search")
        assert len(search_calls) == 1
        assert search_calls[0].url.params["query"] == "slash"
        assert search_calls[0].url.params["limit"] == "10"

    @pytest.mark.asyncio
    async def test_fallback_failure_returns_empty_list(self, client, service):
        service.route("GET", "/api/how-it-works", status=404)
        service.route("GET", "/api/search", status=500)
        assert await client.get_how_it_works("x") == []

    @pytest.mark.asyncio
    async def test_timeout_returns_empty_list(self, client, service):
        service.route("GET", "/api/how-it-works", exc=httpx.ReadTimeout)
        assert await client.get_how_it_works("x") == []
        assert service.calls("/api/search") == []
