"""
Tests for the application shell: health probes, request tagging and the
catch-all error handler.

Run with: pytest tests/test_server.py -v
"""

import httpx
import pytest
import pytest_asyncio

import server
from logging_config import RequestContextFilter, set_request_context, clear_request_context


@pytest_asyncio.fixture
async def api_client():
    transport = httpx.ASGITransport(app=server.app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


class TestHealth:

    @pytest.mark.asyncio
    async def test_liveness(self, api_client):
        response = await api_client.get("/api/health/live")

        assert response.status_code == 200
        assert response.json()["status"] == "alive"

    @pytest.mark.asyncio
    async def test_root(self, api_client):
        response = await api_client.get("/api/")

        assert response.status_code == 200
        assert response.json()["message"] == "Pro Profiles Core API"


class TestRequestTagging:

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, api_client):
        response = await api_client.get("/api/health/live", headers={"X-Request-ID": "req-abc123"})

        assert response.headers["X-Request-ID"] == "req-abc123"
        assert "X-Process-Time" in response.headers

    @pytest.mark.asyncio
    async def test_request_id_is_generated(self, api_client):
        response = await api_client.get("/api/health/live")

        assert response.headers["X-Request-ID"].startswith("req-")

    def test_context_filter_reads_current_context(self):
        record = server.logger.makeRecord("test", 20, __file__, 1, "hello", (), None)
        set_request_context(request_id="req-1", user_id="user-9")
        try:
            RequestContextFilter().filter(record)
        finally:
            clear_request_context()

        assert record.request_id == "req-1"
        assert record.user_id == "user-9"


class TestErrorHandling:

    @pytest.mark.asyncio
    async def test_unauthenticated_profile_read_is_401(self, api_client):
        response = await api_client.get("/api/professionals/1/profile")

        assert response.status_code == 401
