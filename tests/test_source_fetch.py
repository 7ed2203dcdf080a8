"""
Tests for source document download with retry and backoff.
"""
import asyncio

import httpx
import pytest

from iptv_gateway.services import source_fetch_service
from iptv_gateway.services.source_fetch_service import fetch_source_text


URL = "http://source.example/list.m3u"


@pytest.fixture
def sleeps(monkeypatch) -> list[float]:
    recorded: list[float] = []

    async def fake_sleep(delay):
        recorded.append(delay)

    monkeypatch.setattr(source_fetch_service.asyncio, "sleep", fake_sleep)
    return recorded


def _fetch(handler, **kwargs) -> str:
    async def main():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await fetch_source_text(client, URL, **kwargs)
    return asyncio.run(main())


class TestFetchSourceText:
    """Test fetch_source_text retry behavior."""

    def test_success(self, sleeps):
        """Test the body is returned on the first attempt."""
        assert _fetch(lambda request: httpx.Response(200, text="#EXTM3U")) == "#EXTM3U"
        assert sleeps == []

    def test_retries_server_errors_with_backoff(self, sleeps):
        """Test 5xx answers are retried with exponential waits."""
        answers = iter([httpx.Response(503), httpx.Response(502), httpx.Response(200, text="ok")])

        assert _fetch(lambda request: next(answers), max_retries=3, backoff_factor=2.0) == "ok"
        assert sleeps == [1.0, 2.0]

    def test_retries_transport_errors(self, sleeps):
        """Test connection failures are retried."""
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, text="ok")

        assert _fetch(handler, max_retries=2) == "ok"
        assert len(calls) == 2

    def test_client_error_is_not_retried(self, sleeps):
        """Test 4xx answers fail immediately."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404)

        with pytest.raises(httpx.HTTPStatusError):
            _fetch(handler, max_retries=3)
        assert len(calls) == 1
        assert sleeps == []

    def test_gives_up_after_max_retries(self, sleeps):
        """Test the last error is raised once attempts are exhausted."""
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(httpx.ReadTimeout):
            _fetch(handler, max_retries=2)
        assert sleeps == [1.0]

    def test_follows_one_redirect(self, sleeps):
        """Test a single redirect hop is followed."""
        def handler(request):
            if request.url.host == "source.example":
                return httpx.Response(301, headers={"Location": "http://mirror.example/list.m3u"})
            return httpx.Response(200, text="mirrored")

        assert _fetch(handler) == "mirrored"

    def test_second_redirect_is_an_error(self, sleeps):
        """Test a redirect chain longer than one hop is not followed."""
        def handler(request):
            return httpx.Response(302, headers={"Location": f"http://hop.example/{len(request.url.path)}"})

        with pytest.raises(httpx.HTTPStatusError):
            _fetch(handler)
