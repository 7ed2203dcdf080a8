"""
Shared fixtures: an app wired to a fake upstream built on httpx.MockTransport.
"""
from collections.abc import Callable

import httpx
import pytest
from fastapi.testclient import TestClient

from iptv_gateway.config import CustomSettings
from iptv_gateway.main import create_app


PLAYLIST_URL = "http://playlist.example/list.m3u"
EPG_URL = "http://guide.example/epg.xml"

SAMPLE_M3U = """#EXTM3U
#EXTINF:-1 tvg-id="tvp1" tvg-logo="http://logo.example/tvp1.png" group-title="Informacje",TVP 1 HD
http://cdn.example.com/live/tvp1.m3u8
#EXTINF:-1 tvg-logo="http://logo.example/film.png" group-title="Movies HD",Film Premiere
http://vod.example.net/movie/123.ts
#EXTINF:-1 group-title="Seriale",Show S01E02
http://vod.example.net/series/1/2.mp4
"""

SAMPLE_XMLTV = """<?xml version="1.0" encoding="UTF-8"?>
<tv>
  <channel id="TVP 1 HD"><display-name>TVP 1 HD</display-name></channel>
  <programme channel="TVP 1 HD" start="20040101090000 +0000" stop="20040101100000 +0000">
    <title>Wiadomosci</title>
    <desc>Serwis informacyjny</desc>
  </programme>
  <programme channel="TVP 1 HD" start="20040101100000 +0000" stop="20040101110000 +0000">
    <title>Pogoda</title>
  </programme>
</tv>
"""


class FakeUpstream:
    """Records requests and answers them through a per-host handler table"""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {
            "playlist.example": lambda request: httpx.Response(200, text=SAMPLE_M3U),
            "guide.example": lambda request: httpx.Response(200, text=SAMPLE_XMLTV),
        }

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(request.url.host)
        if handler is None:
            return httpx.Response(404, text="unknown upstream host")
        return handler(request)

    def requests_to(self, host: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == host]


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def static_dir(tmp_path):
    root = tmp_path / "static"
    root.mkdir()
    (root / "index.html").write_text("<html><body>player</body></html>", encoding="utf-8")
    (root / "app.js").write_text("console.log('ok');", encoding="utf-8")
    (tmp_path / "secret.txt").write_text("top secret", encoding="utf-8")
    return root


@pytest.fixture
def make_settings(static_dir):
    def factory(**overrides) -> CustomSettings:
        values = {
            "m3u_url": PLAYLIST_URL,
            "epg_url": EPG_URL,
            "static_dir": static_dir,
            "proxy_timeout_sec": 5.0,
            "source_fetch_max_retries": 1,
        }
        values.update(overrides)
        return CustomSettings(**values)
    return factory


@pytest.fixture
def make_client(upstream, make_settings):
    """Build a TestClient around a fresh app; extra kwargs override settings"""
    clients: list[TestClient] = []

    def factory(**overrides) -> TestClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(upstream), follow_redirects=False)
        app = create_app(settings=make_settings(**overrides), http_client=http_client)
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()
