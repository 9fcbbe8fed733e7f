"""Test fixtures and configuration."""

from dataclasses import dataclass, field
from typing import Any, Optional

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer
from Crypto.Cipher import Blowfish

from tunelink.media.crypto import BLOWFISH_IV, CHUNK_SIZE, derive_track_key
from tunelink.models.track import PlatformLink, TrackInfo

SECRET = "g4el58wc0zvf9na1"
GOOD_ARL = "good-arl-cookie"
API_TOKEN = "api-token-123"
LICENSE_TOKEN = "license-token-456"


def make_plaintext(size: int) -> bytes:
    """Deterministic, non-repeating-per-chunk audio stand-in."""
    return bytes((i * 7 + i // CHUNK_SIZE) % 256 for i in range(size))


def encrypt_stripe(plaintext: bytes, key: bytes) -> bytes:
    """Applies the striped Blowfish pattern the way Deezer serves files."""
    out = bytearray()
    for index, offset in enumerate(range(0, len(plaintext), CHUNK_SIZE)):
        chunk = plaintext[offset : offset + CHUNK_SIZE]
        if index % 3 == 0 and len(chunk) == CHUNK_SIZE:
            chunk = Blowfish.new(key, Blowfish.MODE_CBC, iv=BLOWFISH_IV).encrypt(chunk)
        out.extend(chunk)
    return bytes(out)


@dataclass
class FakeDeezer:
    """State and recorded traffic of the fake Deezer services."""

    server: TestServer
    tracks: dict[str, bytes] = field(default_factory=dict)
    media_errors: list[dict[str, Any]] = field(default_factory=list)
    entry_errors: list[dict[str, Any]] = field(default_factory=list)
    stream_status: int = 200
    truncate_stream: bool = False
    calls: list[str] = field(default_factory=list)
    media_requests: list[dict[str, Any]] = field(default_factory=list)
    arl_seen: dict[str, list[Optional[str]]] = field(default_factory=dict)

    @property
    def gateway_url(self) -> str:
        return str(self.server.make_url("/ajax/gw-light.php"))

    @property
    def media_url(self) -> str:
        return str(self.server.make_url("/v1/get_url"))

    def _record_arl(self, request: web.Request) -> None:
        self.arl_seen.setdefault(request.path, []).append(request.cookies.get("arl"))

    def add_track(self, track_id: str, plaintext: bytes) -> None:
        self.tracks[track_id] = encrypt_stripe(
            plaintext, derive_track_key(SECRET, track_id)
        )

    async def gateway(self, request: web.Request) -> web.Response:
        method = request.query.get("method", "")
        self.calls.append(method)
        self._record_arl(request)

        if method == "deezer.getUserData":
            user_id = 42 if request.cookies.get("arl") == GOOD_ARL else 0
            return web.json_response(
                {
                    "results": {
                        "checkForm": API_TOKEN if user_id else "",
                        "USER": {
                            "USER_ID": user_id,
                            "OPTIONS": {"license_token": LICENSE_TOKEN},
                        },
                    }
                }
            )

        if method == "deezer.pageTrack":
            if request.query.get("api_token") != API_TOKEN:
                return web.json_response({"error": {"VALID_TOKEN_REQUIRED": "x"}})
            body = await request.json()
            sng_id = body["sng_id"]
            if sng_id not in self.tracks:
                return web.json_response(
                    {"error": {"DATA_ERROR": "song_not_found"}, "results": {}}
                )
            return web.json_response(
                {"results": {"DATA": {"SNG_ID": sng_id, "TRACK_TOKEN": f"tt-{sng_id}"}}}
            )

        return web.json_response({"error": {"METHOD": "unknown"}}, status=400)

    async def media(self, request: web.Request) -> web.Response:
        self._record_arl(request)
        body = await request.json()
        self.media_requests.append(body)
        if self.media_errors:
            return web.json_response({"errors": self.media_errors})

        token = body["track_tokens"][0]
        entry: dict[str, Any] = {}
        if self.entry_errors:
            entry["errors"] = self.entry_errors
        else:
            track_id = token.removeprefix("tt-")
            stream_url = str(request.url.with_path(f"/stream/{track_id}"))
            entry["media"] = [{"sources": [{"url": stream_url, "provider": "ak"}]}]
        return web.json_response({"data": [entry]})

    async def stream(self, request: web.Request) -> web.StreamResponse:
        self._record_arl(request)
        if self.stream_status != 200:
            return web.Response(status=self.stream_status)
        body = self.tracks[request.match_info["track_id"]]
        if not self.truncate_stream:
            return web.Response(body=body, content_type="audio/mpeg")

        # Promise more bytes than are sent, then drop the connection
        response = web.StreamResponse()
        response.content_length = len(body) * 2
        await response.prepare(request)
        await response.write(body)
        request.transport.close()
        return response


@pytest.fixture
async def fake_deezer():
    """A running fake of the Deezer gateway, media service and CDN."""
    app = web.Application()
    server = TestServer(app)
    state = FakeDeezer(server=server)
    app.router.add_route("*", "/ajax/gw-light.php", state.gateway)
    app.router.add_post("/v1/get_url", state.media)
    app.router.add_get("/stream/{track_id}", state.stream)

    await server.start_server()
    yield state
    await server.close()


@pytest.fixture
async def http_server():
    """Starts an aiohttp server for a caller-supplied set of routes."""
    servers: list[TestServer] = []

    async def start(routes: list[web.RouteDef]) -> TestServer:
        app = web.Application()
        app.add_routes(routes)
        server = TestServer(app)
        await server.start_server()
        servers.append(server)
        return server

    yield start
    for server in servers:
        await server.close()


@pytest.fixture
def sample_track_info() -> TrackInfo:
    """A track resolved to Deezer with a YouTube fallback."""
    return TrackInfo(
        title="Song",
        artist="Artist",
        cover="https://example.com/cover.jpg",
        platform="deezer",
        url="https://www.deezer.com/track/3135556",
        available_platforms=(
            PlatformLink(platform="deezer", url="https://www.deezer.com/track/3135556"),
            PlatformLink(platform="youtube", url="https://www.youtube.com/watch?v=abc"),
            PlatformLink(platform="spotify", url="https://open.spotify.com/track/xyz"),
        ),
    )
