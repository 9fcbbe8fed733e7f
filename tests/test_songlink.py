"""Tests for the song.link platform resolver."""

import pytest
from aiohttp import web

from tunelink.api.songlink import SongLinkClient, parse_links_response
from tunelink.exceptions import CancellationError, DecodeError, NotFoundError, TransportError
from tunelink.models.cancel import CancelToken


def _response(links: dict, entities: dict | None = None) -> dict:
    return {
        "linksByPlatform": {
            platform: {"url": url, "entityUniqueId": f"{platform.upper()}_SONG::1"}
            for platform, url in links.items()
        },
        "entitiesByUniqueId": entities or {},
    }


class TestParseLinksResponse:
    """Tests for parse_links_response."""

    def test_prefers_deezer(self) -> None:
        """Deezer wins over every other platform."""
        payload = _response(
            {
                "spotify": "https://open.spotify.com/track/x",
                "deezer": "https://www.deezer.com/track/1",
                "tidal": "https://tidal.com/track/2",
            },
            {
                "DEEZER_SONG::1": {
                    "title": "Song",
                    "artistName": "Artist",
                    "thumbnailUrl": "https://cdn/cover.jpg",
                }
            },
        )

        info = parse_links_response(payload)

        assert info.platform == "deezer"
        assert info.url == "https://www.deezer.com/track/1"
        assert (info.title, info.artist, info.cover) == (
            "Song",
            "Artist",
            "https://cdn/cover.jpg",
        )

    def test_priority_order(self) -> None:
        """Yandex beats Tidal, which beats YouTube and the rest."""
        payload = _response(
            {
                "appleMusic": "https://music.apple.com/x",
                "youtube": "https://youtube.com/watch?v=1",
                "tidal": "https://tidal.com/track/2",
                "yandex": "https://music.yandex.ru/track/3",
            }
        )

        assert parse_links_response(payload).platform == "yandex"

    def test_available_platforms_sorted_by_priority(self) -> None:
        """Known platforms come in priority order, unknown ones alphabetically after."""
        payload = _response(
            {
                "soundcloud": "https://soundcloud.com/a",
                "spotify": "https://open.spotify.com/track/x",
                "amazonMusic": "https://music.amazon.com/a",
                "tidal": "https://tidal.com/track/2",
            }
        )

        info = parse_links_response(payload)

        assert [link.platform for link in info.available_platforms] == [
            "tidal",
            "spotify",
            "amazonMusic",
            "soundcloud",
        ]

    def test_fallback_is_deterministic(self) -> None:
        """Without a priority platform the smallest platform id is chosen."""
        payload = _response(
            {
                "soundcloud": "https://soundcloud.com/a",
                "amazonMusic": "https://music.amazon.com/a",
                "napster": "https://napster.com/a",
            }
        )

        info = parse_links_response(payload)

        assert info.platform == "amazonMusic"
        assert info.url == "https://music.amazon.com/a"

    def test_ignores_empty_urls(self) -> None:
        """Entries with an empty URL are neither chosen nor listed."""
        payload = _response(
            {"deezer": "", "tidal": "https://tidal.com/track/2"}
        )

        info = parse_links_response(payload)

        assert info.platform == "tidal"
        assert [link.platform for link in info.available_platforms] == ["tidal"]

    def test_null_fields_are_empty(self) -> None:
        """Null URLs, records and metadata are treated as missing, not malformed."""
        payload = {
            "linksByPlatform": {
                "deezer": {"url": "https://www.deezer.com/track/1", "entityUniqueId": "D::1"},
                "napster": {"url": None, "entityUniqueId": None},
                "tidal": None,
            },
            "entitiesByUniqueId": {
                "D::1": {"title": "Song", "artistName": None, "thumbnailUrl": None},
                "N::1": None,
            },
        }

        info = parse_links_response(payload)

        assert info.platform == "deezer"
        assert [link.platform for link in info.available_platforms] == ["deezer"]
        assert (info.title, info.artist, info.cover) == ("Song", "", "")

    def test_null_maps(self) -> None:
        """A null link map means no platforms, and null entities mean no metadata."""
        with pytest.raises(NotFoundError):
            parse_links_response({"linksByPlatform": None})

        info = parse_links_response(
            {
                "linksByPlatform": {"deezer": {"url": "https://www.deezer.com/track/1"}},
                "entitiesByUniqueId": None,
            }
        )
        assert info.title == ""

    def test_missing_entity_leaves_metadata_empty(self) -> None:
        """Metadata stays empty when the linked entity is absent."""
        info = parse_links_response(_response({"deezer": "https://www.deezer.com/track/1"}))

        assert (info.title, info.artist, info.cover) == ("", "", "")

    def test_no_links(self) -> None:
        """No usable link is NotFoundError."""
        with pytest.raises(NotFoundError):
            parse_links_response(_response({"deezer": ""}))
        with pytest.raises(NotFoundError):
            parse_links_response({})

    @pytest.mark.parametrize(
        "payload",
        [
            [],
            {"linksByPlatform": []},
            {"linksByPlatform": {"deezer": "https://www.deezer.com/track/1"}},
        ],
    )
    def test_malformed(self, payload) -> None:
        """Unexpected shapes are DecodeError."""
        with pytest.raises(DecodeError):
            parse_links_response(payload)


class TestSongLinkClient:
    """Tests for SongLinkClient.resolve over HTTP."""

    async def test_resolve(self, http_server) -> None:
        """Sends url, userCountry and songIfSingle and decodes the answer."""
        seen = {}

        async def links(request: web.Request) -> web.Response:
            seen.update(request.query)
            return web.json_response(
                _response({"deezer": "https://www.deezer.com/track/1"})
            )

        server = await http_server([web.get("/links", links)])
        client = SongLinkClient(api_url=str(server.make_url("/links")), user_country="DE")

        info = await client.resolve("https://open.spotify.com/track/abc")

        assert info.platform == "deezer"
        assert seen == {
            "url": "https://open.spotify.com/track/abc",
            "userCountry": "DE",
            "songIfSingle": "true",
        }

    async def test_bad_status(self, http_server) -> None:
        """Non-200 responses are TransportError with the status."""

        async def missing(request: web.Request) -> web.Response:
            return web.json_response({"code": "could_not_resolve_entity"}, status=400)

        server = await http_server([web.get("/links", missing)])
        client = SongLinkClient(api_url=str(server.make_url("/links")))

        with pytest.raises(TransportError) as exc_info:
            await client.resolve("https://example.com/not-music")

        assert exc_info.value.status == 400

    async def test_invalid_json(self, http_server) -> None:
        """A body that is not JSON is DecodeError."""

        async def garbage(request: web.Request) -> web.Response:
            return web.Response(text="<html>oops</html>", content_type="text/html")

        server = await http_server([web.get("/links", garbage)])
        client = SongLinkClient(api_url=str(server.make_url("/links")))

        with pytest.raises(DecodeError):
            await client.resolve("https://open.spotify.com/track/abc")

    async def test_connection_refused(self) -> None:
        """Network failures are TransportError."""
        client = SongLinkClient(api_url="http://127.0.0.1:9/links", timeout=2)

        with pytest.raises(TransportError):
            await client.resolve("https://open.spotify.com/track/abc")

    async def test_cancelled(self) -> None:
        """A cancelled token stops before the request."""
        token = CancelToken()
        token.cancel()

        with pytest.raises(CancellationError):
            await SongLinkClient(api_url="http://127.0.0.1:9/links").resolve("x", token)
