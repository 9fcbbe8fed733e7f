"""
Async client for the private Deezer gateway and media services.

One client is created per download attempt: it owns the HTTP session and its
cookie jar, authenticates once and is closed when the attempt ends.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import aiohttp
from pydantic import ValidationError

from tunelink.exceptions import (
    AuthenticationError,
    DecodeError,
    MediaResolutionError,
    TrackNotFoundError,
    TransportError,
)
from tunelink.models.config import DEEZER_GATEWAY_URL, DEEZER_MEDIA_URL
from tunelink.models.track import Song

from .auth import DeezerAuthenticator, DeezerSession

log = logging.getLogger(__name__)

STRIPE_CIPHER = "BF_CBC_STRIPE"


class DeezerAPIClient:
    """
    Client for the Deezer ``gw-light`` gateway and ``get_url`` media service.
    """

    USER_AGENT = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) "
        "Gecko/20100101 Firefox/121.0"
    )

    def __init__(
        self,
        arl: str,
        gateway_url: str = DEEZER_GATEWAY_URL,
        media_url: str = DEEZER_MEDIA_URL,
        auth_timeout: float = 20.0,
        read_timeout: float = 30.0,
    ):
        """
        Initializes the API client.

        Args:
            arl: The long-lived ARL session cookie.
            gateway_url: URL of the ``gw-light.php`` gateway.
            media_url: URL of the media resolution service.
            auth_timeout: Total timeout for each gateway call, in seconds.
            read_timeout: Socket read timeout for the media stream, in seconds.
        """
        self.arl = arl
        self.gateway_url = gateway_url
        self.media_url = media_url
        self.auth_timeout = auth_timeout
        self.read_timeout = read_timeout

        # State set by the authenticator
        self.session: Optional[DeezerSession] = None

        self._http: Optional[aiohttp.ClientSession] = None
        self._authenticator = DeezerAuthenticator(self)

    @property
    def authenticator(self) -> DeezerAuthenticator:
        """Provides access to the authentication helper."""
        return self._authenticator

    @property
    def http(self) -> aiohttp.ClientSession:
        """The underlying HTTP session, created on first use."""
        if self._http is None or self._http.closed:
            self._http = aiohttp.ClientSession(
                cookie_jar=aiohttp.CookieJar(),
                headers={"User-Agent": self.USER_AGENT},
                timeout=aiohttp.ClientTimeout(
                    total=None,
                    sock_connect=self.auth_timeout,
                    sock_read=self.read_timeout,
                ),
            )
        return self._http

    async def close(self) -> None:
        """Closes the HTTP session and forgets the session tokens."""
        if self._http and not self._http.closed:
            await self._http.close()
        self._http = None
        self.session = None

    async def __aenter__(self) -> "DeezerAPIClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _require_session(self) -> DeezerSession:
        if self.session is None:
            raise AuthenticationError("Deezer client is not authenticated.")
        return self.session

    async def _request_json(
        self,
        method: str,
        url: str,
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        """Performs a request and decodes its JSON body."""
        request_timeout = aiohttp.ClientTimeout(total=timeout or self.auth_timeout)
        try:
            async with self.http.request(
                method, url, timeout=request_timeout, **kwargs
            ) as r:
                if r.status != 200:
                    raise TransportError(
                        f"Deezer request returned status {r.status}", status=r.status
                    )
                payload = await r.json(content_type=None)
        except json.JSONDecodeError as e:
            raise DecodeError(f"Could not decode Deezer response: {e}") from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"Deezer request failed: {e!r}") from e

        if not isinstance(payload, dict):
            raise DecodeError("Deezer response is not a JSON object.")
        return payload

    async def gateway_call(
        self,
        method: str,
        api_token: str,
        payload: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        cookies: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        Calls a ``gw-light`` method. Calls with a payload are sent as POST.

        ``cookies`` are attached to this request only and never enter the jar.
        """
        params = {
            "method": method,
            "input": "3",
            "api_version": "1.0",
            "api_token": api_token,
        }
        log.debug(f"Gateway call: {method}")
        if payload is None:
            return await self._request_json(
                "GET", self.gateway_url, timeout=timeout, params=params, cookies=cookies
            )
        return await self._request_json(
            "POST",
            self.gateway_url,
            timeout=timeout,
            params=params,
            json=payload,
            cookies=cookies,
        )

    async def fetch_track(self, track_id: str) -> Song:
        """
        Looks up the session-bound identifiers of a track.

        Raises:
            TrackNotFoundError: If the gateway has no record for the ID.
        """
        session = self._require_session()
        response = await self.gateway_call(
            "deezer.pageTrack", api_token=session.api_token, payload={"sng_id": track_id}
        )

        data = (response.get("results") or {}).get("DATA")
        if not data:
            error = response.get("error")
            detail = f": {error}" if error else ""
            raise TrackNotFoundError(f"Track {track_id} not found{detail}")

        try:
            return Song.model_validate(data)
        except ValidationError as e:
            raise DecodeError(f"Unexpected track data for {track_id}: {e}") from e

    async def fetch_media_url(self, song: Song, quality: str) -> str:
        """
        Resolves the stream URL of a track in the given quality tier.

        Raises:
            MediaResolutionError: If the media service reports an error or
                returns no sources.
        """
        session = self._require_session()
        request_body = {
            "license_token": session.license_token,
            "media": [
                {
                    "type": "FULL",
                    "formats": [{"cipher": STRIPE_CIPHER, "format": quality}],
                }
            ],
            "track_tokens": [song.track_token],
        }
        response = await self._request_json("POST", self.media_url, json=request_body)

        if message := _first_error_message(response.get("errors")):
            raise MediaResolutionError(f"Media error: {message}")

        entries = response.get("data") or []
        if not entries or not isinstance(entries[0], dict):
            raise MediaResolutionError("Media error: no data returned")
        entry = entries[0]

        if message := _first_error_message(entry.get("errors")):
            raise MediaResolutionError(f"Media error: {message}")

        try:
            url = entry["media"][0]["sources"][0]["url"]
        except (KeyError, IndexError, TypeError) as e:
            raise MediaResolutionError("Media error: no sources returned") from e
        if not url:
            raise MediaResolutionError("Media error: empty source URL")
        return url


def _first_error_message(errors: Optional[List[Any]]) -> Optional[str]:
    """Returns the provider message of the first error in a list, if any."""
    if not errors:
        return None
    first = errors[0]
    if isinstance(first, dict):
        return str(first.get("message") or first.get("code") or "unknown error")
    return str(first)
