"""
Platform downloaders: each one turns a platform-specific track URL into raw
audio bytes.
"""

import asyncio
import logging
from typing import Optional, Protocol, runtime_checkable

import aiohttp

from tunelink.api.client import DeezerAPIClient
from tunelink.exceptions import ConfigurationError, InvalidInputError, TransportError
from tunelink.models.cancel import CancelToken
from tunelink.models.config import AppConfig
from tunelink.models.track import Platform, Song
from tunelink.utils.path import extract_track_id, is_deezer_url

from .crypto import CHUNK_SIZE, StripeDecryptor, derive_track_key

log = logging.getLogger(__name__)


@runtime_checkable
class TrackDownloader(Protocol):
    """Protocol for platform download backends."""

    @property
    def platform(self) -> str:
        """The platform identifier this downloader serves."""
        ...

    def can_handle(self, url: str) -> bool:
        """Whether the URL belongs to this downloader's platform."""
        ...

    async def fetch(self, url: str, cancel_token: Optional[CancelToken] = None) -> bytes:
        """Downloads the audio behind the URL and returns its bytes."""
        ...


class DeezerDownloader:
    """
    Downloads and decrypts tracks from Deezer.

    Every call authenticates a fresh session with the ARL cookie, resolves the
    track's media URL and streams it through a StripeDecryptor. The session is
    closed when the call returns.
    """

    def __init__(
        self,
        arl: str,
        secret: str,
        quality: str = "MP3_128",
        gateway_url: Optional[str] = None,
        media_url: Optional[str] = None,
        auth_timeout: float = 20.0,
        read_timeout: float = 30.0,
    ):
        self.arl = arl
        self.secret = secret
        self.quality = quality
        self._client_options = {
            "auth_timeout": auth_timeout,
            "read_timeout": read_timeout,
        }
        if gateway_url:
            self._client_options["gateway_url"] = gateway_url
        if media_url:
            self._client_options["media_url"] = media_url

    @classmethod
    def from_config(cls, config: AppConfig) -> "DeezerDownloader":
        return cls(
            arl=config.arl,
            secret=config.secret,
            quality=config.quality,
            gateway_url=config.deezer_gateway_url,
            media_url=config.deezer_media_url,
            auth_timeout=config.auth_timeout,
            read_timeout=config.stream_read_timeout,
        )

    @property
    def platform(self) -> str:
        return Platform.DEEZER.value

    def can_handle(self, url: str) -> bool:
        return is_deezer_url(url)

    async def fetch(self, url: str, cancel_token: Optional[CancelToken] = None) -> bytes:
        """
        Fetches the decrypted audio of a Deezer track URL.

        Raises:
            InvalidInputError: If the URL does not end in a numeric track ID.
            AuthenticationError: If the ARL cookie is rejected.
            TrackNotFoundError: If Deezer has no such track.
            MediaResolutionError: If the media service reports an error.
            TransportError: On network failures or non-success statuses.
            CancellationError: If the cancel token fires mid-download.
        """
        track_id = extract_track_id(url)
        if not track_id:
            raise InvalidInputError(f"Could not extract a track ID from '{url}'")

        async with DeezerAPIClient(self.arl, **self._client_options) as client:
            if cancel_token:
                cancel_token.raise_if_cancelled()
            await client.authenticator.authenticate()

            if cancel_token:
                cancel_token.raise_if_cancelled()
            song = await client.fetch_track(track_id)

            if cancel_token:
                cancel_token.raise_if_cancelled()
            media_url = await client.fetch_media_url(song, self.quality)

            log.debug(f"Streaming Deezer track {song.id} ({self.quality})")
            return await self._download_track(client, media_url, song, cancel_token)

    async def _download_track(
        self,
        client: DeezerAPIClient,
        media_url: str,
        song: Song,
        cancel_token: Optional[CancelToken],
    ) -> bytes:
        """Streams the media URL, decrypting the striped chunks as they arrive."""
        try:
            key = derive_track_key(self.secret, song.id)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
        decryptor = StripeDecryptor(key)
        buffer = bytearray()

        try:
            async with client.http.get(media_url) as response:
                if response.status != 200:
                    raise TransportError(
                        f"Media stream returned status {response.status}",
                        status=response.status,
                    )
                while True:
                    if cancel_token:
                        cancel_token.raise_if_cancelled()
                    piece = await response.content.read(CHUNK_SIZE)
                    if not piece:
                        break
                    buffer.extend(decryptor.feed(piece))
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"Media stream failed: {e!r}") from e

        buffer.extend(decryptor.finalize())
        log.debug(
            f"Downloaded {len(buffer)} bytes in {decryptor.chunk_index} chunks "
            f"for Deezer track {song.id}"
        )
        return bytes(buffer)
