"""
The download orchestrator: holds the platform downloader registry and walks a
TrackInfo's platforms until one of them delivers the audio.
"""

import logging
from typing import Dict, Iterator, List, Optional, Tuple

from tunelink.exceptions import AllPlatformsFailedError, CancellationError, TunelinkError
from tunelink.media.downloader import TrackDownloader
from tunelink.models.cancel import CancelToken
from tunelink.models.track import TrackData, TrackInfo

log = logging.getLogger(__name__)


class DownloadManager:
    """
    Orchestrates downloads across platforms with ordered fallback.

    The registry is populated once at startup and only read afterwards, so a
    single manager can serve concurrent requests.
    """

    def __init__(self, downloaders: Optional[List[TrackDownloader]] = None):
        self._downloaders: Dict[str, TrackDownloader] = {}
        for downloader in downloaders or []:
            self.register(downloader)

    def register(self, downloader: TrackDownloader) -> None:
        """Registers a downloader, replacing any previous one for its platform."""
        if downloader.platform in self._downloaders:
            log.debug(f"Replacing downloader for platform '{downloader.platform}'")
        self._downloaders[downloader.platform] = downloader

    @property
    def platforms(self) -> List[str]:
        return list(self._downloaders)

    def get_downloader(self, platform: str) -> Optional[TrackDownloader]:
        return self._downloaders.get(platform)

    def _candidates(
        self, track_info: TrackInfo
    ) -> Iterator[Tuple[str, str, TrackDownloader]]:
        """Yields (platform, url, downloader), chosen platform first."""
        chosen = self._downloaders.get(track_info.platform)
        if chosen and chosen.can_handle(track_info.url):
            yield track_info.platform, track_info.url, chosen

        for link in track_info.available_platforms:
            if link.platform == track_info.platform:
                continue
            downloader = self._downloaders.get(link.platform)
            if downloader and downloader.can_handle(link.url):
                yield link.platform, link.url, downloader

    async def download(
        self, track_info: TrackInfo, cancel_token: Optional[CancelToken] = None
    ) -> TrackData:
        """
        Downloads the track from the first platform that succeeds.

        Args:
            track_info: The resolved track.
            cancel_token: Optional token forwarded to each downloader.

        Returns:
            The audio of the first successful attempt plus the track metadata.

        Raises:
            CancellationError: Immediately, if the request was cancelled.
            AllPlatformsFailedError: If no registered downloader succeeded.
        """
        attempts: List[Tuple[str, Exception]] = []

        for platform, url, downloader in self._candidates(track_info):
            if cancel_token:
                cancel_token.raise_if_cancelled()
            log.debug(f"Trying {platform}: {url}")
            try:
                audio = await downloader.fetch(url, cancel_token)
            except CancellationError:
                raise
            except Exception as e:
                attempts.append((platform, e))
                log.warning(
                    f"[yellow]Failed to download from {platform}:[/yellow] "
                    f"{type(e).__name__}: {e}",
                    exc_info=not isinstance(e, TunelinkError)
                    and log.getEffectiveLevel() == logging.DEBUG,
                )
                continue

            log.info(f"Downloaded [bold]{track_info.title}[/bold] from {platform}")
            return TrackData(
                audio=audio,
                title=track_info.title,
                artist=track_info.artist,
                cover=track_info.cover,
                platform=platform,
            )

        if not attempts:
            message = "No registered downloader can handle any available platform."
        else:
            last_platform, last_error = attempts[-1]
            message = (
                f"Failed to download track from any available platform "
                f"({len(attempts)} attempt(s); last from {last_platform}: {last_error})"
            )
        raise AllPlatformsFailedError(message, attempts)
