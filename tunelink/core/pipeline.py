"""
Runs one request end to end: resolve the URL, download the audio with
fallback, then tag it.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from tunelink.api.songlink import SongLinkClient
from tunelink.exceptions import MetadataWarning, TagEncodingError
from tunelink.media.downloader import DeezerDownloader
from tunelink.media.tagger import Tagger
from tunelink.models.cancel import CancelToken
from tunelink.models.config import AppConfig
from tunelink.models.track import TagMetadata, TrackData, TrackInfo

from .download_manager import DownloadManager

log = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """The deliverable of one request."""

    track_info: TrackInfo
    track: TrackData
    data: bytes
    tagged: bool
    warnings: List[MetadataWarning] = field(default_factory=list)

    @property
    def title(self) -> str:
        return self.track.title

    @property
    def artist(self) -> str:
        return self.track.artist


class TrackPipeline:
    """Resolver -> DownloadManager -> Tagger, one sequential pass per request."""

    def __init__(
        self,
        resolver: SongLinkClient,
        download_manager: DownloadManager,
        tagger: Tagger,
    ):
        self.resolver = resolver
        self.download_manager = download_manager
        self.tagger = tagger

    @classmethod
    def from_config(cls, config: AppConfig) -> "TrackPipeline":
        """Builds a pipeline with every downloader the configuration enables."""
        manager = DownloadManager()
        if config.has_deezer_credentials:
            manager.register(DeezerDownloader.from_config(config))
        else:
            log.warning(
                "[yellow]Deezer credentials are not configured; "
                "no downloader is available for it.[/yellow]"
            )
        return cls(
            resolver=SongLinkClient(
                api_url=config.songlink_url,
                user_country=config.user_country,
                timeout=config.resolve_timeout,
            ),
            download_manager=manager,
            tagger=Tagger(
                embed_cover=config.embed_cover, cover_timeout=config.cover_timeout
            ),
        )

    async def run(
        self, raw_url: str, cancel_token: Optional[CancelToken] = None
    ) -> PipelineResult:
        """
        Processes one URL.

        Resolution, download and cancellation errors propagate. Tagging
        failures never do: the untagged audio is delivered instead.
        """
        track_info = await self.resolver.resolve(raw_url, cancel_token)
        return await self.process(track_info, cancel_token)

    async def process(
        self, track_info: TrackInfo, cancel_token: Optional[CancelToken] = None
    ) -> PipelineResult:
        """Downloads and tags an already resolved track."""
        track = await self.download_manager.download(track_info, cancel_token)

        metadata = TagMetadata(
            title=track.title, artist=track.artist, cover_url=track.cover
        )
        try:
            tagged = await self.tagger.embed(track.audio, metadata, cancel_token)
        except TagEncodingError as e:
            log.warning(
                f"[yellow]Failed to add metadata, delivering untagged audio:[/yellow] "
                f"{e.message}"
            )
            return PipelineResult(
                track_info=track_info,
                track=track,
                data=track.audio,
                tagged=False,
                warnings=[MetadataWarning(f"Tagging failed: {e.message}")],
            )

        return PipelineResult(
            track_info=track_info,
            track=track,
            data=tagged.data,
            tagged=True,
            warnings=tagged.warnings,
        )
