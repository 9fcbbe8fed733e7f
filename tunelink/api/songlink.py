"""
Resolves arbitrary music-streaming URLs to a canonical track identity through
the song.link (Odesli) link-aggregation API.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import aiohttp
from pydantic import BaseModel, Field, ValidationError, field_validator

from tunelink.exceptions import DecodeError, NotFoundError, TransportError
from tunelink.models.cancel import CancelToken
from tunelink.models.config import SONGLINK_API_URL
from tunelink.models.track import (
    PLATFORM_PRIORITY,
    PlatformLink,
    TrackInfo,
    platform_sort_key,
)

log = logging.getLogger(__name__)


class _Record(BaseModel):
    @field_validator("*", mode="before")
    @classmethod
    def _null_as_empty(cls, v):
        return "" if v is None else v


class _LinkRecord(_Record):
    url: str = ""
    entity_unique_id: str = Field(default="", alias="entityUniqueId")


class _EntityRecord(_Record):
    title: str = ""
    artist_name: str = Field(default="", alias="artistName")
    thumbnail_url: str = Field(default="", alias="thumbnailUrl")


class _LinksResponse(BaseModel):
    links_by_platform: Dict[str, _LinkRecord] = Field(
        default_factory=dict, alias="linksByPlatform"
    )
    entities_by_unique_id: Dict[str, _EntityRecord] = Field(
        default_factory=dict, alias="entitiesByUniqueId"
    )

    @field_validator("links_by_platform", "entities_by_unique_id", mode="before")
    @classmethod
    def _drop_nulls(cls, v):
        if v is None:
            return {}
        if isinstance(v, dict):
            return {key: value for key, value in v.items() if value is not None}
        return v


def parse_links_response(payload: Any) -> TrackInfo:
    """
    Builds a TrackInfo from a decoded song.link response.

    The chosen platform is the first entry of the download priority list that
    has a link. When none of them is present, the lexicographically smallest
    platform id wins so that the choice is reproducible.

    Raises:
        DecodeError: If the payload does not have the expected shape.
        NotFoundError: If no platform carries a usable link.
    """
    try:
        body = _LinksResponse.model_validate(payload)
    except ValidationError as e:
        raise DecodeError(f"Unexpected song.link response: {e}") from e

    links = {
        platform: record
        for platform, record in body.links_by_platform.items()
        if record.url
    }
    if not links:
        raise NotFoundError("No platforms available for this track.")

    available = tuple(
        PlatformLink(platform=platform, url=links[platform].url)
        for platform in sorted(links, key=platform_sort_key)
    )

    chosen_platform = next((p for p in PLATFORM_PRIORITY if p in links), None)
    if chosen_platform is None:
        chosen_platform = min(links)
        log.debug(
            f"No preferred platform available, falling back to '{chosen_platform}'."
        )
    chosen = links[chosen_platform]

    entity = body.entities_by_unique_id.get(chosen.entity_unique_id)
    return TrackInfo(
        title=entity.title if entity else "",
        artist=entity.artist_name if entity else "",
        cover=entity.thumbnail_url if entity else "",
        platform=chosen_platform,
        url=chosen.url,
        available_platforms=available,
    )


class SongLinkClient:
    """Async client for the song.link links endpoint."""

    def __init__(
        self,
        api_url: str = SONGLINK_API_URL,
        user_country: str = "US",
        timeout: float = 10.0,
    ):
        self.api_url = api_url
        self.user_country = user_country
        self.timeout = timeout

    async def resolve(
        self, raw_url: str, cancel_token: Optional[CancelToken] = None
    ) -> TrackInfo:
        """
        Resolves a streaming URL on any supported platform to a TrackInfo.

        Args:
            raw_url: The URL supplied by the user.
            cancel_token: Optional token checked before the request is sent.

        Raises:
            TransportError: On network failures or a non-200 status.
            DecodeError: If the response body is malformed.
            NotFoundError: If the track is not available on any platform.
        """
        if cancel_token:
            cancel_token.raise_if_cancelled()

        params = {
            "url": raw_url,
            "userCountry": self.user_country,
            "songIfSingle": "true",
        }
        log.debug(f"Resolving '{raw_url}' via song.link")

        try:
            async with aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as session:
                async with session.get(self.api_url, params=params) as r:
                    if r.status != 200:
                        raise TransportError(
                            f"song.link API returned status {r.status}",
                            status=r.status,
                        )
                    payload = await r.json(content_type=None)
        except json.JSONDecodeError as e:
            raise DecodeError(f"Could not decode song.link response: {e}") from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"song.link request failed: {e!r}") from e

        track_info = parse_links_response(payload)
        log.info(
            f"Resolved [bold]{track_info.artist} - {track_info.title}[/bold] "
            f"on {len(track_info.available_platforms)} platform(s), "
            f"preferring {track_info.platform}"
        )
        return track_info
