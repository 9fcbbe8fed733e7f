"""
Pydantic models for the track identity that flows through the pipeline.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Platform(str, Enum):
    """Platform identifiers as used by the link-aggregation service."""

    DEEZER = "deezer"
    YANDEX = "yandex"
    TIDAL = "tidal"
    YOUTUBE = "youtube"
    YOUTUBE_MUSIC = "youtubeMusic"
    SPOTIFY = "spotify"
    APPLE_MUSIC = "appleMusic"


# Download preference when several platforms carry the same track
PLATFORM_PRIORITY: tuple[str, ...] = (
    Platform.DEEZER.value,
    Platform.YANDEX.value,
    Platform.TIDAL.value,
    Platform.YOUTUBE.value,
    Platform.YOUTUBE_MUSIC.value,
    Platform.SPOTIFY.value,
    Platform.APPLE_MUSIC.value,
)


def platform_sort_key(platform: str) -> tuple[int, str]:
    """Orders platforms by download preference, unknown ones alphabetically last."""
    try:
        return PLATFORM_PRIORITY.index(platform), platform
    except ValueError:
        return len(PLATFORM_PRIORITY), platform


class PlatformLink(BaseModel):
    """A track's URL on a single platform."""

    model_config = ConfigDict(frozen=True)

    platform: str
    url: str


class TrackInfo(BaseModel):
    """Canonical identity of a track as returned by the resolver."""

    model_config = ConfigDict(frozen=True)

    artist: str = ""
    title: str = ""
    cover: str = ""
    platform: str
    url: str
    available_platforms: tuple[PlatformLink, ...] = Field(min_length=1)

    @field_validator("platform", mode="before")
    @classmethod
    def _unwrap_platform(cls, v):
        return v.value if isinstance(v, Platform) else v


class Song(BaseModel):
    """Server-side identifiers of one Deezer track, bound to a session."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(alias="SNG_ID")
    track_token: str = Field(alias="TRACK_TOKEN")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v):
        return str(v)


class TrackData(BaseModel):
    """Raw audio bytes together with the metadata that will be tagged."""

    model_config = ConfigDict(frozen=True)

    audio: bytes
    title: str = ""
    artist: str = ""
    cover: str = ""
    platform: str = ""


class TagMetadata(BaseModel):
    """Metadata written into the tag block."""

    model_config = ConfigDict(frozen=True)

    title: str = ""
    artist: str = ""
    album: str = ""
    cover_url: str = ""
