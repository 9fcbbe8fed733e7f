"""
Data Models Layer.

This package contains Pydantic models that define the core data structures
used throughout the application, such as configuration and track identity.
"""

from .cancel import CancelToken
from .config import AppConfig
from .track import Platform, PlatformLink, Song, TagMetadata, TrackData, TrackInfo

__all__ = [
    "AppConfig",
    "CancelToken",
    "Platform",
    "PlatformLink",
    "Song",
    "TagMetadata",
    "TrackData",
    "TrackInfo",
]
