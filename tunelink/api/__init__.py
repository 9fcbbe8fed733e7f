"""
API Layer.

This package handles all communication with external services: the song.link
resolver and the Deezer gateway and media endpoints.
"""

from .auth import DeezerAuthenticator, DeezerSession
from .client import DeezerAPIClient
from .songlink import SongLinkClient

__all__ = ["DeezerAPIClient", "DeezerAuthenticator", "DeezerSession", "SongLinkClient"]
