"""
Media Processing Layer.

This package is responsible for all media operations, including stream
decryption, platform downloaders, tag embedding and integrity validation.
"""

from .downloader import DeezerDownloader, TrackDownloader
from .integrity import TagIntegrityChecker
from .tagger import TaggedAudio, Tagger

__all__ = [
    "DeezerDownloader",
    "TagIntegrityChecker",
    "TaggedAudio",
    "Tagger",
    "TrackDownloader",
]
