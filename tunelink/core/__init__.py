"""
Core application engine for orchestrating the download process.

The `TrackPipeline` runs a single request from URL to tagged audio, delegating
platform selection and fallback to the `DownloadManager`.
"""

from .download_manager import DownloadManager
from .pipeline import PipelineResult, TrackPipeline

__all__ = ["DownloadManager", "PipelineResult", "TrackPipeline"]
