"""
tunelink: resolve a streaming link to a track and fetch it as a tagged file.
"""

__version__ = "0.1.0"
