"""
Storage Layer.

This package handles configuration persistence. Downloaded tracks are never
stored by the application itself.
"""

from .config_manager import ConfigManager

__all__ = ["ConfigManager"]
