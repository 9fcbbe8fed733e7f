"""
Provides methods for checking the integrity of tagged audio buffers.
"""

import io
import logging

from mutagen.id3 import ID3, ID3NoHeaderError

log = logging.getLogger(__name__)


class TagIntegrityChecker:
    """A collection of static methods for validating tag blocks."""

    @staticmethod
    def check_id3(data: bytes) -> bool:
        """
        Checks that a buffer starts with an ID3v2 tag that mutagen can parse.

        Args:
            data: The tagged audio buffer.

        Returns:
            True if the tag parses cleanly, False otherwise.
        """
        try:
            ID3(io.BytesIO(data))
            return True
        except ID3NoHeaderError:
            log.warning("ID3 integrity check failed: missing ID3 header.")
            return False
        except Exception as e:
            log.debug(f"ID3 check failed with unexpected error: {e}")
            return False
