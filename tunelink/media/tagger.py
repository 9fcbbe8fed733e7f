"""
Builds ID3v2.3 tag blocks and prepends them to raw audio bytes.

The tag is written by hand rather than through a tagging library so that the
output is byte-for-byte predictable: a 10-byte header, the frames in the order
they were built, then the untouched audio. Existing tags in the input are
never inspected or rewritten.
"""

import asyncio
import logging
import re
import struct
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import aiohttp

from tunelink.exceptions import MetadataWarning, TagEncodingError, TransportError
from tunelink.models.cancel import CancelToken
from tunelink.models.track import TagMetadata

log = logging.getLogger(__name__)

# --- Constants ---
ID3_IDENTIFIER = b"ID3"
ID3_VERSION = b"\x03\x00"  # v2.3.0
ID3_FLAGS = b"\x00"
FRAME_FLAGS = b"\x00\x00"
ENCODING_LATIN1 = b"\x00"
ENCODING_UTF8 = b"\x03"
PICTURE_TYPE_FRONT_COVER = b"\x03"
DEFAULT_COVER_MIME = "image/jpeg"

SYNCHSAFE_LIMIT = 1 << 28
FRAME_SIZE_LIMIT = 1 << 32

_FRAME_ID_RE = re.compile(r"^[A-Z0-9]{4}$")


def encode_synchsafe(value: int) -> bytes:
    """Encodes a 28-bit value as four big-endian 7-bit groups."""
    if not 0 <= value < SYNCHSAFE_LIMIT:
        raise TagEncodingError(
            f"Value {value} does not fit in a 28-bit synchsafe integer."
        )
    return bytes(
        [
            (value >> 21) & 0x7F,
            (value >> 14) & 0x7F,
            (value >> 7) & 0x7F,
            value & 0x7F,
        ]
    )


def decode_synchsafe(data: bytes) -> int:
    """Decodes four synchsafe bytes back into an integer."""
    if len(data) != 4 or any(b & 0x80 for b in data):
        raise ValueError(f"Not a synchsafe integer: {data!r}")
    return (data[0] << 21) | (data[1] << 14) | (data[2] << 7) | data[3]


def _build_frame(frame_id: str, body: bytes) -> bytes:
    if not _FRAME_ID_RE.match(frame_id):
        raise TagEncodingError(f"Invalid frame identifier: {frame_id!r}")
    if len(body) >= FRAME_SIZE_LIMIT:
        raise TagEncodingError(f"Frame {frame_id} is too large ({len(body)} bytes).")
    return frame_id.encode("ascii") + struct.pack(">I", len(body)) + FRAME_FLAGS + body


def build_text_frame(frame_id: str, text: str) -> bytes:
    """Builds a UTF-8 text information frame such as TIT2 or TPE1."""
    try:
        encoded = text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise TagEncodingError(f"Cannot encode {frame_id} text: {e}") from e
    return _build_frame(frame_id, ENCODING_UTF8 + encoded)


def build_picture_frame(image: bytes, mime_type: str = DEFAULT_COVER_MIME) -> bytes:
    """Builds an APIC frame holding a front cover with an empty description."""
    try:
        mime = (mime_type or DEFAULT_COVER_MIME).encode("latin-1")
    except UnicodeEncodeError as e:
        raise TagEncodingError(f"Cannot encode cover MIME type: {e}") from e
    body = (
        ENCODING_LATIN1
        + mime
        + b"\x00"
        + PICTURE_TYPE_FRONT_COVER
        + b"\x00"  # empty description
        + image
    )
    return _build_frame("APIC", body)


def build_tag_header(frames_length: int) -> bytes:
    """Builds the 10-byte tag header for a frame block of the given length."""
    return ID3_IDENTIFIER + ID3_VERSION + ID3_FLAGS + encode_synchsafe(frames_length)


def build_text_frames(metadata: TagMetadata) -> List[bytes]:
    frames = []
    for frame_id, text in (
        ("TIT2", metadata.title),
        ("TPE1", metadata.artist),
        ("TALB", metadata.album),
    ):
        if text:
            frames.append(build_text_frame(frame_id, text))
    return frames


@dataclass
class TaggedAudio:
    """Result of tagging: the final buffer plus any non-fatal warnings."""

    data: bytes
    cover_embedded: bool = False
    warnings: List[MetadataWarning] = field(default_factory=list)


class Tagger:
    """Writes an ID3v2.3 tag in front of raw audio bytes."""

    def __init__(self, embed_cover: bool = True, cover_timeout: float = 10.0):
        self.embed_cover = embed_cover
        self.cover_timeout = cover_timeout

    async def fetch_cover(self, url: str) -> Tuple[bytes, str]:
        """
        Downloads a cover image.

        Returns:
            The image bytes and the MIME type reported by the server.

        Raises:
            TransportError: On network failures or a non-200 status.
        """
        try:
            async with aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.cover_timeout)
            ) as session:
                async with session.get(url) as r:
                    if r.status != 200:
                        raise TransportError(
                            f"Cover download returned status {r.status}",
                            status=r.status,
                        )
                    image = await r.read()
                    mime_type = r.headers.get("Content-Type") or DEFAULT_COVER_MIME
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"Cover download failed: {e!r}") from e
        return image, mime_type

    async def _cover_frame(
        self, url: str, warnings: List[MetadataWarning]
    ) -> Optional[bytes]:
        try:
            image, mime_type = await self.fetch_cover(url)
            return build_picture_frame(image, mime_type)
        except (TransportError, TagEncodingError) as e:
            warning = MetadataWarning(f"Skipping cover art: {e.message}")
            warnings.append(warning)
            log.warning(f"[yellow]{warning.message}[/yellow]")
            return None

    async def embed(
        self,
        audio: bytes,
        metadata: TagMetadata,
        cancel_token: Optional[CancelToken] = None,
    ) -> TaggedAudio:
        """
        Prepends a tag block to the audio.

        Cover problems never fail the call; they are reported on the result's
        ``warnings`` and the tag is written without a picture.

        Raises:
            TagEncodingError: If a text frame or the header cannot be built.
            CancellationError: If the cancel token fired.
        """
        warnings: List[MetadataWarning] = []
        frames = build_text_frames(metadata)
        cover_embedded = False

        if self.embed_cover and metadata.cover_url:
            if cancel_token:
                cancel_token.raise_if_cancelled()
            if cover := await self._cover_frame(metadata.cover_url, warnings):
                frames.append(cover)
                cover_embedded = True

        frame_block = b"".join(frames)
        header = build_tag_header(len(frame_block))
        log.debug(
            f"Built ID3 tag with {len(frames)} frame(s), {len(frame_block)} bytes"
        )
        return TaggedAudio(
            data=header + frame_block + audio,
            cover_embedded=cover_embedded,
            warnings=warnings,
        )
