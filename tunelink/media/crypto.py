"""
Key derivation and selective decryption for Deezer's ``BF_CBC_STRIPE`` streams.

Deezer serves audio in 2048-byte chunks where every third full chunk
(indices 0, 3, 6, ...) is Blowfish-CBC encrypted with a per-track key and a
fixed IV. All other chunks, and a short final chunk, are sent in clear.
"""

import hashlib

from Crypto.Cipher import Blowfish

from tunelink.models.config import SECRET_KEY_LENGTH

CHUNK_SIZE = 2048
STRIPE_INTERVAL = 3
BLOWFISH_IV = bytes([0, 1, 2, 3, 4, 5, 6, 7])


def derive_track_key(secret: bytes | str, track_id: str) -> bytes:
    """
    Derives the 16-byte Blowfish key for a single track.

    Each key byte is ``secret[i] ^ md5hex[i] ^ md5hex[i + 16]``, where
    ``md5hex`` is the lowercase hex MD5 digest of the numeric track ID.
    """
    if isinstance(secret, str):
        secret = secret.encode("utf-8")
    if len(secret) < SECRET_KEY_LENGTH:
        raise ValueError(f"Secret must be at least {SECRET_KEY_LENGTH} bytes long.")

    digest = hashlib.md5(track_id.encode("ascii")).hexdigest().encode("ascii")  # noqa: S324
    return bytes(
        secret[i] ^ digest[i] ^ digest[i + 16] for i in range(SECRET_KEY_LENGTH)
    )


def decrypt_chunk(chunk: bytes, key: bytes) -> bytes:
    """Decrypts one full chunk. The CBC chain restarts at every chunk."""
    cipher = Blowfish.new(key, Blowfish.MODE_CBC, iv=BLOWFISH_IV)
    return cipher.decrypt(chunk)


class StripeDecryptor:
    """
    Incremental decryptor for a striped stream.

    Network reads arrive in arbitrary sizes, so incoming bytes are buffered
    until a full chunk is available. The state is ``(chunk_index, pending)``.

    Usage:
        decryptor = StripeDecryptor(key)
        for piece in pieces:
            out += decryptor.feed(piece)
        out += decryptor.finalize()
    """

    def __init__(self, key: bytes):
        self.key = key
        self.chunk_index = 0
        self.pending = bytearray()
        self._finalized = False

    def _process(self, chunk: bytes) -> bytes:
        index = self.chunk_index
        self.chunk_index += 1
        if index % STRIPE_INTERVAL == 0 and len(chunk) == CHUNK_SIZE:
            return decrypt_chunk(chunk, self.key)
        return chunk

    def feed(self, data: bytes) -> bytes:
        """Consumes stream bytes and returns every chunk completed by them."""
        if self._finalized:
            raise RuntimeError("StripeDecryptor has already been finalized.")

        self.pending.extend(data)
        out = bytearray()
        while len(self.pending) >= CHUNK_SIZE:
            chunk = bytes(self.pending[:CHUNK_SIZE])
            del self.pending[:CHUNK_SIZE]
            out.extend(self._process(chunk))
        return bytes(out)

    def finalize(self) -> bytes:
        """Flushes the trailing short chunk, which is never encrypted."""
        self._finalized = True
        if not self.pending:
            return b""
        tail = self._process(bytes(self.pending))
        self.pending.clear()
        return tail


def decrypt_stripe(data: bytes, key: bytes) -> bytes:
    """Decrypts a complete striped payload held in memory."""
    decryptor = StripeDecryptor(key)
    return decryptor.feed(data) + decryptor.finalize()
