"""
Chunked AES-256-CTR cipher streams.

This module provides:
- EncryptionWriter: Writable stream that encrypts into the chunk format
- DecryptionReader: Readable stream that verifies and decrypts the chunk format
- encoded_length: Size of the encoded stream for a given plaintext length

Wire format (one entry per chunk, no stream header or trailer):

    [digest: 8 bytes LE][nonce: 16 bytes][ciphertext: len(plaintext) bytes]

Every chunk holds chunk_size plaintext bytes except the last, which may be
shorter. The end of the stream is the end of the underlying transport. The
digest covers plaintext || nonce and is checked before any plaintext of the
chunk is released.
"""

from __future__ import annotations

import errno
import io
import logging
from typing import BinaryIO

from .crypto import (
    CHUNK_HEADER_SIZE,
    DEFAULT_CHUNK_SIZE,
    DIGEST_SIZE,
    AesCtrCipher,
    DataKey,
    EncryptedChunk,
    chunk_digest,
    digests_match,
)
from .errors import BlobCryptoError, ChunkIntegrityError, StreamEncryptError

logger = logging.getLogger(__name__)


def encoded_length(plaintext_length: int, chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
    """Length of the encoded stream produced for plaintext_length bytes."""
    chunks = -(-plaintext_length // chunk_size)
    return plaintext_length + chunks * CHUNK_HEADER_SIZE


def _check_chunk_size(chunk_size: int) -> None:
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")


class EncryptionWriter(io.RawIOBase):
    """
    Encrypting decorator around a writable binary sink.

    Bytes are buffered until chunk_size of them are available, then written
    out as one encrypted chunk. Closing the writer emits the remaining bytes
    as a final short chunk and closes the sink when closefd is true.

    Not safe for concurrent use; use it as a context manager so the sink is
    released on every exit path.
    """

    def __init__(
        self,
        sink: BinaryIO,
        key: DataKey,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        closefd: bool = True,
    ) -> None:
        super().__init__()
        _check_chunk_size(chunk_size)
        self._sink = sink
        self._key = key
        self._chunk_size = chunk_size
        self._closefd = closefd
        self._buffer = bytearray()
        self._chunks_written = 0
        self._bytes_written = 0

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def chunks_written(self) -> int:
        return self._chunks_written

    @property
    def bytes_written(self) -> int:
        """Plaintext bytes encrypted and written to the sink so far."""
        return self._bytes_written

    def writable(self) -> bool:
        return True

    def write(self, b) -> int:
        if self.closed:
            raise ValueError("write to closed file")

        with memoryview(b) as view, view.cast("B") as data:
            total = len(data)
            offset = 0
            while offset < total:
                take = min(self._chunk_size - len(self._buffer), total - offset)
                self._buffer += data[offset:offset + take]
                offset += take
                if len(self._buffer) == self._chunk_size:
                    self._flush_chunk()
        return total

    def flush(self) -> None:
        # Never emits a partial chunk: readers rely on every chunk but the
        # last one being full.
        if self.closed:
            raise ValueError("flush of closed file")
        if getattr(self._sink, "closed", False):
            return
        flush = getattr(self._sink, "flush", None)
        if flush is not None:
            flush()

    def close(self) -> None:
        if self.closed:
            return
        try:
            if self._buffer:
                self._flush_chunk()
            self.flush()
            logger.debug(
                "Encrypted %d bytes into %d chunks", self._bytes_written, self._chunks_written
            )
        finally:
            try:
                if self._closefd:
                    self._sink.close()
            finally:
                super().close()

    def _flush_chunk(self) -> None:
        plaintext = bytes(self._buffer)
        try:
            try:
                chunk = AesCtrCipher.encrypt(self._key, plaintext)
            except (ValueError, TypeError, BlobCryptoError) as e:
                raise StreamEncryptError("Couldn't encrypt data") from e
            digest = chunk_digest(plaintext, chunk.nonce)
        finally:
            self._buffer.clear()

        self._write_all(digest + chunk.nonce + chunk.ciphertext)
        self._chunks_written += 1
        self._bytes_written += len(plaintext)

    def _write_all(self, package: bytes) -> None:
        with memoryview(package) as view:
            while view:
                written = self._sink.write(view)
                if written is None:
                    raise BlockingIOError(
                        errno.EAGAIN,
                        "Sink would block; chunk package only partially written",
                        len(package) - len(view),
                    )
                view = view[written:]


class DecryptionReader(io.RawIOBase):
    """
    Verifying, decrypting decorator around a readable binary source.

    Chunks are consumed strictly in order. A chunk whose digest does not
    match its decrypted content aborts the read with ChunkIntegrityError and
    no byte of that chunk is returned; the reader stays failed afterwards.
    """

    def __init__(
        self,
        source: BinaryIO,
        key: DataKey,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        closefd: bool = True,
    ) -> None:
        super().__init__()
        _check_chunk_size(chunk_size)
        self._source = source
        self._key = key
        self._chunk_size = chunk_size
        self._closefd = closefd
        self._plaintext = b""
        self._offset = 0
        self._eof = False
        self._failed = False
        self._chunks_read = 0

    @property
    def chunks_read(self) -> int:
        return self._chunks_read

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:
        if self.closed:
            raise ValueError("read from closed file")
        if self._failed:
            raise ChunkIntegrityError("Broken encrypted package chunk: stream already failed")

        with memoryview(b) as view, view.cast("B") as target:
            if len(target) == 0:
                return 0
            while self._offset >= len(self._plaintext):
                if self._eof:
                    return 0
                self._load_next_chunk()

            n = min(len(target), len(self._plaintext) - self._offset)
            target[:n] = self._plaintext[self._offset:self._offset + n]
            self._offset += n
            return n

    def close(self) -> None:
        if self.closed:
            return
        try:
            if self._closefd:
                self._source.close()
        finally:
            self._plaintext = b""
            super().close()

    def _load_next_chunk(self) -> None:
        header = self._read_fully(CHUNK_HEADER_SIZE)
        if not header:
            self._eof = True
            return
        if len(header) < CHUNK_HEADER_SIZE:
            self._fail(f"truncated header ({len(header)} of {CHUNK_HEADER_SIZE} bytes)")

        digest = header[:DIGEST_SIZE]
        nonce = header[DIGEST_SIZE:]
        # A short read means EOF, so a short chunk is always the last one
        ciphertext = self._read_fully(self._chunk_size)
        if len(ciphertext) < self._chunk_size:
            self._eof = True

        plaintext = AesCtrCipher.decrypt(self._key, EncryptedChunk(nonce=nonce, ciphertext=ciphertext))
        if not digests_match(digest, chunk_digest(plaintext, nonce)):
            self._fail("digest mismatch")

        self._plaintext = plaintext
        self._offset = 0
        self._chunks_read += 1

    def _read_fully(self, size: int) -> bytes:
        if getattr(self._source, "closed", False):
            raise OSError("Source stream is closed")
        parts = []
        remaining = size
        while remaining > 0:
            data = self._source.read(remaining)
            if not data:
                break
            parts.append(data)
            remaining -= len(data)
        return b"".join(parts)

    def _fail(self, reason: str) -> None:
        self._failed = True
        self._plaintext = b""
        self._offset = 0
        logger.error("Chunk %d failed verification: %s", self._chunks_read, reason)
        raise ChunkIntegrityError(f"Broken encrypted package chunk: {reason}")
