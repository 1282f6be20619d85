"""
Compression plus chunked encryption for blob payloads.

This module provides:
- CryptoIOProvider: Zstandard compression composed with the chunked
  AES-256-CTR stream format, with a buffered entry point for small blobs and
  a streaming entry point for large ones

Write path: plaintext -> zstd frame -> EncryptionWriter -> sink
Read path:  source -> DecryptionReader -> zstd decompressobj -> plaintext
"""

from __future__ import annotations

import io
import logging
from typing import BinaryIO, Union

import zstandard

from .crypto import DEFAULT_CHUNK_SIZE, DataKey
from .errors import ChunkIntegrityError
from .settings import DEFAULT_COMPRESSION_LEVEL, CodecSettings, Settings
from .streams import DecryptionReader, EncryptionWriter

logger = logging.getLogger(__name__)

COPY_BUFFER_SIZE: int = 64 * 1024

Source = Union[bytes, bytearray, memoryview, BinaryIO]


def _as_stream(source: Source) -> BinaryIO:
    if isinstance(source, (bytes, bytearray, memoryview)):
        return io.BytesIO(source)
    return source


class _DecompressingReader(io.RawIOBase):
    """
    Zstandard decoding over a DecryptionReader that insists on one whole frame.

    Source EOF before the end of the frame means trailing chunks were lost,
    and bytes after the end of the frame mean chunks were appended; both raise
    ChunkIntegrityError instead of ending the stream quietly.
    """

    def __init__(self, source: DecryptionReader, read_size: int = COPY_BUFFER_SIZE) -> None:
        super().__init__()
        self._source = source
        self._read_size = read_size
        self._decompressor = zstandard.ZstdDecompressor().decompressobj()
        self._pending = b""
        self._offset = 0
        self._finished = False
        self._failed = False

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
            while self._offset >= len(self._pending):
                if self._finished:
                    return 0
                self._decompress_next_block()

            n = min(len(target), len(self._pending) - self._offset)
            target[:n] = self._pending[self._offset:self._offset + n]
            self._offset += n
            return n

    def close(self) -> None:
        if self.closed:
            return
        try:
            self._source.close()
        finally:
            self._pending = b""
            super().close()

    def _decompress_next_block(self) -> None:
        block = self._source.read(self._read_size)
        if not block:
            self._finished = True
            if not self._decompressor.eof:
                self._fail("truncated stream")
            return
        if self._decompressor.eof:
            self._fail("data after end of compressed frame")

        try:
            self._pending = self._decompressor.decompress(block)
        except zstandard.ZstdError as e:
            self._fail(f"invalid compressed data ({e})")
        self._offset = 0
        if self._decompressor.eof and self._decompressor.unused_data:
            self._fail("data after end of compressed frame")

    def _fail(self, reason: str) -> None:
        self._failed = True
        self._pending = b""
        self._offset = 0
        logger.error("Compressed stream failed verification: %s", reason)
        raise ChunkIntegrityError(f"Broken encrypted package chunk: {reason}")


class CryptoIOProvider:
    """
    Codec for one blob under one data key.

    The buffered and streaming entry points produce identical formats; pick
    the one that matches the blob size and what the storage backend accepts.
    Both decode through decrypt_and_decompress.
    """

    def __init__(
        self,
        key: DataKey,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        compression_level: int = DEFAULT_COMPRESSION_LEVEL,
    ) -> None:
        """
        Initialize CryptoIOProvider.

        Args:
            key: Data key for this blob
            chunk_size: Plaintext bytes per encrypted chunk
            compression_level: Zstandard compression level
        """
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self._key = key
        self._chunk_size = chunk_size
        self._compression_level = compression_level

    @classmethod
    def from_settings(cls, key: DataKey, settings: Settings) -> CryptoIOProvider:
        """Create a provider tuned by encryption_chunk_size and compression_level."""
        codec = CodecSettings.from_settings(settings)
        return cls(key, chunk_size=codec.chunk_size, compression_level=codec.compression_level)

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    def compress_and_encrypt(self, source: Source) -> bytes:
        """
        Compress and encrypt a whole payload in memory.

        Args:
            source: Plaintext bytes or a readable binary stream

        Returns:
            The complete encoded byte sequence
        """
        out = io.BytesIO()
        self.compress_and_encrypt_into(source, out, closefd=False)
        return out.getvalue()

    def compress_and_encrypt_into(
        self,
        source: Source,
        destination: BinaryIO,
        closefd: bool = True,
    ) -> int:
        """
        Compress and encrypt incrementally into destination.

        Memory use is bounded by the copy buffer, the compressor window and
        one chunk, whatever the payload size.

        Args:
            source: Plaintext bytes or a readable binary stream
            destination: Writable binary stream receiving the encoded bytes
            closefd: Close destination once the final chunk is written

        Returns:
            Number of plaintext bytes consumed from source
        """
        reader = _as_stream(source)
        compressor = zstandard.ZstdCompressor(level=self._compression_level)
        consumed = 0
        encryptor = EncryptionWriter(destination, self._key, self._chunk_size, closefd=closefd)
        with compressor.stream_writer(encryptor, closefd=True) as writer:
            while True:
                block = reader.read(COPY_BUFFER_SIZE)
                if not block:
                    break
                writer.write(block)
                consumed += len(block)

        logger.debug(
            "Compressed and encrypted %d bytes into %d chunks",
            consumed,
            encryptor.chunks_written,
        )
        return consumed

    def decrypt_and_decompress(self, source: Source) -> BinaryIO:
        """
        Open a lazy plaintext stream over an encoded payload.

        The returned stream is single pass; reading it again requires a new
        call against the original source. Integrity failures surface as
        ChunkIntegrityError from read(), including a stream that ends before
        the compressed frame does.

        Args:
            source: Encoded bytes or a readable binary stream

        Returns:
            Readable binary stream of the original plaintext
        """
        decryptor = DecryptionReader(_as_stream(source), self._key, self._chunk_size)
        return _DecompressingReader(decryptor)
