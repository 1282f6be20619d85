"""
Cryptographic primitives for the chunked AES-256-CTR stream format.

This module provides:
- DataKey: Per-session AES-256 key wrapper with best-effort zeroization
- EncryptedChunk: Nonce and ciphertext of one encrypted chunk
- AesCtrCipher: AES-256-CTR encryption/decryption of single chunks
- chunk_digest: 8-byte integrity digest stored in every chunk header

The digest is MurmurHash3 (x64, 128 bit) truncated to its first 64 bits. It
is a checksum, not a MAC: it catches corruption and wrong keys, not an
adversary who rewrites ciphertext and digest together.
"""

from __future__ import annotations

import hmac
import secrets
from dataclasses import dataclass

import mmh3
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .errors import BlobCryptoError

# Cryptographic constants
AES_256_KEY_SIZE: int = 32  # 256 bits
NONCE_SIZE: int = 16  # one AES block, initial counter value
DIGEST_SIZE: int = 8
CHUNK_HEADER_SIZE: int = DIGEST_SIZE + NONCE_SIZE
DEFAULT_CHUNK_SIZE: int = 8192


class DataKey:
    """
    Per-blob AES-256 key, shared by every chunk of one encoded stream.

    The raw bytes live in a bytearray that is overwritten when the object is
    collected. CPython gives no timing guarantee for that, and copies handed
    out by as_bytes() are not tracked.
    """

    __slots__ = ("_bytes",)

    def __init__(self, key_bytes: bytes | bytearray) -> None:
        if not isinstance(key_bytes, (bytes, bytearray)):
            raise BlobCryptoError("Key must be bytes or bytearray")
        if len(key_bytes) != AES_256_KEY_SIZE:
            raise BlobCryptoError(
                f"Invalid key size: expected {AES_256_KEY_SIZE}, got {len(key_bytes)}"
            )
        self._bytes = bytearray(key_bytes)

    @classmethod
    def generate(cls) -> DataKey:
        """Draw a new key from the OS CSPRNG."""
        return cls(secrets.token_bytes(AES_256_KEY_SIZE))

    def as_bytes(self) -> bytes:
        """Copy of the raw key for the cipher and RSA wrapping calls."""
        return bytes(self._bytes)

    def __len__(self) -> int:
        return len(self._bytes)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DataKey):
            return NotImplemented
        return hmac.compare_digest(self._bytes, other._bytes)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        """Redacted representation to prevent accidental key disclosure."""
        return "DataKey([REDACTED])"

    def __del__(self) -> None:
        key = getattr(self, "_bytes", None)
        if key is not None:
            key[:] = bytes(len(key))


@dataclass(frozen=True)
class EncryptedChunk:
    """Encrypted chunk body. CTR mode keeps len(ciphertext) == len(plaintext)."""

    nonce: bytes  # 16 bytes
    ciphertext: bytes


class AesCtrCipher:
    """
    AES-256-CTR encryption of single chunks.

    Every call to encrypt draws a fresh random nonce, so a key can be reused
    across the chunks of one stream without repeating a keystream.
    """

    @staticmethod
    def encrypt(key: DataKey, plaintext: bytes) -> EncryptedChunk:
        """
        Encrypt plaintext under a fresh nonce.

        Args:
            key: 32-byte data key
            plaintext: Chunk plaintext, possibly empty

        Returns:
            EncryptedChunk with the nonce and ciphertext

        Raises:
            BlobCryptoError: If the key size is invalid
            ValueError: If the underlying cipher rejects its input
        """
        if len(key) != AES_256_KEY_SIZE:
            raise BlobCryptoError(
                f"Invalid key size: expected {AES_256_KEY_SIZE}, got {len(key)}"
            )

        nonce = secrets.token_bytes(NONCE_SIZE)
        encryptor = Cipher(algorithms.AES(key.as_bytes()), modes.CTR(nonce)).encryptor()
        ciphertext = encryptor.update(plaintext) + encryptor.finalize()
        return EncryptedChunk(nonce=nonce, ciphertext=ciphertext)

    @staticmethod
    def decrypt(key: DataKey, chunk: EncryptedChunk) -> bytes:
        """
        Decrypt a chunk with its embedded nonce.

        CTR mode cannot tell a wrong key from the right one; callers must
        verify the recovered plaintext against the chunk digest.

        Raises:
            BlobCryptoError: If the key or nonce size is invalid
        """
        if len(key) != AES_256_KEY_SIZE:
            raise BlobCryptoError(
                f"Invalid key size: expected {AES_256_KEY_SIZE}, got {len(key)}"
            )

        if len(chunk.nonce) != NONCE_SIZE:
            raise BlobCryptoError(
                f"Invalid nonce size: expected {NONCE_SIZE}, got {len(chunk.nonce)}"
            )

        decryptor = Cipher(algorithms.AES(key.as_bytes()), modes.CTR(chunk.nonce)).decryptor()
        return decryptor.update(chunk.ciphertext) + decryptor.finalize()


def chunk_digest(plaintext: bytes, nonce: bytes) -> bytes:
    """
    Compute the 8-byte chunk digest over plaintext || nonce.

    Returns the low 64 bits of MurmurHash3 x64 128 (seed 0) in little-endian
    byte order, ready to be written to the chunk header.
    """
    return mmh3.hash_bytes(bytes(plaintext) + nonce)[:DIGEST_SIZE]


def digests_match(expected: bytes, actual: bytes) -> bool:
    """Constant-time digest comparison."""
    return hmac.compare_digest(expected, actual)


def encrypted_package_size(chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
    """Size on the wire of one full chunk: header plus ciphertext."""
    return chunk_size + CHUNK_HEADER_SIZE


def generate_random_bytes(length: int) -> bytes:
    """
    Generate cryptographically secure random bytes.

    Args:
        length: Number of bytes to generate

    Returns:
        Random bytes of specified length
    """
    return secrets.token_bytes(length)
