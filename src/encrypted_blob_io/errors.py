"""
Exception classes for encrypted blob I/O operations.

Key material problems are fatal and never retried. Chunk integrity failures
are fatal for the read that detected them.
"""

from __future__ import annotations


class BlobCryptoError(Exception):
    """Base exception for all encrypted blob I/O operations."""

    pass


class KeyFormatError(BlobCryptoError):
    """Key material is not PEM armored, is truncated, or is empty."""

    pass


class KeyAlgorithmError(BlobCryptoError):
    """Key material is not a valid RSA key."""

    pass


class MissingConfigurationError(BlobCryptoError):
    """A required setting is absent."""

    def __init__(self, setting_name: str) -> None:
        super().__init__(f"Settings with name {setting_name} hasn't been set")
        self.setting_name = setting_name


class ConfigError(BlobCryptoError):
    """A setting is present but its value is invalid."""

    pass


class WrapError(BlobCryptoError):
    """Wrapping a data key under the RSA public key failed."""

    pass


class UnwrapError(BlobCryptoError):
    """Unwrapping a data key with the RSA private key failed."""

    pass


class StreamEncryptError(BlobCryptoError):
    """Encrypting a chunk of the output stream failed."""

    pass


class ChunkIntegrityError(BlobCryptoError, IOError):
    """
    A chunk failed verification on read.

    Raised for digest mismatches, truncated chunk headers and framing
    violations. Decrypting with the wrong data key surfaces here too.
    """

    pass
