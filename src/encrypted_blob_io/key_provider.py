"""
Envelope key provider.

This module provides:
- EncryptionKeyProvider: Creates per-session AES-256 data keys and wraps or
  unwraps them with a long-lived RSA key pair

Architecture:
- RSA key pair: loaded once from PEM material, never leaves the provider
- Data key: generated for one write operation, persisted only as a wrapped key
- Wrapped key: RSA-OAEP (SHA-512, MGF1 SHA-512) ciphertext of the raw key bytes

The provider holds no per-call state, so one instance can serve any number
of concurrent blob reads and writes.
"""

from __future__ import annotations

import logging

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from .crypto import AES_256_KEY_SIZE, DataKey
from .errors import UnwrapError, WrapError
from .rsa_keys import KeySource, RsaKeyPair, read_rsa_key_pair
from .settings import PRIVATE_KEY_FILE, PUBLIC_KEY_FILE, Settings

logger = logging.getLogger(__name__)


def _oaep() -> padding.OAEP:
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA512()),
        algorithm=hashes.SHA512(),
        label=None,
    )


class EncryptionKeyProvider:
    """
    Envelope encryption key provider.

    Example:
        provider = EncryptionKeyProvider.of(Settings.from_env())
        key = provider.create_key()
        wrapped = provider.encrypt_key(key)
        assert provider.decrypt_key(wrapped) == key
    """

    __slots__ = ("_key_pair",)

    def __init__(self, key_pair: RsaKeyPair) -> None:
        """
        Initialize EncryptionKeyProvider.

        Args:
            key_pair: RSA key pair used to wrap and unwrap data keys
        """
        self._key_pair = key_pair

    @classmethod
    def of(cls, settings: Settings) -> EncryptionKeyProvider:
        """
        Create a provider from the public_key_file and private_key_file settings.

        Raises:
            MissingConfigurationError: If either setting is absent
            KeyFormatError: If the key files are not PEM
            KeyAlgorithmError: If the keys are not RSA
        """
        if settings is None:
            raise ValueError("settings hasn't been set")
        public_key = settings.secure_file(PUBLIC_KEY_FILE)
        private_key = settings.secure_file(PRIVATE_KEY_FILE)
        return cls.from_pem(public_key, private_key)

    @classmethod
    def from_pem(cls, public_key: KeySource, private_key: KeySource) -> EncryptionKeyProvider:
        """Create a provider from raw PEM material (bytes, str or readable streams)."""
        logger.info("Read RSA keys")
        key_pair = read_rsa_key_pair(public_key, private_key)
        return cls(key_pair)

    @property
    def key_pair(self) -> RsaKeyPair:
        return self._key_pair

    def create_key(self) -> DataKey:
        """Generate a fresh 256-bit data key from the system CSPRNG."""
        return DataKey.generate()

    def encrypt_key(self, key: DataKey) -> bytes:
        """
        Wrap a data key under the RSA public key.

        Raises:
            WrapError: If the RSA cipher rejects the key
        """
        try:
            return self._key_pair.public_key.encrypt(key.as_bytes(), _oaep())
        except (ValueError, TypeError) as e:
            raise WrapError("Couldn't encrypt AES key") from e

    def decrypt_key(self, wrapped_key: bytes) -> DataKey:
        """
        Unwrap a data key with the RSA private key.

        Raises:
            UnwrapError: If the wrapped key is corrupt or was wrapped
                under a different key pair
        """
        try:
            raw = self._key_pair.private_key.decrypt(bytes(wrapped_key), _oaep())
        except (ValueError, TypeError) as e:
            raise UnwrapError("Couldn't decrypt AES key") from e
        if len(raw) != AES_256_KEY_SIZE:
            raise UnwrapError(
                f"Couldn't decrypt AES key: expected {AES_256_KEY_SIZE} bytes, got {len(raw)}"
            )
        return DataKey(raw)

    def __repr__(self) -> str:
        return f"EncryptionKeyProvider(key_size={self._key_pair.key_size})"
