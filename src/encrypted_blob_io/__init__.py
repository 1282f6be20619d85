"""
Encrypted Blob I/O

Envelope encrypted, compressed, chunked streaming I/O for persisting blobs of
any size to object storage.

Overview
--------
- **Data keys** are AES-256 keys generated per write operation
- **Wrapped keys** are data keys encrypted with a long-lived RSA key pair
  (RSA-OAEP, SHA-512) and stored next to the blob
- **Encoded streams** are Zstandard frames split into AES-256-CTR chunks, each
  with its own nonce and an 8-byte integrity digest checked before any
  plaintext is released

The digest detects corruption and wrong keys. It is not a MAC and gives no
protection against deliberate tampering.

Quick Start
-----------
```python
from encrypted_blob_io import CryptoIOProvider, EncryptionKeyProvider, Settings

provider = EncryptionKeyProvider.of(Settings.from_env())

# Write
key = provider.create_key()
wrapped_key = provider.encrypt_key(key)
encoded = CryptoIOProvider(key).compress_and_encrypt(b"Sensitive data")

# Read
key = provider.decrypt_key(wrapped_key)
with CryptoIOProvider(key).decrypt_and_decompress(encoded) as plaintext:
    data = plaintext.read()
```

Large blobs go through `compress_and_encrypt_into(source, destination)`,
which writes the encoded stream incrementally.

Modules
-------
- `crypto`: AES-256-CTR chunk cipher, data keys, chunk digest
- `rsa_keys`: PEM RSA key pair loading
- `key_provider`: Data key creation, wrapping and unwrapping
- `streams`: Chunked encryption writer and decryption reader
- `io_provider`: Compression composed with the chunked streams
- `settings`: Settings access for key files and codec tuning
- `provider_cache`: Reload-aware provider caching
- `errors`: Error types and exception classes
"""

__version__ = "0.1.0"

# ============================================================================
# Crypto Exports
# ============================================================================

from .crypto import (
    AES_256_KEY_SIZE,
    CHUNK_HEADER_SIZE,
    DEFAULT_CHUNK_SIZE,
    DIGEST_SIZE,
    NONCE_SIZE,
    AesCtrCipher,
    DataKey,
    EncryptedChunk,
    chunk_digest,
    encrypted_package_size,
    generate_random_bytes,
)

# ============================================================================
# Error Exports
# ============================================================================

from .errors import (
    BlobCryptoError,
    ChunkIntegrityError,
    ConfigError,
    KeyAlgorithmError,
    KeyFormatError,
    MissingConfigurationError,
    StreamEncryptError,
    UnwrapError,
    WrapError,
)

# ============================================================================
# Key Exports
# ============================================================================

from .rsa_keys import RsaKeyPair, read_rsa_key_pair
from .key_provider import EncryptionKeyProvider

# ============================================================================
# Settings Exports
# ============================================================================

from .settings import (
    COMPRESSION_LEVEL,
    ENCRYPTION_CHUNK_SIZE,
    PRIVATE_KEY_FILE,
    PUBLIC_KEY_FILE,
    CodecSettings,
    Settings,
)

# ============================================================================
# Stream and Codec Exports (Primary API)
# ============================================================================

from .streams import DecryptionReader, EncryptionWriter, encoded_length
from .io_provider import CryptoIOProvider
from .provider_cache import KeyProviderCache, ProviderCache

# ============================================================================
# Public API
# ============================================================================

__all__ = [
    # Version
    "__version__",
    # Crypto
    "AES_256_KEY_SIZE",
    "CHUNK_HEADER_SIZE",
    "DEFAULT_CHUNK_SIZE",
    "DIGEST_SIZE",
    "NONCE_SIZE",
    "AesCtrCipher",
    "DataKey",
    "EncryptedChunk",
    "chunk_digest",
    "encrypted_package_size",
    "generate_random_bytes",
    # Errors
    "BlobCryptoError",
    "KeyFormatError",
    "KeyAlgorithmError",
    "MissingConfigurationError",
    "ConfigError",
    "WrapError",
    "UnwrapError",
    "StreamEncryptError",
    "ChunkIntegrityError",
    # Keys
    "RsaKeyPair",
    "read_rsa_key_pair",
    "EncryptionKeyProvider",
    # Settings
    "PUBLIC_KEY_FILE",
    "PRIVATE_KEY_FILE",
    "ENCRYPTION_CHUNK_SIZE",
    "COMPRESSION_LEVEL",
    "Settings",
    "CodecSettings",
    # Streams and codec (Primary API)
    "EncryptionWriter",
    "DecryptionReader",
    "encoded_length",
    "CryptoIOProvider",
    "ProviderCache",
    "KeyProviderCache",
]
