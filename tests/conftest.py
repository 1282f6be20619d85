"""
Pytest configuration and fixtures for encrypted blob I/O tests.
"""

from __future__ import annotations

from pathlib import Path
from typing import Tuple

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import dsa, ec, rsa

from encrypted_blob_io import (
    PRIVATE_KEY_FILE,
    PUBLIC_KEY_FILE,
    DataKey,
    EncryptionKeyProvider,
    Settings,
)

PemPair = Tuple[bytes, bytes]


def _pem_pair(private_key) -> PemPair:
    public_pem = private_key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    private_pem = private_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    return public_pem, private_pem


@pytest.fixture(scope="session")
def rsa_pem() -> PemPair:
    """PEM X.509 public key and PEM PKCS#8 private key for RSA-2048."""
    return _pem_pair(rsa.generate_private_key(public_exponent=65537, key_size=2048))


@pytest.fixture(scope="session")
def other_rsa_pem() -> PemPair:
    """A second, unrelated RSA-2048 key pair."""
    return _pem_pair(rsa.generate_private_key(public_exponent=65537, key_size=2048))


@pytest.fixture(scope="session")
def dsa_pem() -> PemPair:
    """DSA key pair in the same PEM formats as the RSA fixtures."""
    return _pem_pair(dsa.generate_private_key(key_size=2048))


@pytest.fixture(scope="session")
def ec_pem() -> PemPair:
    """EC (P-256) key pair in the same PEM formats as the RSA fixtures."""
    return _pem_pair(ec.generate_private_key(ec.SECP256R1()))


@pytest.fixture
def key_files(tmp_path: Path, rsa_pem: PemPair) -> Tuple[Path, Path]:
    """RSA key pair written to public.pem and private.pem."""
    public_path = tmp_path / "public.pem"
    private_path = tmp_path / "private.pem"
    public_path.write_bytes(rsa_pem[0])
    private_path.write_bytes(rsa_pem[1])
    return public_path, private_path


@pytest.fixture
def key_settings(key_files: Tuple[Path, Path]) -> Settings:
    """Settings pointing at the RSA key files."""
    return Settings(
        {
            PUBLIC_KEY_FILE: str(key_files[0]),
            PRIVATE_KEY_FILE: str(key_files[1]),
        }
    )


@pytest.fixture(scope="session")
def key_provider(rsa_pem: PemPair) -> EncryptionKeyProvider:
    """Key provider shared by the whole test session."""
    return EncryptionKeyProvider.from_pem(*rsa_pem)


@pytest.fixture
def data_key() -> DataKey:
    """Fresh data key for one test."""
    return DataKey.generate()
