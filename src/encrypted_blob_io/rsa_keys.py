"""
RSA key material loading.

Public keys are PEM armored X.509 SubjectPublicKeyInfo, private keys are PEM
armored PKCS#8 PrivateKeyInfo. Only the first PEM block of each input is read.
"""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass
from typing import BinaryIO, Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from .errors import KeyAlgorithmError, KeyFormatError

KeySource = Union[bytes, bytearray, str, BinaryIO]

_PEM_BLOCK = re.compile(
    rb"-----BEGIN ([A-Z0-9 ]+)-----\r?\n(.*?)-----END \1-----",
    re.DOTALL,
)


@dataclass(frozen=True)
class RsaKeyPair:
    """RSA key pair loaded from external PEM material."""

    public_key: rsa.RSAPublicKey
    private_key: rsa.RSAPrivateKey

    @property
    def key_size(self) -> int:
        return self.public_key.key_size

    def __repr__(self) -> str:
        return f"RsaKeyPair(key_size={self.key_size}, private_key=[REDACTED])"


def read_rsa_key_pair(public_key: KeySource, private_key: KeySource) -> RsaKeyPair:
    """
    Parse PEM encoded RSA public and private keys.

    Args:
        public_key: PEM X.509 public key as bytes, str or a readable stream
        private_key: PEM PKCS#8 private key as bytes, str or a readable stream

    Returns:
        RsaKeyPair

    Raises:
        KeyFormatError: If PEM framing is missing or the payload is empty
        KeyAlgorithmError: If the key material is not a valid RSA key
    """
    public_der = _read_pem_content(public_key)
    private_der = _read_pem_content(private_key)
    try:
        public = serialization.load_der_public_key(public_der)
        private = serialization.load_der_private_key(private_der, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeyAlgorithmError("Couldn't generate RSA key pair") from e

    if not isinstance(public, rsa.RSAPublicKey) or not isinstance(private, rsa.RSAPrivateKey):
        raise KeyAlgorithmError("Couldn't generate RSA key pair")

    return RsaKeyPair(public_key=public, private_key=private)


def _read_pem_content(source: KeySource) -> bytes:
    data = _read_all(source)
    match = _PEM_BLOCK.search(data)
    if match is None:
        raise KeyFormatError("Couldn't read PEM file")

    # Encapsulated headers (RFC 1421 "Proc-Type: ...") are not part of the payload
    body = b"".join(
        line.strip()
        for line in match.group(2).splitlines()
        if line.strip() and b":" not in line
    )
    try:
        content = base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as e:
        raise KeyFormatError("Couldn't read PEM file") from e

    if not content:
        raise KeyFormatError("Couldn't read PEM file")
    return content


def _read_all(source: KeySource) -> bytes:
    if source is None:
        raise KeyFormatError("Couldn't read PEM file")
    if isinstance(source, str):
        return source.encode("ascii", errors="replace")
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    try:
        with source:
            return source.read()
    except OSError as e:
        raise KeyFormatError("Couldn't read PEM file") from e
