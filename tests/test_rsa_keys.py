"""
Tests for PEM RSA key pair loading.
"""

from __future__ import annotations

import io

import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from encrypted_blob_io import KeyAlgorithmError, KeyFormatError, RsaKeyPair, read_rsa_key_pair


class TestReadRsaKeyPair:
    def test_reads_pem_bytes(self, rsa_pem):
        key_pair = read_rsa_key_pair(*rsa_pem)

        assert isinstance(key_pair, RsaKeyPair)
        assert isinstance(key_pair.public_key, rsa.RSAPublicKey)
        assert isinstance(key_pair.private_key, rsa.RSAPrivateKey)
        assert key_pair.key_size == 2048

    def test_public_and_private_keys_belong_together(self, rsa_pem):
        key_pair = read_rsa_key_pair(*rsa_pem)

        assert (
            key_pair.public_key.public_numbers()
            == key_pair.private_key.public_key().public_numbers()
        )

    def test_reads_streams_and_closes_them(self, rsa_pem):
        public_in = io.BytesIO(rsa_pem[0])
        private_in = io.BytesIO(rsa_pem[1])

        read_rsa_key_pair(public_in, private_in)

        assert public_in.closed
        assert private_in.closed

    def test_reads_str(self, rsa_pem):
        key_pair = read_rsa_key_pair(rsa_pem[0].decode("ascii"), rsa_pem[1].decode("ascii"))

        assert key_pair.key_size == 2048

    def test_reads_key_files(self, key_files):
        with open(key_files[0], "rb") as public_in, open(key_files[1], "rb") as private_in:
            key_pair = read_rsa_key_pair(public_in, private_in)

        assert key_pair.key_size == 2048

    def test_ignores_text_around_pem_block(self, rsa_pem):
        public = b"subject=/CN=backups\n" + rsa_pem[0] + b"\ntrailing\n"

        assert read_rsa_key_pair(public, rsa_pem[1]).key_size == 2048

    def test_repr_redacts_private_key(self, rsa_pem):
        assert "REDACTED" in repr(read_rsa_key_pair(*rsa_pem))


class TestKeyFormatErrors:
    def test_empty_public_key(self, rsa_pem):
        with pytest.raises(KeyFormatError, match="^Couldn't read PEM file$"):
            read_rsa_key_pair(b"", rsa_pem[1])

    def test_empty_private_key(self, rsa_pem):
        with pytest.raises(KeyFormatError, match="^Couldn't read PEM file$"):
            read_rsa_key_pair(rsa_pem[0], b"")

    def test_empty_key_file(self, tmp_path, rsa_pem):
        empty = tmp_path / "empty.pem"
        empty.write_bytes(b"")

        with pytest.raises(KeyFormatError, match="Couldn't read PEM file"):
            read_rsa_key_pair(empty.open("rb"), rsa_pem[1])

    def test_missing_key(self, rsa_pem):
        with pytest.raises(KeyFormatError, match="Couldn't read PEM file"):
            read_rsa_key_pair(None, rsa_pem[1])

    def test_not_pem(self, rsa_pem):
        with pytest.raises(KeyFormatError, match="Couldn't read PEM file"):
            read_rsa_key_pair(b"this is not a key", rsa_pem[1])

    def test_truncated_pem(self, rsa_pem):
        truncated = rsa_pem[0][: len(rsa_pem[0]) // 2]

        with pytest.raises(KeyFormatError, match="Couldn't read PEM file"):
            read_rsa_key_pair(truncated, rsa_pem[1])

    def test_mismatched_end_label(self, rsa_pem):
        broken = rsa_pem[0].replace(b"END PUBLIC KEY", b"END PRIVATE KEY")

        with pytest.raises(KeyFormatError, match="Couldn't read PEM file"):
            read_rsa_key_pair(broken, rsa_pem[1])

    def test_empty_pem_body(self, rsa_pem):
        empty_block = b"-----BEGIN PUBLIC KEY-----\n-----END PUBLIC KEY-----\n"

        with pytest.raises(KeyFormatError, match="Couldn't read PEM file"):
            read_rsa_key_pair(empty_block, rsa_pem[1])

    def test_invalid_base64_body(self, rsa_pem):
        garbage = b"-----BEGIN PUBLIC KEY-----\n!!!not base64!!!\n-----END PUBLIC KEY-----\n"

        with pytest.raises(KeyFormatError, match="Couldn't read PEM file"):
            read_rsa_key_pair(garbage, rsa_pem[1])

    def test_is_not_a_key_algorithm_error(self, rsa_pem):
        with pytest.raises(KeyFormatError) as exc_info:
            read_rsa_key_pair(b"", rsa_pem[1])

        assert not isinstance(exc_info.value, KeyAlgorithmError)


class TestKeyAlgorithmErrors:
    def test_dsa_key_pair(self, dsa_pem):
        with pytest.raises(KeyAlgorithmError, match="^Couldn't generate RSA key pair$"):
            read_rsa_key_pair(*dsa_pem)

    def test_ec_key_pair(self, ec_pem):
        with pytest.raises(KeyAlgorithmError, match="Couldn't generate RSA key pair"):
            read_rsa_key_pair(*ec_pem)

    def test_rsa_public_with_dsa_private(self, rsa_pem, dsa_pem):
        with pytest.raises(KeyAlgorithmError, match="Couldn't generate RSA key pair"):
            read_rsa_key_pair(rsa_pem[0], dsa_pem[1])

    def test_public_key_passed_as_private_key(self, rsa_pem):
        with pytest.raises(KeyAlgorithmError, match="Couldn't generate RSA key pair"):
            read_rsa_key_pair(rsa_pem[0], rsa_pem[0])

    def test_structurally_invalid_der(self, rsa_pem):
        bogus = (
            b"-----BEGIN PUBLIC KEY-----\n"
            b"AAECAwQFBgcICQoLDA0ODxAREhMUFRYXGBkaGxwdHh8=\n"
            b"-----END PUBLIC KEY-----\n"
        )

        with pytest.raises(KeyAlgorithmError, match="Couldn't generate RSA key pair"):
            read_rsa_key_pair(bogus, rsa_pem[1])
