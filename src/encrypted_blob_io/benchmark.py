"""
Encrypted Blob I/O Benchmark CLI.

Usage:
    encrypted-blob-io-benchmark [--public-key PEM --private-key PEM] [--sizes 1024,1048576]

Or run directly:
    python -m encrypted_blob_io.benchmark

Key material:
    1. --public-key / --private-key PEM files, or
    2. ENCRYPTED_BLOB_IO_PUBLIC_KEY_FILE / ENCRYPTED_BLOB_IO_PRIVATE_KEY_FILE
       in the environment or a .env file, or
    3. a throwaway RSA-3072 key pair generated for the run
"""

from __future__ import annotations

import argparse
import io
import logging
import sys
import time
from typing import List, Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from encrypted_blob_io.crypto import generate_random_bytes
from encrypted_blob_io.errors import BlobCryptoError
from encrypted_blob_io.io_provider import CryptoIOProvider
from encrypted_blob_io.key_provider import EncryptionKeyProvider
from encrypted_blob_io.settings import (
    PRIVATE_KEY_FILE,
    PUBLIC_KEY_FILE,
    CodecSettings,
    Settings,
)

DEFAULT_SIZES = "1024,65536,1048576,16777216"


def _throwaway_key_pair() -> tuple[bytes, bytes]:
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=3072)
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


def _load_provider(args: argparse.Namespace, settings: Settings) -> EncryptionKeyProvider:
    if args.public_key and args.private_key:
        with open(args.public_key, "rb") as public_in, open(args.private_key, "rb") as private_in:
            return EncryptionKeyProvider.from_pem(public_in, private_in)
    if settings.has(PUBLIC_KEY_FILE) and settings.has(PRIVATE_KEY_FILE):
        return EncryptionKeyProvider.of(settings)
    print("[STARTUP] No key material configured, generating a throwaway RSA-3072 key pair")
    return EncryptionKeyProvider.from_pem(*_throwaway_key_pair())


def _parse_sizes(raw: str) -> List[int]:
    try:
        sizes = [int(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid size list: {raw!r}")
    if not sizes or any(size < 0 for size in sizes):
        raise argparse.ArgumentTypeError(f"Invalid size list: {raw!r}")
    return sizes


def _rate(size: int, seconds: float) -> str:
    if seconds <= 0:
        return "n/a"
    return f"{size / seconds / (1024 * 1024):.2f} MiB/s"


def run_benchmark(args: argparse.Namespace) -> int:
    """Run the codec benchmark, returning the process exit code."""
    print("=== Encrypted Blob I/O Benchmark ===\n")

    settings = Settings.from_env(env_file=args.env_file)
    codec = CodecSettings.from_settings(settings)
    provider = _load_provider(args, settings)

    print(f"Key pair: RSA-{provider.key_pair.key_size}")
    print(f"Chunk size: {codec.chunk_size} bytes | zstd level: {codec.compression_level}\n")

    # ========================================================================
    # Demo 1: Data key wrap/unwrap
    # ========================================================================
    print("+" + "-" * 68 + "+")
    print(f"|  Demo 1: Wrap/Unwrap {args.keys} Data Keys" + " " * (40 - len(str(args.keys))) + "|")
    print("+" + "-" * 68 + "+")

    wrap_time = 0.0
    unwrap_time = 0.0
    for _ in range(args.keys):
        key = provider.create_key()

        start = time.perf_counter()
        wrapped = provider.encrypt_key(key)
        wrap_time += time.perf_counter() - start

        start = time.perf_counter()
        recovered = provider.decrypt_key(wrapped)
        unwrap_time += time.perf_counter() - start

        if recovered != key:
            print("[ERROR] Unwrapped key does not match")
            return 1

    print(f"[OK] {args.keys} data keys wrapped and unwrapped")
    print(f"[PERF] Wrap:   {wrap_time * 1000 / args.keys:.3f}ms per key")
    print(f"[PERF] Unwrap: {unwrap_time * 1000 / args.keys:.3f}ms per key\n")

    # ========================================================================
    # Demo 2: Buffered and streaming round trips
    # ========================================================================
    print("+" + "-" * 68 + "+")
    print("|  Demo 2: Compress+Encrypt / Decrypt+Decompress Round Trips        |")
    print("+" + "-" * 68 + "+")

    failures = 0
    for size in args.sizes:
        payload = generate_random_bytes(size)
        io_provider = CryptoIOProvider(
            provider.create_key(),
            chunk_size=codec.chunk_size,
            compression_level=codec.compression_level,
        )

        start = time.perf_counter()
        encoded = io_provider.compress_and_encrypt(payload)
        buffered_time = time.perf_counter() - start

        sink = io.BytesIO()
        start = time.perf_counter()
        io_provider.compress_and_encrypt_into(io.BytesIO(payload), sink, closefd=False)
        streaming_time = time.perf_counter() - start

        start = time.perf_counter()
        try:
            with io_provider.decrypt_and_decompress(encoded) as plaintext:
                decoded = plaintext.read()
            with io_provider.decrypt_and_decompress(sink.getvalue()) as plaintext:
                streamed = plaintext.read()
        except BlobCryptoError as e:
            print(f"[ERROR] {size} bytes: {e}")
            failures += 1
            continue
        decode_time = (time.perf_counter() - start) / 2

        if decoded != payload or streamed != payload:
            print(f"[ERROR] {size} bytes: round trip mismatch")
            failures += 1
            continue

        print(
            f"  {size:>10} bytes -> {len(encoded):>10} encoded | "
            f"buffered {_rate(size, buffered_time)} | "
            f"streaming {_rate(size, streaming_time)} | "
            f"decode {_rate(size, decode_time)}"
        )

    print("\n" + "=" * 70)
    print("                    BENCHMARK COMPLETE")
    print("=" * 70 + "\n")
    return 1 if failures else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="encrypted-blob-io-benchmark",
        description="Measure key wrapping and codec throughput.",
    )
    parser.add_argument("--public-key", help="PEM X.509 RSA public key file")
    parser.add_argument("--private-key", help="PEM PKCS#8 RSA private key file")
    parser.add_argument("--env-file", help=".env file with ENCRYPTED_BLOB_IO_* settings")
    parser.add_argument("--keys", type=int, default=25, help="data keys to wrap (default: 25)")
    parser.add_argument(
        "--sizes",
        type=_parse_sizes,
        default=_parse_sizes(DEFAULT_SIZES),
        help=f"comma separated payload sizes in bytes (default: {DEFAULT_SIZES})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point for encrypted-blob-io-benchmark command."""
    args = build_parser().parse_args(argv)
    if args.keys < 1:
        print("ERROR: --keys must be at least 1")
        sys.exit(2)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    try:
        sys.exit(run_benchmark(args))
    except BlobCryptoError as e:
        print(f"ERROR: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
