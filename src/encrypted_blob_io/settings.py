"""
Settings access for key material and codec tuning.

Settings are plain name/value pairs. Key material lives in "secure file"
entries (a path on disk, or the raw PEM bytes) and tuning knobs in "secure
string" entries. Environment variables with the ENCRYPTED_BLOB_IO_ prefix are
the usual source, optionally seeded from a .env file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Union

from dotenv import find_dotenv, load_dotenv

from .crypto import DEFAULT_CHUNK_SIZE
from .errors import ConfigError, MissingConfigurationError

ENV_PREFIX: str = "ENCRYPTED_BLOB_IO_"

# Setting names
PUBLIC_KEY_FILE: str = "public_key_file"
PRIVATE_KEY_FILE: str = "private_key_file"
ENCRYPTION_CHUNK_SIZE: str = "encryption_chunk_size"
COMPRESSION_LEVEL: str = "compression_level"

MIN_CHUNK_SIZE: int = 1
MAX_CHUNK_SIZE: int = 64 * 1024 * 1024
DEFAULT_COMPRESSION_LEVEL: int = 3
MIN_COMPRESSION_LEVEL: int = -7
MAX_COMPRESSION_LEVEL: int = 22

SettingValue = Union[str, bytes, os.PathLike]


class Settings:
    """
    Immutable view over named settings.

    Equality compares the underlying values, which is what ProviderCache uses
    to decide whether a cached provider is stale.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Optional[Mapping[str, SettingValue]] = None) -> None:
        self._values = MappingProxyType(dict(values or {}))

    @classmethod
    def from_env(
        cls,
        prefix: str = ENV_PREFIX,
        env_file: Optional[Union[str, os.PathLike]] = None,
    ) -> Settings:
        """
        Collect settings from prefixed environment variables.

        Args:
            prefix: Environment variable prefix, stripped from the name
            env_file: Optional .env file loaded first (existing variables win)

        Returns:
            Settings with lower-cased names, e.g.
            ENCRYPTED_BLOB_IO_PUBLIC_KEY_FILE -> public_key_file
        """
        if env_file is not None:
            load_dotenv(env_file)
        else:
            load_dotenv(find_dotenv(usecwd=True))

        return cls(
            {
                name[len(prefix):].lower(): value
                for name, value in os.environ.items()
                if name.startswith(prefix) and len(name) > len(prefix)
            }
        )

    def has(self, name: str) -> bool:
        return name in self._values

    def secure_file(self, name: str) -> bytes:
        """
        Read a secure file setting.

        Bytes values are returned as is; anything else is treated as a path
        and read from disk.

        Raises:
            MissingConfigurationError: If the setting is absent
            ConfigError: If the file can't be read
        """
        value = self._require(name)
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        try:
            return Path(value).read_bytes()
        except OSError as e:
            raise ConfigError(f"Couldn't read file for setting {name}: {e}") from e

    def secure_string(self, name: str) -> str:
        """
        Read a secure string setting.

        Raises:
            MissingConfigurationError: If the setting is absent
        """
        value = self._require(name)
        if isinstance(value, (bytes, bytearray)):
            return bytes(value).decode("utf-8")
        return os.fspath(value)

    def get_int(self, name: str, default: int, minimum: int, maximum: int) -> int:
        """Read an integer setting, falling back to default when absent."""
        if not self.has(name):
            return default
        raw = self.secure_string(name).strip()
        try:
            value = int(raw)
        except ValueError:
            raise ConfigError(f"Setting {name} must be an integer, got {raw!r}")
        if not minimum <= value <= maximum:
            raise ConfigError(
                f"Setting {name} must be between {minimum} and {maximum}, got {value}"
            )
        return value

    def _require(self, name: str) -> SettingValue:
        try:
            return self._values[name]
        except KeyError:
            raise MissingConfigurationError(name) from None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Settings):
            return NotImplemented
        return dict(self._values) == dict(other._values)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Settings(names={sorted(self._values)})"


@dataclass(frozen=True)
class CodecSettings:
    """Validated codec tuning parameters."""

    chunk_size: int = DEFAULT_CHUNK_SIZE
    compression_level: int = DEFAULT_COMPRESSION_LEVEL

    @classmethod
    def from_settings(cls, settings: Settings) -> CodecSettings:
        """
        Read encryption_chunk_size and compression_level.

        Raises:
            ConfigError: If a value is malformed or out of range
        """
        return cls(
            chunk_size=settings.get_int(
                ENCRYPTION_CHUNK_SIZE, DEFAULT_CHUNK_SIZE, MIN_CHUNK_SIZE, MAX_CHUNK_SIZE
            ),
            compression_level=settings.get_int(
                COMPRESSION_LEVEL,
                DEFAULT_COMPRESSION_LEVEL,
                MIN_COMPRESSION_LEVEL,
                MAX_COMPRESSION_LEVEL,
            ),
        )
