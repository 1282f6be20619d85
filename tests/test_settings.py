"""
Tests for settings access.
"""

from __future__ import annotations

import pytest

from encrypted_blob_io import (
    COMPRESSION_LEVEL,
    ENCRYPTION_CHUNK_SIZE,
    PRIVATE_KEY_FILE,
    PUBLIC_KEY_FILE,
    CodecSettings,
    ConfigError,
    MissingConfigurationError,
    Settings,
)


class TestSettings:
    def test_secure_file_reads_path(self, key_files, rsa_pem):
        settings = Settings({PUBLIC_KEY_FILE: key_files[0]})

        assert settings.secure_file(PUBLIC_KEY_FILE) == rsa_pem[0]

    def test_secure_file_returns_raw_bytes(self):
        settings = Settings({PUBLIC_KEY_FILE: b"raw pem"})

        assert settings.secure_file(PUBLIC_KEY_FILE) == b"raw pem"

    def test_secure_file_missing_file(self, tmp_path):
        settings = Settings({PUBLIC_KEY_FILE: str(tmp_path / "absent.pem")})

        with pytest.raises(ConfigError, match=PUBLIC_KEY_FILE):
            settings.secure_file(PUBLIC_KEY_FILE)

    def test_missing_setting_names_the_key(self):
        with pytest.raises(MissingConfigurationError) as exc_info:
            Settings().secure_file(PRIVATE_KEY_FILE)

        assert exc_info.value.setting_name == PRIVATE_KEY_FILE
        assert str(exc_info.value) == "Settings with name private_key_file hasn't been set"

    def test_secure_string(self):
        settings = Settings({"token": "abc", "raw": b"xyz"})

        assert settings.secure_string("token") == "abc"
        assert settings.secure_string("raw") == "xyz"

    def test_has(self):
        settings = Settings({PUBLIC_KEY_FILE: "a"})

        assert settings.has(PUBLIC_KEY_FILE)
        assert not settings.has(PRIVATE_KEY_FILE)

    def test_is_immutable(self):
        values = {PUBLIC_KEY_FILE: "a"}
        settings = Settings(values)
        values[PUBLIC_KEY_FILE] = "b"

        assert settings.secure_string(PUBLIC_KEY_FILE) == "a"

    def test_equality(self):
        assert Settings({"a": "1"}) == Settings({"a": "1"})
        assert Settings({"a": "1"}) != Settings({"a": "2"})

    def test_repr_hides_values(self):
        assert "secret-value" not in repr(Settings({PRIVATE_KEY_FILE: "secret-value"}))


class TestFromEnv:
    def test_collects_prefixed_variables(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("ENCRYPTED_BLOB_IO_PUBLIC_KEY_FILE", "/keys/public.pem")
        monkeypatch.setenv("ENCRYPTED_BLOB_IO_ENCRYPTION_CHUNK_SIZE", "4096")
        monkeypatch.setenv("UNRELATED_SETTING", "ignored")

        settings = Settings.from_env()

        assert settings.secure_string(PUBLIC_KEY_FILE) == "/keys/public.pem"
        assert settings.secure_string(ENCRYPTION_CHUNK_SIZE) == "4096"
        assert not settings.has("unrelated_setting")

    def test_loads_env_file(self, monkeypatch, tmp_path, key_files, rsa_pem):
        # setenv first so teardown removes the variable load_dotenv sets
        monkeypatch.setenv("ENCRYPTED_BLOB_IO_PRIVATE_KEY_FILE", "placeholder")
        monkeypatch.delenv("ENCRYPTED_BLOB_IO_PRIVATE_KEY_FILE")
        env_file = tmp_path / "settings.env"
        env_file.write_text(f"ENCRYPTED_BLOB_IO_PRIVATE_KEY_FILE={key_files[1]}\n")

        settings = Settings.from_env(env_file=env_file)

        assert settings.secure_file(PRIVATE_KEY_FILE) == rsa_pem[1]

    def test_environment_wins_over_env_file(self, monkeypatch, tmp_path):
        monkeypatch.setenv("ENCRYPTED_BLOB_IO_COMPRESSION_LEVEL", "5")
        env_file = tmp_path / "settings.env"
        env_file.write_text("ENCRYPTED_BLOB_IO_COMPRESSION_LEVEL=9\n")

        settings = Settings.from_env(env_file=env_file)

        assert settings.secure_string(COMPRESSION_LEVEL) == "5"

    def test_custom_prefix(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("BACKUP_PUBLIC_KEY_FILE", "/keys/backup.pem")

        settings = Settings.from_env(prefix="BACKUP_")

        assert settings.secure_string(PUBLIC_KEY_FILE) == "/keys/backup.pem"


class TestCodecSettings:
    def test_defaults(self):
        codec = CodecSettings.from_settings(Settings())

        assert codec == CodecSettings(chunk_size=8192, compression_level=3)

    def test_configured_values(self):
        codec = CodecSettings.from_settings(
            Settings({ENCRYPTION_CHUNK_SIZE: " 65536 ", COMPRESSION_LEVEL: "-1"})
        )

        assert codec.chunk_size == 65536
        assert codec.compression_level == -1

    @pytest.mark.parametrize("value", ["0", "-5", str(64 * 1024 * 1024 + 1), "8k", ""])
    def test_invalid_chunk_size(self, value):
        with pytest.raises(ConfigError, match=ENCRYPTION_CHUNK_SIZE):
            CodecSettings.from_settings(Settings({ENCRYPTION_CHUNK_SIZE: value}))

    @pytest.mark.parametrize("value", ["23", "-8", "fast"])
    def test_invalid_compression_level(self, value):
        with pytest.raises(ConfigError, match=COMPRESSION_LEVEL):
            CodecSettings.from_settings(Settings({COMPRESSION_LEVEL: value}))
