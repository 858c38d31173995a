"""
Tests for mediapull configuration (pydantic-settings).
"""

import pytest
from pydantic import ValidationError

from mediapull.config import BYTES_PER_MB, TransferSettings, load_settings
from mediapull.exceptions import ConfigurationError


class TestTransferSettings:
    """Tests for TransferSettings defaults and validation."""

    def test_default_values(self):
        settings = TransferSettings(_env_file=None)

        assert settings.mode == "sftp"
        assert settings.remote_port == 22
        assert settings.chunk_size == 64 * 1024
        assert settings.max_buffered_chunks == 32
        assert settings.connect_timeout == 20.0
        assert settings.keepalive_interval == 10.0
        assert settings.read_timeout == 60.0
        assert settings.retry_attempts == 3
        assert settings.retry_backoff == 1.0
        assert settings.log_level == "INFO"
        assert settings.log_json is False
        assert settings.rate_limit is None
        assert settings.token is None

    def test_env_variables(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MEDIAPULL_MODE", "http")
        monkeypatch.setenv("MEDIAPULL_SERVER_URL", "https://media.lan:32400/")
        monkeypatch.setenv("MEDIAPULL_SERVER_TOKEN", "abc")
        monkeypatch.setenv("MEDIAPULL_LOCAL_ROOT", str(tmp_path))
        monkeypatch.setenv("MEDIAPULL_SPEED_LIMIT_MB", "2.5")

        settings = TransferSettings(_env_file=None)

        assert settings.mode == "http"
        assert settings.server_url == "https://media.lan:32400"
        assert settings.token == "abc"
        assert settings.local_root == tmp_path
        assert settings.rate_limit == int(2.5 * BYTES_PER_MB)

    def test_env_file(self, tmp_path):
        env_file = tmp_path / "custom.env"
        env_file.write_text("MEDIAPULL_REMOTE_HOST=nas.lan\nMEDIAPULL_REMOTE_PORT=2222\n")
        settings = load_settings(env_file=env_file)
        assert settings.remote_host == "nas.lan"
        assert settings.remote_port == 2222

    def test_token_hidden_in_repr(self):
        settings = TransferSettings(_env_file=None, server_token="abc123")
        assert "abc123" not in repr(settings)

    def test_frozen(self):
        settings = TransferSettings(_env_file=None)
        with pytest.raises(ValidationError):
            settings.mode = "http"

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("server_url", "ftp://media.lan"),
            ("remote_root", "relative/path"),
            ("speed_limit_mb", 0),
            ("connect_timeout", 0.5),
            ("connect_timeout", 500),
            ("remote_port", 70000),
            ("mode", "ftp"),
        ],
    )
    def test_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            TransferSettings(_env_file=None, **{field: value})


class TestValidateForTransfer:
    """Tests for mode-specific validation."""

    def test_sftp_valid(self, sftp_settings):
        sftp_settings.validate_for_transfer()

    def test_http_valid(self, http_settings):
        http_settings.validate_for_transfer()

    def test_sftp_collects_all_errors(self):
        settings = TransferSettings(_env_file=None, mode="sftp")
        with pytest.raises(ConfigurationError) as exc_info:
            settings.validate_for_transfer()
        errors = exc_info.value.errors
        assert "MEDIAPULL_LOCAL_ROOT is not set" in errors
        assert "MEDIAPULL_REMOTE_HOST is not set" in errors
        assert "MEDIAPULL_REMOTE_USER is not set" in errors
        assert "MEDIAPULL_REMOTE_ROOT is not set" in errors
        assert "MEDIAPULL_PRIVATE_KEY_PATH is not set" in errors

    def test_missing_key_file(self, local_root, tmp_path):
        settings = TransferSettings(
            _env_file=None,
            remote_host="h",
            remote_user="u",
            remote_root="/srv",
            private_key_path=tmp_path / "nope",
            local_root=local_root,
        )
        with pytest.raises(ConfigurationError, match="readable key file"):
            settings.validate_for_transfer()

    def test_local_root_must_exist(self, tmp_path):
        settings = TransferSettings(
            _env_file=None,
            mode="http",
            server_url="https://m.lan",
            server_token="t",
            local_root=tmp_path / "missing",
        )
        with pytest.raises(ConfigurationError, match="must exist"):
            settings.validate_for_transfer()

    def test_http_requires_token(self, local_root):
        settings = TransferSettings(_env_file=None, mode="http", server_url="https://m.lan", local_root=local_root)
        with pytest.raises(ConfigurationError) as exc_info:
            settings.validate_for_transfer()
        assert exc_info.value.errors == ["MEDIAPULL_SERVER_TOKEN is not set"]


class TestLoadSettings:
    """Tests for load_settings."""

    def test_overrides(self, tmp_path):
        settings = load_settings(env_file=tmp_path / "absent.env", mode="http", speed_limit_mb=1)
        assert settings.mode == "http"
        assert settings.rate_limit == BYTES_PER_MB

    def test_none_overrides_ignored(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MEDIAPULL_MODE", "http")
        settings = load_settings(env_file=tmp_path / "absent.env", mode=None)
        assert settings.mode == "http"

    def test_new_object_each_call(self, tmp_path):
        env_file = tmp_path / "absent.env"
        assert load_settings(env_file=env_file) is not load_settings(env_file=env_file)
