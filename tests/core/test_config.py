"""Tests for configuration loading and validation."""

import tomllib

import pytest

from music_streamer.core.config import (
    Config,
    apply_env_overrides,
    config_from_toml,
    create_default_config,
    get_config_path,
    load_config,
    normalize_formats,
)
from music_streamer.core.errors import ConfigurationError

ENV_VARS = [
    "MUSIC_FOLDER",
    "HOST",
    "PORT",
    "CORS_ORIGINS",
    "API_TOKENS",
    "LOG_LEVEL",
    "RESCAN_INTERVAL",
    "MUSIC_STREAMER_CONFIG",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.chdir(tmp_path)


class TestDefaults:
    def test_default_values(self):
        config = Config()
        assert config.music.library_path == "./music"
        assert config.server.port == 8080
        assert config.server.cors_origins == ["*"]
        assert config.auth.api_tokens == []
        assert config.music.rescan_interval_seconds == 0
        assert ".flac" in config.music.supported_formats

    def test_default_config_is_valid_toml(self):
        """Test that the generated default file round-trips into the same defaults."""
        config = config_from_toml(tomllib.loads(create_default_config()))
        assert config.server.port == 8080
        assert config.music.supported_formats == Config().music.supported_formats


class TestNormalizeFormats:
    def test_adds_dot_and_lowercases(self):
        assert normalize_formats(["MP3", ".Flac", " ogg "]) == [".mp3", ".flac", ".ogg"]

    def test_drops_blanks_and_duplicates(self):
        assert normalize_formats(["mp3", "", ".mp3"]) == [".mp3"]


class TestConfigFromToml:
    def test_partial_sections_keep_defaults(self):
        config = config_from_toml({"server": {"port": 9000}})
        assert config.server.port == 9000
        assert config.server.host == "0.0.0.0"
        assert config.music.library_path == "./music"

    def test_auth_tokens(self):
        config = config_from_toml({"auth": {"api_tokens": ["abc", "def"]}})
        assert config.auth.api_tokens == ["abc", "def"]

    def test_logging_level_uppercased(self):
        config = config_from_toml({"logging": {"level": "debug"}})
        assert config.logging.level == "DEBUG"


class TestEnvOverrides:
    def test_env_wins_over_file_values(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MUSIC_FOLDER", str(tmp_path))
        monkeypatch.setenv("PORT", "9999")
        monkeypatch.setenv("CORS_ORIGINS", "http://a.example, http://b.example")
        monkeypatch.setenv("API_TOKENS", "t1,t2")
        monkeypatch.setenv("LOG_LEVEL", "warning")
        monkeypatch.setenv("RESCAN_INTERVAL", "60")

        config = apply_env_overrides(config_from_toml({"server": {"port": 1234}}))

        assert config.music.library_path == str(tmp_path)
        assert config.server.port == 9999
        assert config.server.cors_origins == ["http://a.example", "http://b.example"]
        assert config.auth.api_tokens == ["t1", "t2"]
        assert config.logging.level == "WARNING"
        assert config.music.rescan_interval_seconds == 60

    def test_invalid_port_raises(self, monkeypatch):
        monkeypatch.setenv("PORT", "eighty")
        with pytest.raises(ConfigurationError):
            apply_env_overrides(Config())


class TestLoadConfig:
    def test_creates_default_file_when_missing(self, tmp_path):
        config_path = tmp_path / "conf" / "config.toml"
        config = load_config(config_path)

        assert config_path.exists()
        assert config.server.port == 8080

    def test_reads_existing_file(self, tmp_path):
        config_path = tmp_path / "config.toml"
        config_path.write_text('[music]\nlibrary_path = "/srv/music"\n')

        assert load_config(config_path).music.library_path == "/srv/music"

    def test_invalid_toml_raises(self, tmp_path):
        config_path = tmp_path / "config.toml"
        config_path.write_text("[music\nbroken")

        with pytest.raises(ConfigurationError):
            load_config(config_path)

    def test_config_path_lookup_order(self, monkeypatch, tmp_path):
        """Test explicit env var, then ./config.toml, then the XDG directory."""
        assert get_config_path() == tmp_path / "xdg" / "music-streamer" / "config.toml"

        (tmp_path / "config.toml").write_text("")
        assert get_config_path() == tmp_path / "config.toml"

        monkeypatch.setenv("MUSIC_STREAMER_CONFIG", str(tmp_path / "explicit.toml"))
        assert get_config_path() == tmp_path / "explicit.toml"


class TestValidate:
    def test_valid_library(self, tmp_path):
        config = Config()
        config.music.library_path = str(tmp_path)
        config.validate()

    def test_missing_library_root(self, tmp_path):
        config = Config()
        config.music.library_path = str(tmp_path / "nope")
        with pytest.raises(ConfigurationError, match="not found"):
            config.validate()

    def test_library_root_is_a_file(self, tmp_path):
        music_file = tmp_path / "music"
        music_file.write_text("")
        config = Config()
        config.music.library_path = str(music_file)
        with pytest.raises(ConfigurationError, match="not a directory"):
            config.validate()

    def test_negative_rescan_interval(self, tmp_path):
        config = Config()
        config.music.library_path = str(tmp_path)
        config.music.rescan_interval_seconds = -1
        with pytest.raises(ConfigurationError):
            config.validate()
