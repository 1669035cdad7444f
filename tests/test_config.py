"""Tests for configuration loading."""

import os

import pytest

from config import Config, ConfigError


def test_defaults():
    config = Config()
    assert config.DEFAULT_TOPIC == "Avengers"
    assert config.DEFAULT_LIMIT == 20
    assert config.SEARCH_INITIAL_LIMIT == 15
    assert config.SEARCH_LOAD_MORE_COUNT == 10
    assert config.DEBOUNCE_SECONDS == 0.5


def test_from_env_reads_process_environment(monkeypatch):
    monkeypatch.setenv("OMDB_API_KEY", "abc123")
    monkeypatch.setenv("OMDB_API_URL", "https://omdb.example/")
    monkeypatch.setenv("FIND_MOVIES_LOG_LEVEL", "debug")

    config = Config.from_env(env_file=None)

    assert config.require_api_key() == "abc123"
    assert config.API_BASE_URL == "https://omdb.example/"
    assert config.LOG_LEVEL == "DEBUG"


def test_from_env_loads_dotenv_file(monkeypatch, tmp_path):
    monkeypatch.delenv("OMDB_API_KEY", raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text("OMDB_API_KEY=from-file\n")

    try:
        config = Config.from_env(env_file=str(env_file))
        assert config.OMDB_API_KEY == "from-file"
    finally:
        os.environ.pop("OMDB_API_KEY", None)


@pytest.mark.parametrize("key", [None, "", "   "])
def test_missing_key_fails_fast(key):
    with pytest.raises(ConfigError, match="OMDB_API_KEY"):
        Config(OMDB_API_KEY=key).require_api_key()
