"""
Test repository configuration and log level resolution.
"""

import logging

import pytest

from gitlet import ConfigError, Repository
from gitlet.config import (
    DEFAULT_BRANCH,
    FORMAT_VERSION,
    LOG_LEVEL_ENV,
    RepositoryConfig,
    resolve_log_level,
)


class TestRepositoryConfig:

    def test_defaults(self):
        config = RepositoryConfig.defaults()

        assert config.format_version == FORMAT_VERSION
        assert config.default_branch == DEFAULT_BRANCH
        assert config.log_level == "WARNING"

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "config"
        config = RepositoryConfig.defaults()
        config.parser.set("log", "level", "DEBUG")
        config.save(path)

        loaded = RepositoryConfig.load(path)

        assert loaded.log_level == "DEBUG"
        assert loaded.default_branch == DEFAULT_BRANCH

    def test_init_writes_config(self, tmp_path):
        Repository.init(tmp_path)

        text = (tmp_path / ".gitlet" / "config").read_text()
        assert "[core]" in text
        assert "formatversion = 0" in text

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            RepositoryConfig.load(tmp_path / "config")

    def test_unparseable_file(self, tmp_path):
        path = tmp_path / "config"
        path.write_text("this is not ini\n")

        with pytest.raises(ConfigError):
            RepositoryConfig.load(path)

    @pytest.mark.parametrize("version", ["1", "seven"])
    def test_unsupported_version(self, tmp_path, version):
        path = tmp_path / "config"
        path.write_text(f"[core]\nformatversion = {version}\n")

        with pytest.raises(ConfigError):
            RepositoryConfig.load(path)

    def test_partial_file_uses_defaults(self, tmp_path):
        path = tmp_path / "config"
        path.write_text("[core]\nformatversion = 0\n")

        config = RepositoryConfig.load(path)

        assert config.default_branch == DEFAULT_BRANCH
        assert config.log_level == "WARNING"

    def test_default_branch_is_honored(self, tmp_path):
        Repository.init(tmp_path)
        config_path = tmp_path / ".gitlet" / "config"
        config = RepositoryConfig.load(config_path)
        assert Repository.open(tmp_path).state.head == config.default_branch

    def test_open_with_broken_config(self, tmp_path):
        Repository.init(tmp_path)
        (tmp_path / ".gitlet" / "config").write_text("[core]\nformatversion = 9\n")

        with pytest.raises(ConfigError):
            Repository.open(tmp_path)


class TestLogLevel:

    def test_default(self, monkeypatch):
        monkeypatch.delenv(LOG_LEVEL_ENV, raising=False)
        assert resolve_log_level() == logging.WARNING

    def test_from_config(self, monkeypatch):
        monkeypatch.delenv(LOG_LEVEL_ENV, raising=False)
        config = RepositoryConfig.defaults()
        config.parser.set("log", "level", "info")

        assert resolve_log_level(config) == logging.INFO

    def test_environment_wins(self, monkeypatch):
        monkeypatch.setenv(LOG_LEVEL_ENV, "DEBUG")
        config = RepositoryConfig.defaults()
        config.parser.set("log", "level", "ERROR")

        assert resolve_log_level(config) == logging.DEBUG

    def test_unknown_level(self, monkeypatch):
        monkeypatch.setenv(LOG_LEVEL_ENV, "LOUD")
        assert resolve_log_level() == logging.WARNING
