"""
Repository configuration.

An INI file inside the metadata directory, read with configparser.
"""

import configparser
import io
import logging
import os
from pathlib import Path
from typing import Optional

from .errors import ConfigError
from .storage.files import read_bytes, write_atomic

logger = logging.getLogger(__name__)

FORMAT_VERSION = 0
DEFAULT_BRANCH = "master"
DEFAULT_LOG_LEVEL = "WARNING"
LOG_LEVEL_ENV = "GITLET_LOG_LEVEL"


def default_config() -> configparser.ConfigParser:
    config = configparser.ConfigParser()

    config.add_section("core")
    config.set("core", "formatversion", str(FORMAT_VERSION))
    config.set("core", "defaultbranch", DEFAULT_BRANCH)

    config.add_section("log")
    config.set("log", "level", DEFAULT_LOG_LEVEL)

    return config


class RepositoryConfig:
    """Typed view over the repository INI file."""

    def __init__(self, parser: configparser.ConfigParser):
        self.parser = parser

    @classmethod
    def defaults(cls) -> 'RepositoryConfig':
        return cls(default_config())

    @classmethod
    def load(cls, path: Path) -> 'RepositoryConfig':
        """
        Read configuration from path.

        Raises ConfigError if the file is missing, unparseable, or
        declares an unsupported format version.
        """
        if not path.is_file():
            raise ConfigError(f"configuration file missing: {path}")

        parser = default_config()
        try:
            parser.read_string(read_bytes(path).decode('utf-8'), source=str(path))
        except (configparser.Error, UnicodeDecodeError) as e:
            raise ConfigError(f"cannot parse {path}: {e}")

        config = cls(parser)
        if config.format_version != FORMAT_VERSION:
            raise ConfigError(f"unsupported formatversion {config.format_version}")
        return config

    def save(self, path: Path) -> None:
        buffer = io.StringIO()
        self.parser.write(buffer)
        write_atomic(path, buffer.getvalue().encode('utf-8'))

    @property
    def format_version(self) -> int:
        try:
            return self.parser.getint("core", "formatversion")
        except ValueError as e:
            raise ConfigError(f"formatversion is not an integer: {e}")

    @property
    def default_branch(self) -> str:
        return self.parser.get("core", "defaultbranch", fallback=DEFAULT_BRANCH)

    @property
    def log_level(self) -> str:
        return self.parser.get("log", "level", fallback=DEFAULT_LOG_LEVEL)


def resolve_log_level(config: Optional[RepositoryConfig] = None) -> int:
    """
    Pick the logging level: environment first, then configuration.

    Unknown level names fall back to WARNING.
    """
    name = os.environ.get(LOG_LEVEL_ENV)
    if not name and config is not None:
        name = config.log_level
    level = logging.getLevelName((name or DEFAULT_LOG_LEVEL).upper())
    if not isinstance(level, int):
        logger.warning("Unknown log level %r, using %s", name, DEFAULT_LOG_LEVEL)
        return logging.WARNING
    return level
