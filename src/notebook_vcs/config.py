"""
Configuration for the notebook store.

Settings come from a JSON file; every setting has a default, and a missing
file means "all defaults". Malformed files raise ConfigError.
"""

import json
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Optional, Union

from platformdirs import user_config_dir, user_data_dir

from .cache import DEFAULT_CACHE_SIZE
from .errors import ConfigError
from .storage.filesystem import FileSystemGateway
from .storage.gateway import PersistenceGateway
from .storage.memory import MemoryGateway
from .storage.sqlite import SqliteGateway

APP_NAME = "notebook-vcs"
CONFIG_FILENAME = "config.json"
SQLITE_FILENAME = "notebooks.sqlite3"
BACKENDS = ("filesystem", "sqlite", "memory")


def default_store_path() -> Path:
    return Path(user_data_dir(APP_NAME, appauthor=False))


def default_config_path() -> Path:
    return Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME


@dataclass(frozen=True)
class VcsConfig:
    store_path: Optional[Path] = None
    backend: str = "filesystem"
    verify_reads: bool = True
    default_branch: str = "master"
    root_category_name: str = "root"
    cache_size: int = DEFAULT_CACHE_SIZE

    def __post_init__(self):
        if self.store_path is None:
            object.__setattr__(self, "store_path", default_store_path())
        else:
            object.__setattr__(self, "store_path", Path(self.store_path))
        if self.backend not in BACKENDS:
            raise ValueError(f"Unknown backend: {self.backend}")
        if (
            not isinstance(self.cache_size, int)
            or isinstance(self.cache_size, bool)
            or self.cache_size < 0
        ):
            raise ValueError(f"cache_size must be a non-negative integer: {self.cache_size!r}")

    def with_overrides(self, **overrides) -> "VcsConfig":
        return replace(self, **overrides)


def load_config(path: Optional[Union[str, Path]] = None) -> VcsConfig:
    """Load a VcsConfig from a JSON file, using defaults for missing keys.

    Raises ConfigError when the file is unreadable, is not a JSON object,
    or contains unknown keys or values of the wrong type.
    """
    config_path = Path(path) if path is not None else default_config_path()
    if not config_path.exists():
        return VcsConfig()

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ConfigError(str(config_path), str(e))

    if not isinstance(data, dict):
        raise ConfigError(str(config_path), "top-level value must be an object")

    known = {f.name for f in fields(VcsConfig)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(str(config_path), f"unknown keys: {', '.join(sorted(unknown))}")

    if "verify_reads" in data and not isinstance(data["verify_reads"], bool):
        raise ConfigError(str(config_path), "verify_reads must be a boolean")

    try:
        return VcsConfig(**data)
    except (TypeError, ValueError) as e:
        raise ConfigError(str(config_path), str(e))


def open_gateway(config: VcsConfig) -> PersistenceGateway:
    """Build the persistence gateway selected by the configuration."""
    if config.backend == "memory":
        return MemoryGateway()
    if config.backend == "sqlite":
        return SqliteGateway(config.store_path / SQLITE_FILENAME)
    return FileSystemGateway(config.store_path)
