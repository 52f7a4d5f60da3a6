"""
Configuration management for the updater.

Config documents:
- updaterConfig.json: local file next to the app; where the server is and
  where the local tree lives
- remote config (name set by hostConfig): server-declared data folder,
  exclusions and retention rules
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from .core.constants import BACKUP_FOLDER
from .core.paths import normalize_folder
from .exceptions import ConfigError, ParseError


def _require_str(data: dict, key: str, error=ConfigError) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise error(f"'{key}' must be a string")
    return value


def _optional_str(data: dict, key: str, default: str) -> str:
    value = data.get(key, default)
    if not isinstance(value, str):
        raise ConfigError(f"'{key}' must be a string")
    return value


def _str_list(data: dict, key: str) -> Tuple[str, ...]:
    value = data.get(key, [])
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ParseError(f"'{key}' must be a list of strings")
    return tuple(value)


@dataclass(frozen=True)
class LocalConfig:
    """Where to fetch from and where to write to."""
    host: str
    host_folder: str
    host_config: str
    host_script: str
    local_folder: Path
    backup_folder: Path
    timeout: Optional[float] = None

    @property
    def base_url(self) -> str:
        """URL every remote path is relative to."""
        folder = normalize_folder(self.host_folder)
        base = self.host.rstrip("/")
        return f"{base}/{folder}/" if folder else f"{base}/"

    @classmethod
    def from_dict(cls, data: dict, base_dir: Path = Path(".")) -> "LocalConfig":
        if not isinstance(data, dict):
            raise ConfigError("Config must be a JSON object")

        timeout = data.get("timeout")
        if timeout is not None and (
            isinstance(timeout, bool)
            or not isinstance(timeout, (int, float))
            or timeout <= 0
        ):
            raise ConfigError("'timeout' must be a positive number")

        host_folder = _optional_str(data, "hostFolder", "")
        try:
            normalize_folder(host_folder)
        except ValueError as e:
            raise ConfigError(f"Invalid hostFolder '{host_folder}': {e}")

        return cls(
            host=_require_str(data, "host"),
            host_folder=host_folder,
            host_config=_require_str(data, "hostConfig"),
            host_script=_require_str(data, "hostScript"),
            local_folder=base_dir / _optional_str(data, "localFolder", "."),
            backup_folder=base_dir / _optional_str(data, "backupFolder", BACKUP_FOLDER),
            timeout=timeout,
        )

    @classmethod
    def load(cls, path: Path) -> "LocalConfig":
        """
        Load the local configuration file.

        Relative folders in the file resolve against the file's directory.

        Raises:
            ConfigError: if the file is missing, unreadable or invalid
        """
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            raise ConfigError(f"Config file not found: {path}")
        except (json.JSONDecodeError, IOError) as e:
            raise ConfigError(f"Could not load {path.name}: {e}")

        return cls.from_dict(data, base_dir=path.parent)


@dataclass(frozen=True)
class RemoteConfig:
    """The server's configuration document."""
    data_folder: str
    excluded_files: Tuple[str, ...] = field(default_factory=tuple)
    excluded_folders: Tuple[str, ...] = field(default_factory=tuple)
    only_new_files: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: dict) -> "RemoteConfig":
        """
        Raises:
            ParseError: if the document does not have the expected shape
        """
        if not isinstance(data, dict):
            raise ParseError("Remote config must be a JSON object")
        return cls(
            data_folder=_require_str(data, "dataFolder", error=ParseError),
            excluded_files=_str_list(data, "excludedFiles"),
            excluded_folders=_str_list(data, "excludedFolders"),
            only_new_files=_str_list(data, "onlyNewFiles"),
        )
