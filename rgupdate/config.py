"""
Configuration file parsing and install-location resolution.

Supports YAML configuration files (and plain JSON files).
Merges configurations from multiple sources (project → user → system → defaults).
"""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .common import vlog
from .errors import PreconditionError


INSTALL_LOCATION_ENV = "RGUPDATE_INSTALL_LOCATION"

USER_CONFIG_PATH = os.path.expanduser("~/.config/rgupdate/config.yml")

# Configuration file locations (in priority order)
CONFIG_LOCATIONS = [
    ".rgupdate.yml",                               # Project root (highest priority)
    ".rgupdate.yaml",
    USER_CONFIG_PATH,                              # User global
    os.path.expanduser("~/.config/rgupdate/config.yaml"),
    "/etc/rgupdate/config.yml",                    # System global
    "/etc/rgupdate/config.yaml",
]


@dataclass(frozen=True)
class Preferences:
    """
    Tunables for network, subprocess and display behavior.

    Attributes:
        download_timeout_minutes: Timeout for a whole archive download
        probe_timeout_seconds: Timeout for running a product executable
        http_timeout_seconds: Timeout for catalog requests
        display_limit: Versions shown by `list` without --all
        default_keep: Versions kept by `purge` without --keep
        progress_interval_seconds: Interval between download progress reports
    """
    download_timeout_minutes: int = 10
    probe_timeout_seconds: int = 10
    http_timeout_seconds: int = 30
    display_limit: int = 10
    default_keep: int = 3
    progress_interval_seconds: int = 2

    def __post_init__(self):
        """Validate preferences after initialization."""
        if self.download_timeout_minutes < 1 or self.download_timeout_minutes > 120:
            raise ValueError(
                f"Invalid download_timeout_minutes: {self.download_timeout_minutes}. "
                "Must be between 1 and 120"
            )

        if self.probe_timeout_seconds < 1 or self.probe_timeout_seconds > 120:
            raise ValueError(
                f"Invalid probe_timeout_seconds: {self.probe_timeout_seconds}. "
                "Must be between 1 and 120"
            )

        if self.http_timeout_seconds < 1 or self.http_timeout_seconds > 300:
            raise ValueError(
                f"Invalid http_timeout_seconds: {self.http_timeout_seconds}. "
                "Must be between 1 and 300"
            )

        if self.display_limit < 1:
            raise ValueError(f"Invalid display_limit: {self.display_limit}. Must be at least 1")

        if self.default_keep < 1:
            raise ValueError(f"Invalid default_keep: {self.default_keep}. Must be at least 1")

        if self.progress_interval_seconds < 1:
            raise ValueError(
                f"Invalid progress_interval_seconds: {self.progress_interval_seconds}. "
                "Must be at least 1"
            )

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Preferences:
        """Create Preferences from dictionary."""
        return Preferences(
            download_timeout_minutes=data.get("download_timeout_minutes", 10),
            probe_timeout_seconds=data.get("probe_timeout_seconds", 10),
            http_timeout_seconds=data.get("http_timeout_seconds", 30),
            display_limit=data.get("display_limit", 10),
            default_keep=data.get("default_keep", 3),
            progress_interval_seconds=data.get("progress_interval_seconds", 2),
        )

    def to_dict(self) -> dict[str, int]:
        """Convert to dictionary for serialization."""
        return {
            "download_timeout_minutes": self.download_timeout_minutes,
            "probe_timeout_seconds": self.probe_timeout_seconds,
            "http_timeout_seconds": self.http_timeout_seconds,
            "display_limit": self.display_limit,
            "default_keep": self.default_keep,
            "progress_interval_seconds": self.progress_interval_seconds,
        }


@dataclass(frozen=True)
class Config:
    """
    Complete configuration for rgupdate.

    Attributes:
        version: Config schema version
        install_location: Configured install root (None means OS default)
        preferences: Global preferences
        source: Path to the configuration file that was loaded
    """
    version: int = 1
    install_location: str | None = None
    preferences: Preferences = field(default_factory=Preferences)
    source: str = ""

    def __post_init__(self):
        """Validate config after initialization."""
        if self.version != 1:
            raise ValueError(f"Unsupported config version: {self.version}. Expected version 1")

    @staticmethod
    def from_dict(data: dict[str, Any], source: str = "") -> Config:
        """Create Config from dictionary."""
        location = data.get("install_location")
        return Config(
            version=data.get("version", 1),
            install_location=str(location) if location else None,
            preferences=Preferences.from_dict(data.get("preferences", {}) or {}),
            source=source,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        data: dict[str, Any] = {"version": self.version}
        if self.install_location:
            data["install_location"] = self.install_location
        data["preferences"] = self.preferences.to_dict()
        return data

    def merge_with(self, other: Config) -> Config:
        """
        Merge this config with another, preferring values from this config.

        Args:
            other: Other config to merge (lower priority)

        Returns:
            New merged Config object
        """
        defaults = Preferences()
        mine = self.preferences
        theirs = other.preferences

        def pick(name: str) -> int:
            value = getattr(mine, name)
            return value if value != getattr(defaults, name) else getattr(theirs, name)

        merged_preferences = Preferences(
            download_timeout_minutes=pick("download_timeout_minutes"),
            probe_timeout_seconds=pick("probe_timeout_seconds"),
            http_timeout_seconds=pick("http_timeout_seconds"),
            display_limit=pick("display_limit"),
            default_keep=pick("default_keep"),
            progress_interval_seconds=pick("progress_interval_seconds"),
        )

        return Config(
            version=self.version,
            install_location=self.install_location or other.install_location,
            preferences=merged_preferences,
            source=self.source or other.source,
        )


@dataclass(frozen=True)
class InstallLocation:
    """
    Resolved install root.

    Attributes:
        path: Absolute install root
        source: Where it came from ('environment', 'config', or 'default')
    """
    path: str
    source: str

    def __str__(self) -> str:
        return f"{self.path} (from {self.source})"


def _load_yaml(file_path: str) -> dict[str, Any] | None:
    """
    Load YAML configuration file.

    Args:
        file_path: Path to YAML file

    Returns:
        Parsed configuration dictionary, or None if the file is invalid
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return None


def _load_json(file_path: str) -> dict[str, Any] | None:
    """
    Load JSON configuration file.

    Args:
        file_path: Path to JSON file

    Returns:
        Parsed configuration dictionary, or None if file invalid
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
            return data if isinstance(data, dict) else {}
    except (OSError, json.JSONDecodeError):
        return None


def load_config_file(file_path: str, verbose: bool = False) -> Config | None:
    """
    Load configuration from a single file.

    Files ending in .json are read as JSON, everything else as YAML.

    Args:
        file_path: Path to configuration file
        verbose: Enable verbose logging

    Returns:
        Config object, or None if file cannot be loaded
    """
    if not os.path.exists(file_path):
        return None

    vlog(f"Loading config from: {file_path}", verbose)

    if file_path.endswith(".json"):
        data = _load_json(file_path)
    else:
        data = _load_yaml(file_path)

    if data is None:
        vlog(f"Invalid config file: {file_path}", verbose)
        return None

    try:
        config = Config.from_dict(data, source=file_path)
        vlog(f"Loaded config successfully: {file_path}", verbose)
        return config
    except (ValueError, TypeError) as e:
        vlog(f"Config validation failed for {file_path}: {e}", verbose)
        return None


def load_config(
    custom_path: str | None = None,
    verbose: bool = False,
) -> Config:
    """
    Load and merge configuration from all sources.

    Configuration precedence (highest to lowest):
    1. Custom path (if provided)
    2. Project .rgupdate.yml
    3. User ~/.config/rgupdate/config.yml
    4. System /etc/rgupdate/config.yml
    5. Default configuration

    Args:
        custom_path: Optional path to custom configuration file
        verbose: Enable verbose logging

    Returns:
        Merged Config object (never None, returns defaults if no config found)

    Raises:
        ValueError: If custom_path is provided but file cannot be loaded
    """
    configs: list[Config] = []

    if custom_path:
        config = load_config_file(custom_path, verbose)
        if config is None:
            raise ValueError(f"Could not load config from specified path: {custom_path}")
        configs.append(config)

    for location in CONFIG_LOCATIONS:
        config = load_config_file(location, verbose)
        if config is not None:
            configs.append(config)

    if not configs:
        vlog("No config files found, using defaults", verbose)
        return Config()

    merged = configs[0]
    for config in configs[1:]:
        merged = merged.merge_with(config)

    vlog(f"Merged {len(configs)} config files", verbose)
    return merged


def default_install_location(os_name: str | None = None) -> str:
    """
    OS default install root.

    Args:
        os_name: Operating system name (defaults to platform.system())

    Returns:
        Absolute default install root
    """
    if os_name is None:
        import platform
        os_name = platform.system()

    if os_name == "Windows":
        program_files = os.environ.get("ProgramFiles", r"C:\Program Files")
        return os.path.join(program_files, "Red Gate")
    if os_name in ("Linux", "Darwin"):
        return "/opt/Red Gate"
    return os.path.join(os.path.expanduser("~"), ".redgate")


def resolve_install_location(
    config: Config | None = None,
    environ: dict[str, str] | None = None,
    os_name: str | None = None,
) -> InstallLocation:
    """
    Resolve the install root.

    Order: environment variable, config file, OS default.

    Args:
        config: Loaded configuration
        environ: Environment mapping (defaults to os.environ)
        os_name: Operating system name override

    Returns:
        InstallLocation with absolute path and its source
    """
    environ = os.environ if environ is None else environ

    value = (environ.get(INSTALL_LOCATION_ENV) or "").strip()
    if value:
        return InstallLocation(path=os.path.abspath(os.path.expanduser(value)), source="environment")

    if config is not None and config.install_location:
        return InstallLocation(
            path=os.path.abspath(os.path.expanduser(config.install_location)),
            source="config",
        )

    return InstallLocation(path=default_install_location(os_name), source="default")


def _has_data(directory: str) -> bool:
    try:
        with os.scandir(directory) as entries:
            return any(True for _ in entries)
    except OSError:
        return False


def _write_test(directory: str) -> None:
    try:
        fd, probe = tempfile.mkstemp(prefix=".rgupdate-write-test-", dir=directory)
        os.close(fd)
        os.unlink(probe)
    except OSError as e:
        raise PreconditionError(
            f"Install location is not writable: {directory} ({e})",
            remediation="Choose a directory you can write to, or run with elevated permissions",
        ) from e


def save_install_location(
    path: str,
    current: InstallLocation | None = None,
    config_path: str | None = None,
    force: bool = False,
    verbose: bool = False,
) -> str:
    """
    Persist a new install root in the user configuration file.

    Args:
        path: New install root (relative paths are resolved)
        current: Currently effective install location
        config_path: Config file to write (defaults to the user config)
        force: Switch even if the current location already holds versions
        verbose: Enable verbose logging

    Returns:
        Absolute path that was saved

    Raises:
        PreconditionError: If the path is empty, not writable, or the
            current location holds data and force is not set
    """
    if not path or not path.strip():
        raise PreconditionError("Install location must not be empty")

    new_path = os.path.abspath(os.path.expanduser(path.strip()))
    config_path = config_path or USER_CONFIG_PATH

    if (
        current is not None
        and os.path.normcase(current.path) != os.path.normcase(new_path)
        and _has_data(current.path)
        and not force
    ):
        raise PreconditionError(
            f"Current install location {current.path} already contains installed versions",
            remediation=f"rgupdate config set-location \"{path}\" --force",
        )

    try:
        os.makedirs(new_path, exist_ok=True)
    except OSError as e:
        raise PreconditionError(f"Cannot create install location {new_path}: {e}") from e
    _write_test(new_path)

    existing = _load_yaml(config_path) if os.path.exists(config_path) else None
    data = dict(existing or {})
    data.setdefault("version", 1)
    data["install_location"] = new_path

    Path(config_path).parent.mkdir(parents=True, exist_ok=True)
    tmp_path = f"{config_path}.tmp"
    with open(tmp_path, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
    os.replace(tmp_path, config_path)

    vlog(f"Saved install location {new_path} to {config_path}", verbose)
    return new_path
