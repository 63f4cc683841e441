"""
Configuration file parsing and management.

Reads YAML configuration files and merges them from multiple sources
(custom path → project → user → system → defaults), then applies
BBREW_* environment overrides.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Any, Mapping

import yaml

from .common import vlog


# Configuration file locations (in priority order)
CONFIG_LOCATIONS = [
    ".bbrew.yml",                                   # Project root (highest priority)
    ".bbrew.yaml",
    os.path.expanduser("~/.config/bbrew/config.yml"),  # User global
    os.path.expanduser("~/.config/bbrew/config.yaml"),
    "/etc/bbrew/config.yml",                        # System global
    "/etc/bbrew/config.yaml",
]

DEFAULT_MAX_CONCURRENT = 4
DEFAULT_BATCH_SIZE = 10
DEFAULT_BREW_BINARY = "brew"


@dataclass(frozen=True)
class Preferences:
    """
    Execution preferences.

    Attributes:
        max_concurrent: Maximum number of brew invocations in flight at once
        batch_size: Maximum number of packages per install/reinstall batch
        timeout_seconds: Per-invocation timeout (None waits indefinitely)
        brew_binary: Name or path of the Homebrew executable
    """
    max_concurrent: int = DEFAULT_MAX_CONCURRENT
    batch_size: int = DEFAULT_BATCH_SIZE
    timeout_seconds: float | None = None
    brew_binary: str = DEFAULT_BREW_BINARY

    def __post_init__(self):
        """Validate preferences after initialization."""
        if self.max_concurrent < 1 or self.max_concurrent > 64:
            raise ValueError(
                f"Invalid max_concurrent: {self.max_concurrent}. "
                "Must be between 1 and 64"
            )

        if self.batch_size < 1 or self.batch_size > 100:
            raise ValueError(
                f"Invalid batch_size: {self.batch_size}. "
                "Must be between 1 and 100"
            )

        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ValueError(
                f"Invalid timeout_seconds: {self.timeout_seconds}. "
                "Must be positive or unset"
            )

        if not self.brew_binary:
            raise ValueError("brew_binary must not be empty")

    @staticmethod
    def from_dict(data: dict[str, Any]) -> Preferences:
        """Create Preferences from dictionary."""
        return Preferences(
            max_concurrent=int(data.get("max_concurrent", DEFAULT_MAX_CONCURRENT)),
            batch_size=int(data.get("batch_size", DEFAULT_BATCH_SIZE)),
            timeout_seconds=data.get("timeout_seconds"),
            brew_binary=data.get("brew_binary", DEFAULT_BREW_BINARY),
        )


@dataclass(frozen=True)
class Config:
    """
    Complete configuration for better-brew.

    Attributes:
        version: Config schema version
        preferences: Execution preferences
        source: Path to the configuration file that was loaded
    """
    version: int = 1
    preferences: Preferences = field(default_factory=Preferences)
    source: str = ""

    def __post_init__(self):
        if self.version != 1:
            raise ValueError(f"Unsupported config version: {self.version}. Expected version 1")

    @staticmethod
    def from_dict(data: dict[str, Any], source: str = "") -> Config:
        """Create Config from dictionary."""
        return Config(
            version=data.get("version", 1),
            preferences=Preferences.from_dict(data.get("preferences", {}) or {}),
            source=source,
        )

    def merge_with(self, other: Config) -> Config:
        """
        Merge this config with another, preferring values from this config.

        A value equal to its default is treated as unset.

        Args:
            other: Other config to merge (lower priority)

        Returns:
            New merged Config object
        """
        mine, theirs = self.preferences, other.preferences
        merged_preferences = Preferences(
            max_concurrent=mine.max_concurrent if mine.max_concurrent != DEFAULT_MAX_CONCURRENT else theirs.max_concurrent,
            batch_size=mine.batch_size if mine.batch_size != DEFAULT_BATCH_SIZE else theirs.batch_size,
            timeout_seconds=mine.timeout_seconds if mine.timeout_seconds is not None else theirs.timeout_seconds,
            brew_binary=mine.brew_binary if mine.brew_binary != DEFAULT_BREW_BINARY else theirs.brew_binary,
        )
        return Config(
            version=self.version,
            preferences=merged_preferences,
            source=self.source or other.source,
        )

    def with_overrides(self, **overrides: Any) -> Config:
        """Return a copy with the given preference fields replaced (None values ignored)."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        if not changes:
            return self
        return replace(self, preferences=replace(self.preferences, **changes))


def _load_yaml(file_path: str) -> dict[str, Any] | None:
    """
    Load YAML configuration file.

    Returns:
        Parsed configuration dictionary, or None if the file is unreadable or invalid
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return None


def load_config_file(file_path: str, verbose: bool = False) -> Config | None:
    """
    Load configuration from a single file.

    Args:
        file_path: Path to configuration file
        verbose: Enable verbose logging

    Returns:
        Config object, or None if file cannot be loaded
    """
    if not os.path.exists(file_path):
        return None

    vlog(f"Loading config from: {file_path}", verbose)

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


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Read BBREW_* preference overrides from the environment."""
    overrides: dict[str, Any] = {}
    if environ.get("BBREW_MAX_CONCURRENT"):
        overrides["max_concurrent"] = int(environ["BBREW_MAX_CONCURRENT"])
    if environ.get("BBREW_BATCH_SIZE"):
        overrides["batch_size"] = int(environ["BBREW_BATCH_SIZE"])
    if environ.get("BBREW_TIMEOUT"):
        overrides["timeout_seconds"] = float(environ["BBREW_TIMEOUT"])
    if environ.get("BBREW_BINARY"):
        overrides["brew_binary"] = environ["BBREW_BINARY"]
    return overrides


def load_config(
    custom_path: str | None = None,
    verbose: bool = False,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """
    Load and merge configuration from all sources.

    Configuration precedence (highest to lowest):
    1. BBREW_* environment variables
    2. Custom path (if provided)
    3. Project .bbrew.yml
    4. User ~/.config/bbrew/config.yml
    5. System /etc/bbrew/config.yml
    6. Default configuration

    Args:
        custom_path: Optional path to custom configuration file
        verbose: Enable verbose logging
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Merged Config object (never None, returns defaults if no config found)

    Raises:
        ValueError: If custom_path cannot be loaded or an override is invalid
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
            vlog(f"Found config at: {location}", verbose)

    if configs:
        merged = configs[0]
        for config in configs[1:]:
            merged = merged.merge_with(config)
        vlog(f"Merged {len(configs)} config files", verbose)
    else:
        vlog("No config files found, using defaults", verbose)
        merged = Config()

    overrides = _env_overrides(os.environ if environ is None else environ)
    if overrides:
        vlog(f"Applying environment overrides: {sorted(overrides)}", verbose)
    return merged.with_overrides(**overrides)


def validate_config(config: Config) -> list[str]:
    """
    Validate configuration and return list of warnings.

    Returns:
        List of validation warning messages (empty if valid)
    """
    warnings = []
    prefs = config.preferences

    if prefs.max_concurrent > 8:
        warnings.append(
            f"max_concurrent={prefs.max_concurrent} may cause Homebrew lock contention"
        )

    if prefs.timeout_seconds is not None and prefs.timeout_seconds < 30:
        warnings.append(
            f"timeout_seconds={prefs.timeout_seconds} is shorter than most bottle downloads"
        )

    return warnings
