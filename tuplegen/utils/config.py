"""
Configuration System for tuplegen.

This module provides a unified configuration interface: dataclass sections
populated from an optional JSON or YAML file, with a few environment
variable overrides for the settings most often changed from a build
script.
"""

import hashlib
import json
import os
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Dict, Any, Optional

import yaml

from .constants import (
    CONFIG_ENV_VAR,
    DEFAULT_ATTRIBUTE_NAME,
    DEFAULT_CACHE_SIZE_MB,
    DEFAULT_DIRECTIVE_MACRO,
    DEFAULT_ELEMENT_PREFIX,
    DEFAULT_INDENT_SIZE,
    DEFAULT_LOG_FILE,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_DEGREE_LIMIT,
)
from .exceptions import ConfigurationFileError
from .logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ExpansionConfig:
    """Names of the annotation surface and expansion limits."""

    attribute_name: str = DEFAULT_ATTRIBUTE_NAME
    directive_macro: str = DEFAULT_DIRECTIVE_MACRO
    element_prefix: str = DEFAULT_ELEMENT_PREFIX
    max_degree_limit: int = DEFAULT_MAX_DEGREE_LIMIT
    emit_allow_unused: bool = True


@dataclass(frozen=True)
class FormatConfig:
    """Formatting of generated code."""

    indent_size: int = DEFAULT_INDENT_SIZE

    @property
    def indent(self) -> str:
        return " " * self.indent_size


@dataclass
class CacheConfig:
    """Cache configuration."""

    enabled: bool = False
    max_size_mb: int = DEFAULT_CACHE_SIZE_MB
    cache_dir: Optional[str] = None


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = DEFAULT_LOG_LEVEL
    enable_file_logging: bool = False
    log_file: str = DEFAULT_LOG_FILE


class TupleGenConfig:
    """
    Unified configuration manager for tuplegen.

    The expansion and format sections are immutable and are the only parts
    that influence generated code; they are hashed into
    :meth:`fingerprint` so cached expansions never outlive a configuration
    change.
    """

    def __init__(self, config_file: Optional[str] = None, data: Optional[Dict[str, Any]] = None):
        """
        Initialize configuration.

        Args:
            config_file: Path to a JSON or YAML configuration file. If None,
                ``TUPLEGEN_CONFIG`` is consulted; without either only
                defaults are used.
            data: Configuration mapping used instead of a file
        """
        self.config_file = self._get_config_file_path(config_file)
        if data is not None:
            self._config_data = dict(data)
        else:
            self._config_data = self._load_config()

        self.expansion = self._create_expansion_config()
        self.format = self._create_format_config()
        self.cache = self._create_cache_config()
        self.logging = self._create_logging_config()

    def _get_config_file_path(self, config_file: Optional[str]) -> Optional[Path]:
        """Get the configuration file path."""
        if config_file:
            return Path(config_file)
        env_file = os.environ.get(CONFIG_ENV_VAR)
        if env_file:
            return Path(env_file)
        return None

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file (JSON or YAML)."""
        if self.config_file is None:
            return {}
        if not self.config_file.exists():
            raise ConfigurationFileError(f"Configuration file {self.config_file} not found")

        try:
            with open(self.config_file, "r") as f:
                if self.config_file.suffix.lower() in [".yaml", ".yml"]:
                    config_data = yaml.safe_load(f)
                else:
                    config_data = json.load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationFileError(
                f"Failed to load configuration from {self.config_file}: {e}"
            ) from e

        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            raise ConfigurationFileError(
                f"Configuration file {self.config_file} must contain a mapping"
            )
        logger.info(f"Loaded configuration from {self.config_file}")
        return config_data

    def _section(self, name: str) -> Dict[str, Any]:
        section = self._config_data.get(name, {})
        if not isinstance(section, dict):
            raise ConfigurationFileError(f"Configuration section '{name}' must be a mapping")
        return section

    def _create_expansion_config(self) -> ExpansionConfig:
        """Create expansion configuration from loaded data."""
        exp_data = self._section("expansion")

        return ExpansionConfig(
            attribute_name=exp_data.get("attribute_name", DEFAULT_ATTRIBUTE_NAME),
            directive_macro=exp_data.get("directive_macro", DEFAULT_DIRECTIVE_MACRO),
            element_prefix=exp_data.get("element_prefix", DEFAULT_ELEMENT_PREFIX),
            max_degree_limit=int(exp_data.get("max_degree_limit", DEFAULT_MAX_DEGREE_LIMIT)),
            emit_allow_unused=bool(exp_data.get("emit_allow_unused", True)),
        )

    def _create_format_config(self) -> FormatConfig:
        """Create format configuration from loaded data."""
        fmt_data = self._section("format")

        return FormatConfig(indent_size=int(fmt_data.get("indent_size", DEFAULT_INDENT_SIZE)))

    def _create_cache_config(self) -> CacheConfig:
        """Create cache configuration from loaded data."""
        cache_data = self._section("cache")

        # Check environment variable override
        env_disabled = os.getenv("TUPLEGEN_DISABLE_CACHE", "").lower() in ("1", "true", "yes")
        enabled = not env_disabled and cache_data.get("enabled", False)

        return CacheConfig(
            enabled=enabled,
            max_size_mb=cache_data.get("max_size_mb", DEFAULT_CACHE_SIZE_MB),
            cache_dir=cache_data.get("cache_dir"),
        )

    def _create_logging_config(self) -> LoggingConfig:
        """Create logging configuration from loaded data."""
        log_data = self._section("logging")

        return LoggingConfig(
            level=log_data.get("level", DEFAULT_LOG_LEVEL),
            enable_file_logging=log_data.get("enable_file_logging", False),
            log_file=log_data.get("log_file", DEFAULT_LOG_FILE),
        )

    def is_cache_enabled(self) -> bool:
        """Check if caching is enabled."""
        return self.cache.enabled

    def fingerprint(self) -> str:
        """Hash of every setting that shapes generated code."""
        payload = json.dumps(
            {"expansion": asdict(self.expansion), "format": asdict(self.format)},
            sort_keys=True,
        )
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]

    def to_dict(self) -> Dict[str, Any]:
        """Return the configuration as a plain mapping."""
        return {
            "version": "1.0",
            "expansion": asdict(self.expansion),
            "format": asdict(self.format),
            "cache": asdict(self.cache),
            "logging": asdict(self.logging),
        }

    def save_config(self, path: Optional[str] = None) -> Path:
        """
        Save current configuration as JSON.

        Args:
            path: Destination; defaults to the file the configuration was
                loaded from

        Returns:
            The written path
        """
        target = Path(path) if path else self.config_file
        if target is None:
            raise ConfigurationFileError("No configuration file path to save to")

        with open(target, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Configuration saved to {target}")
        return target


# Global configuration instance
_global_config: Optional[TupleGenConfig] = None


def get_config() -> TupleGenConfig:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = TupleGenConfig()
    return _global_config


def set_config(config: Optional[TupleGenConfig]) -> None:
    """Set (or with None, reset) the global configuration instance."""
    global _global_config
    _global_config = config


def load_config(config_file: str) -> TupleGenConfig:
    """Load configuration from a specific file."""
    return TupleGenConfig(config_file)
