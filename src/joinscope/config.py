"""
Analyzer configuration loaded from YAML.

Example ``.joinscope.yml``::

    defaults:
      adapter: mysql
      join_depth: 3
      join_strategy: optimized
      detect_cycles: true
      include_junction_edges: false
    adapters:
      mysql:
        version: "8.0"
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from joinscope.models import LoadStrategy

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATHS = [
    Path(".joinscope.yml"),
    Path(".joinscope.yaml"),
    Path("config/joinscope.yml"),
]

CONFIG_TEMPLATE = """\
# joinscope configuration
defaults:
  adapter: postgres          # postgres | mysql | sqlite
  join_depth: 3              # cycle search depth
  join_strategy: optimized   # eager | lazy | optimized
  detect_cycles: true
  include_junction_edges: false

# Adapter versions decide version-gated join support
adapters:
  postgres:
    version: "14.0"
  mysql:
    version: "8.0"
  sqlite:
    version: "3.45"
"""


class ConfigError(ValueError):
    """Invalid configuration value or file."""


@dataclass(frozen=True)
class AnalyzerConfig:
    """Options for one analysis run."""
    adapter: str = "postgres"
    adapter_version: Optional[str] = None
    join_depth: int = 3
    join_strategy: LoadStrategy = LoadStrategy.OPTIMIZED
    detect_cycles: bool = True
    include_junction_edges: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.join_depth, int) or isinstance(self.join_depth, bool) or self.join_depth < 1:
            raise ConfigError(f"join_depth must be a positive integer, got {self.join_depth!r}")
        try:
            object.__setattr__(self, "join_strategy", LoadStrategy(self.join_strategy))
        except ValueError:
            allowed = ", ".join(s.value for s in LoadStrategy)
            raise ConfigError(f"join_strategy must be one of {allowed}, got {self.join_strategy!r}") from None
        if not self.adapter:
            raise ConfigError("adapter must not be empty")
        object.__setattr__(self, "adapter", str(self.adapter).lower())
        if self.adapter_version is not None:
            object.__setattr__(self, "adapter_version", str(self.adapter_version))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "adapter": self.adapter,
            "adapter_version": self.adapter_version,
            "join_depth": self.join_depth,
            "join_strategy": self.join_strategy.value,
            "detect_cycles": self.detect_cycles,
            "include_junction_edges": self.include_junction_edges,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> AnalyzerConfig:
        """
        Create from a parsed configuration file.

        Accepts either the full file shape (``defaults`` + ``adapters``) or a
        flat mapping of option names.
        """
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration must be a mapping, got {type(data).__name__}")

        defaults = data.get("defaults", data)
        if not isinstance(defaults, dict):
            raise ConfigError("'defaults' must be a mapping")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(defaults) - known)
        if unknown and "defaults" in data:
            logger.warning(f"Ignoring unknown configuration keys: {', '.join(unknown)}")
        options = {k: v for k, v in defaults.items() if k in known}

        adapters = data.get("adapters") or {}
        if not isinstance(adapters, dict):
            raise ConfigError("'adapters' must be a mapping")
        adapter = str(options.get("adapter", cls.adapter)).lower()
        adapter_settings = adapters.get(adapter) or {}
        if options.get("adapter_version") is None and adapter_settings.get("version") is not None:
            options["adapter_version"] = adapter_settings["version"]

        return cls(**options)


def find_config_file(path: Optional[Union[str, Path]] = None) -> Optional[Path]:
    """Return the explicit path, or the first default path that exists."""
    if path is not None:
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")
        return path

    for candidate in DEFAULT_CONFIG_PATHS:
        if candidate.exists():
            return candidate
    return None


def load_config(path: Optional[Union[str, Path]] = None) -> AnalyzerConfig:
    """
    Load analyzer configuration.

    Args:
        path: Explicit configuration file; default locations are searched when omitted

    Returns:
        AnalyzerConfig (defaults when no file is found)
    """
    config_path = find_config_file(path)
    if config_path is None:
        logger.debug("No configuration file found, using defaults")
        return AnalyzerConfig()

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    config = AnalyzerConfig.from_dict(data)
    logger.info(f"Loaded configuration from {config_path}")
    return config


def merge_with_cli(config: AnalyzerConfig, **overrides: Any) -> AnalyzerConfig:
    """Return a copy of ``config`` where non-None CLI values win."""
    values = {k: v for k, v in overrides.items() if v is not None}
    if not values:
        return config
    return replace(config, **values)


def write_template(path: Union[str, Path] = DEFAULT_CONFIG_PATHS[0], overwrite: bool = False) -> Path:
    """Write the default configuration template."""
    path = Path(path)
    if path.exists() and not overwrite:
        raise ConfigError(f"{path} already exists (use overwrite to replace it)")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(CONFIG_TEMPLATE)
    return path
