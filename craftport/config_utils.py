# config_utils.py - YAML Configuration System for craftport
"""
craftport configuration utilities with YAML file support.

Configuration Resolution Order (highest to lowest priority):
1. CLI options (passed to get_config as overrides)
2. Environment variables (CRAFTPORT_SRC, CRAFTPORT_DIST, ...)
3. craftport.yaml in the working directory
4. ~/.craftport/config.yaml (global defaults)

Usage:
    from craftport.config_utils import get_config

    config = get_config()
    print(config.src_path)
    print(config.cache_posters_path)
"""

import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Tuple

import yaml

from craftport.errors import ConfigurationError, invalid_config_error


CONFIG_FILE_NAME = "craftport.yaml"

TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class CraftportConfig:
    """Complete craftport configuration"""
    # Folders (relative values are resolved against work_dir)
    src_path: Path = Path("craft")
    dist_path: Path = Path("content")
    cache_path: Path = Path(".cache")
    posters_path: Optional[Path] = None

    # Concurrency and timeouts
    workers: int = 4
    http_timeout: Tuple[float, float] = (10.0, 60.0)
    transcode_timeout: float = 600.0

    debug: bool = False

    work_dir: Optional[Path] = None

    # Extra settings from config file
    extra: Dict[str, Any] = field(default_factory=dict)

    # Track where values came from (for debugging)
    _sources: Dict[str, str] = field(default_factory=dict)

    @property
    def cache_posters_path(self) -> Path:
        return self.posters_path or self.cache_path / "posters"


class ConfigLoader:
    """Load configuration from multiple sources"""

    PATH_KEYS = {
        "src": "src_path",
        "dist": "dist_path",
        "cache": "cache_path",
        "posters": "posters_path",
    }

    def __init__(self, work_dir: Optional[Path] = None):
        self.work_dir = Path(work_dir) if work_dir else Path.cwd()
        self.config = CraftportConfig(work_dir=self.work_dir)

    def load(self, overrides: Optional[Dict[str, Any]] = None) -> CraftportConfig:
        """Load configuration from all sources in priority order"""
        # Load in reverse priority (lowest first, higher overwrites)
        self._load_global_config()
        self._load_yaml_config()
        self._load_env_vars()
        if overrides:
            self._apply_overrides(overrides)

        self._validate()
        self._resolve_paths()
        return self.config

    def _load_global_config(self):
        """Load ~/.craftport/config.yaml if it exists"""
        global_config = Path.home() / ".craftport" / "config.yaml"
        if global_config.exists():
            self._load_yaml_file(global_config, "global")

    def _load_yaml_config(self):
        """Load craftport.yaml from the working directory"""
        yaml_path = self.work_dir / CONFIG_FILE_NAME
        if yaml_path.exists():
            self._load_yaml_file(yaml_path, CONFIG_FILE_NAME)

    def _load_yaml_file(self, path: Path, source_name: str):
        """Load settings from a YAML file"""
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise invalid_config_error(path, cause=e) from e
        if not isinstance(data, dict):
            raise invalid_config_error(path)

        for yaml_key, attr in self.PATH_KEYS.items():
            if data.get(yaml_key):
                setattr(self.config, attr, Path(str(data[yaml_key])).expanduser())
                self.config._sources[attr] = source_name

        if "workers" in data:
            self.config.workers = _to_int(data["workers"], "workers", source_name)
            self.config._sources["workers"] = source_name

        if "debug" in data:
            self.config.debug = bool(data["debug"])
            self.config._sources["debug"] = source_name

        # Handle nested timeout settings
        if "timeouts" in data and isinstance(data["timeouts"], dict):
            timeouts = data["timeouts"]
            connect, read = self.config.http_timeout
            if "connect" in timeouts:
                connect = _to_float(timeouts["connect"], "timeouts.connect", source_name)
            if "read" in timeouts:
                read = _to_float(timeouts["read"], "timeouts.read", source_name)
            if (connect, read) != self.config.http_timeout:
                self.config.http_timeout = (connect, read)
                self.config._sources["http_timeout"] = source_name
            if "transcode" in timeouts:
                self.config.transcode_timeout = _to_float(
                    timeouts["transcode"], "timeouts.transcode", source_name
                )
                self.config._sources["transcode_timeout"] = source_name

        # Store any extra settings
        known_keys = set(self.PATH_KEYS) | {"workers", "debug", "timeouts"}
        for key, value in data.items():
            if key not in known_keys:
                self.config.extra[key] = value

    def _load_env_vars(self):
        """Load from environment variables"""
        env_paths = {
            "CRAFTPORT_SRC": "src_path",
            "CRAFTPORT_DIST": "dist_path",
            "CRAFTPORT_CACHE": "cache_path",
        }
        for env_name, attr in env_paths.items():
            if os.environ.get(env_name):
                setattr(self.config, attr, Path(os.environ[env_name]).expanduser())
                self.config._sources[attr] = f"env:{env_name}"

        if os.environ.get("CRAFTPORT_WORKERS"):
            self.config.workers = _to_int(
                os.environ["CRAFTPORT_WORKERS"], "workers", "env:CRAFTPORT_WORKERS"
            )
            self.config._sources["workers"] = "env:CRAFTPORT_WORKERS"

        debug = os.environ.get("CRAFTPORT_DEBUG")
        if debug is not None:
            self.config.debug = debug.lower() in TRUE_VALUES
            self.config._sources["debug"] = "env:CRAFTPORT_DEBUG"

    def _apply_overrides(self, overrides: Dict[str, Any]):
        """CLI options; None means 'not given'"""
        for key, value in overrides.items():
            if value is None:
                continue
            attr = self.PATH_KEYS.get(key, key)
            if not hasattr(self.config, attr):
                raise ConfigurationError(
                    message=f"Unknown configuration option: {key}",
                    context={"option": key},
                )
            if attr.endswith("_path"):
                value = Path(value).expanduser()
            setattr(self.config, attr, value)
            self.config._sources[attr] = "cli"

    def _validate(self):
        if self.config.workers < 1:
            raise ConfigurationError(
                message="workers must be at least 1",
                suggestion="Use workers: 1 to download assets one at a time",
                context={
                    "workers": self.config.workers,
                    "source": self.config._sources.get("workers", "default"),
                },
            )

    def _resolve_paths(self):
        """Make folder paths absolute relative to the working directory"""
        for attr in ("src_path", "dist_path", "cache_path", "posters_path"):
            value = getattr(self.config, attr)
            if value is not None and not value.is_absolute():
                setattr(self.config, attr, self.work_dir / value)


def _to_int(value: Any, key: str, source: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            message=f"Invalid integer for {key}: {value!r}",
            context={"source": source},
            cause=e,
        ) from e


def _to_float(value: Any, key: str, source: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            message=f"Invalid number for {key}: {value!r}",
            context={"source": source},
            cause=e,
        ) from e


# ============================================================================
# Public API
# ============================================================================

def get_config(
    work_dir: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> CraftportConfig:
    """
    Get complete craftport configuration.

    Args:
        work_dir: Project directory (defaults to cwd)
        overrides: CLI values keyed by option name (src, dist, cache, workers, debug)

    Returns:
        CraftportConfig with all settings resolved
    """
    loader = ConfigLoader(work_dir)
    return loader.load(overrides)


def create_config_template(include_comments: bool = True) -> str:
    """
    Generate a craftport.yaml template.

    Args:
        include_comments: Whether to include explanatory comments

    Returns:
        YAML string ready to write to file
    """
    if include_comments:
        return '''# craftport configuration file
# Relative folders are resolved against the folder holding this file

# Markdown files exported from Craft
src: craft

# Hugo content folder (one <slug>/index.md per document)
dist: content

# Download and conversion cache, safe to keep between runs
cache: .cache

# Parallel asset downloads per document (1 = sequential)
workers: 4

timeouts:
  connect: 10          # Seconds to open an HTTP connection
  read: 60             # Seconds between received bytes
  transcode: 600       # Seconds for one ffmpeg run
'''
    else:
        return '''src: craft
dist: content
cache: .cache
workers: 4
timeouts:
  connect: 10
  read: 60
  transcode: 600
'''
