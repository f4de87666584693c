"""Configuration loading and management for dephistory.

Configuration sources are merged in priority order:
    1. Defaults (defined in IngestConfig)
    2. Global config (~/.dephistory.toml)
    3. Project config (./dephistory.toml)
    4. Explicit config file
    5. Environment variables (DEPHISTORY_* prefix)
    6. CLI overrides (passed as kwargs)

Example:
    >>> config = load_config(workers=8)
    >>> config.workers
    8
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .exceptions import ConfigurationError, InvalidConfigError

Verbosity = Literal["quiet", "normal", "verbose"]
StoreBackend = Literal["sqlite", "memory"]


@dataclass(frozen=True)
class IngestConfig:
    """Configuration for the ingestion pipeline and its collaborators.

    Attributes:
        Pipeline:
            workers: Worker threads per pipeline stage (stage 3 is still
                serialized per repository)
            queue_capacity: Bound of each stage queue
            include_test: Include test/dev dependencies when parsing

        External tools:
            checkout_timeout_seconds: Timeout for each git invocation
            maven_timeout_seconds: Timeout for the mvn dependency listing
            clone_url_template: URL used to clone ``{full_name}``
            workspace_dir: Parent directory for checkouts (None = system temp)

        Storage:
            store_backend: ``sqlite`` or ``memory``
            store_path: SQLite database file
            search_size: Maximum hits returned by one store search

        History:
            track_history: Collect and merge commit graphs during ingestion
            history_depth: Depth bound of the layout subtree

        Parse cache:
            cache_enabled: Cache parsed manifests by content hash
            cache_dir: Directory for cache storage
            cache_ttl_hours: Cache time-to-live in hours

        Output control:
            verbosity: Logging verbosity level
    """

    # Pipeline
    workers: int = 4
    queue_capacity: int = 1000
    include_test: bool = True

    # External tools
    checkout_timeout_seconds: int = 600
    maven_timeout_seconds: int = 900
    clone_url_template: str = "https://github.com/{full_name}"
    workspace_dir: Optional[str] = None

    # Storage
    store_backend: StoreBackend = "sqlite"
    store_path: str = ".dephistory/store.db"
    search_size: int = 1000

    # History
    track_history: bool = True
    history_depth: int = 10

    # Parse cache
    cache_enabled: bool = True
    cache_dir: str = ".dephistory-cache"
    cache_ttl_hours: int = 168

    # Output control
    verbosity: Verbosity = "normal"

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.workers < 1:
            raise InvalidConfigError("workers", self.workers, "must be at least 1")
        if self.queue_capacity < 1:
            raise InvalidConfigError("queue_capacity", self.queue_capacity, "must be at least 1")
        if self.checkout_timeout_seconds < 1:
            raise InvalidConfigError(
                "checkout_timeout_seconds", self.checkout_timeout_seconds, "must be at least 1"
            )
        if self.maven_timeout_seconds < 1:
            raise InvalidConfigError(
                "maven_timeout_seconds", self.maven_timeout_seconds, "must be at least 1"
            )
        if "{full_name}" not in self.clone_url_template:
            raise InvalidConfigError(
                "clone_url_template", self.clone_url_template, "must contain {full_name}"
            )
        if self.store_backend not in ("sqlite", "memory"):
            raise InvalidConfigError("store_backend", self.store_backend, "must be sqlite or memory")
        if self.search_size < 1:
            raise InvalidConfigError("search_size", self.search_size, "must be at least 1")
        if self.history_depth < 1:
            raise InvalidConfigError("history_depth", self.history_depth, "must be at least 1")
        if self.cache_ttl_hours < 0:
            raise InvalidConfigError("cache_ttl_hours", self.cache_ttl_hours, "must be non-negative")
        if self.verbosity not in ("quiet", "normal", "verbose"):
            raise InvalidConfigError("verbosity", self.verbosity, "must be quiet, normal or verbose")

    @property
    def cache_ttl_seconds(self) -> int:
        """Get cache TTL in seconds."""
        return self.cache_ttl_hours * 3600


def load_config(config_file: Optional[Path] = None, **overrides) -> IngestConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags)

    Returns:
        Validated IngestConfig instance

    Raises:
        ConfigurationError: If a config file is invalid or missing
    """
    merged: dict = {}

    global_config = Path.home() / ".dephistory.toml"
    if global_config.exists():
        try:
            merged.update(_load_toml_file(global_config))
        except Exception as e:
            raise ConfigurationError(f"Invalid global config '{global_config}': {e}")

    project_config = Path.cwd() / "dephistory.toml"
    if project_config.exists():
        try:
            merged.update(_load_toml_file(project_config))
        except Exception as e:
            raise ConfigurationError(f"Invalid project config '{project_config}': {e}")

    if config_file is not None:
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_file}")
        try:
            merged.update(_load_toml_file(config_file))
        except Exception as e:
            raise ConfigurationError(f"Invalid config file '{config_file}': {e}")

    merged.update(_load_env_vars())

    if "verbose" in overrides:
        if overrides["verbose"]:
            overrides["verbosity"] = "verbose"
        del overrides["verbose"]
    if "quiet" in overrides:
        if overrides["quiet"]:
            overrides["verbosity"] = "quiet"
        del overrides["quiet"]

    merged.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return IngestConfig(**merged)
    except TypeError as e:
        # Unknown field in config
        raise ConfigurationError(f"Invalid configuration: {e}")


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from DEPHISTORY_* environment variables.

    Every IngestConfig field maps to ``DEPHISTORY_<FIELD_NAME>``, e.g.
    ``DEPHISTORY_WORKERS=8`` or ``DEPHISTORY_STORE_BACKEND=memory``.
    """
    type_hints = get_type_hints(IngestConfig)

    result: dict[str, Any] = {}

    for field_name in IngestConfig.__dataclass_fields__:
        env_key = f"DEPHISTORY_{field_name.upper()}"
        env_value = os.environ.get(env_key)

        if env_value is None:
            continue

        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        try:
            parsed = _parse_env_value(env_value, type_hint)
            if parsed is not None:
                result[field_name] = parsed
        except ValueError as e:
            raise ConfigurationError(f"Invalid {env_key}: {e}")

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse an environment variable string to the field's type.

    Raises:
        ValueError: If value can't be parsed to expected type
    """
    origin = getattr(type_hint, "__origin__", None)

    # Optional[X] is Union[X, None]
    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            type_hint = non_none_types[0]
            origin = getattr(type_hint, "__origin__", None)

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        elif lower in ("false", "0", "no", "off"):
            return False
        else:
            raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is float:
        return float(value)

    if type_hint is str or origin is Literal:
        return value

    return None


def _load_toml_file(path: Path) -> dict:
    """Load TOML file and return parsed dict."""
    try:
        # Python 3.11+ has tomllib in stdlib
        import tomllib
    except ModuleNotFoundError:
        try:
            import tomli as tomllib  # type: ignore
        except ImportError:
            raise ConfigurationError(
                "TOML support requires Python 3.11+ or 'tomli' package. "
                "Install with: pip install tomli"
            )

    with open(path, "rb") as f:
        return tomllib.load(f)
