"""
Config loader: reads config/ai_providers.yaml with environment variable overrides.

Usage:
    from config.loader import config_store

    snapshot = config_store.current()      # ConfigSnapshot, reloaded lazily
    snapshot.timeout_ms                    # -> 5000
    snapshot.pool(QuestionType.SIMPLE_AUDIO)
    config_store.reload()                  # force a reload (keeps old on failure)

Environment variable override rules:
  - File location:
      AI_CONFIG_PATH               -> path of the YAML (or JSON) provider file
  - Direct named overrides (highest priority):
      AI_TIMEOUT_MS                -> aiSelectionConfig.timeoutMs
      AI_FALLBACK_ON_ERROR         -> aiSelectionConfig.fallbackOnError (true/false)
      AI_MAX_RETRIES               -> aiSelectionConfig.maxRetries
      AI_CONFIG_RELOAD_ENABLED     -> aiSelectionConfig.reloadEnabled (true/false)
      AI_CONFIG_RELOAD_INTERVAL_MS -> aiSelectionConfig.reloadIntervalMs
      AI_LOG_SELECTIONS            -> statisticsTracking.logSelections (true/false)

Credential fields (apiKey, region, endpoint) may hold ${ENV_VAR} placeholders;
those are resolved when a request uses them, not here.
"""

import logging
import os
import threading
import time
from pathlib import Path
from typing import Any, Optional

import yaml

from config.snapshot import (
    ConfigSnapshot,
    ConfigurationError,
    ConfigurationInvalidError,
    ConfigurationMissingError,
)

logger = logging.getLogger(__name__)

# Path to the default provider file (same directory as this module)
_DEFAULT_YAML = Path(__file__).parent / "ai_providers.yaml"

# Named env var → dotted config key mappings
_ENV_MAP = {
    "AI_TIMEOUT_MS":                ("aiSelectionConfig.timeoutMs",        int),
    "AI_FALLBACK_ON_ERROR":         ("aiSelectionConfig.fallbackOnError",  "bool"),
    "AI_MAX_RETRIES":               ("aiSelectionConfig.maxRetries",       int),
    "AI_CONFIG_RELOAD_ENABLED":     ("aiSelectionConfig.reloadEnabled",    "bool"),
    "AI_CONFIG_RELOAD_INTERVAL_MS": ("aiSelectionConfig.reloadIntervalMs", int),
    "AI_LOG_SELECTIONS":            ("statisticsTracking.logSelections",   "bool"),
}


def _cast(value: str, cast_type) -> Any:
    """Cast a string env var value to the target type."""
    if cast_type == "bool":
        return value.lower() in ("true", "1", "yes")
    if cast_type == int:
        return int(value)
    if cast_type == float:
        return float(value)
    return value  # str passthrough


def _deep_set(data: dict, dotted_key: str, value: Any) -> None:
    """Set a value in a nested dict using a dotted key path."""
    parts = dotted_key.split(".")
    node = data
    for part in parts[:-1]:
        # an empty YAML section parses as None
        if not isinstance(node.get(part), dict):
            node[part] = {}
        node = node[part]
    node[parts[-1]] = value


def _deep_get(data: dict, dotted_key: str, default: Any = None) -> Any:
    """Get a value from a nested dict using a dotted key path."""
    parts = dotted_key.split(".")
    node = data
    for part in parts:
        if not isinstance(node, dict) or part not in node:
            return default
        node = node[part]
    return node


def default_config_path() -> Path:
    return Path(os.environ.get("AI_CONFIG_PATH") or _DEFAULT_YAML)


def _load_yaml(path: Path) -> dict:
    """Load the provider file. YAML is a superset of JSON so both parse."""
    if not path.exists():
        raise ConfigurationMissingError(f"Config file not found: {path}")
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigurationInvalidError(f"Config file {path} is not valid YAML/JSON: {exc}") from exc
    except OSError as exc:
        raise ConfigurationMissingError(f"Config file {path} cannot be read: {exc}") from exc
    if data is None:
        raise ConfigurationInvalidError(f"Config file {path} is empty")
    if not isinstance(data, dict):
        raise ConfigurationInvalidError(f"Config file {path} must contain a mapping at the top level")
    return data


def _apply_env_overrides(data: dict) -> None:
    """Apply named env var overrides to the config dict (in-place)."""
    for env_key, (config_key, cast_type) in _ENV_MAP.items():
        value = os.environ.get(env_key)
        if value is None or value == "":
            continue
        try:
            cast_value = _cast(value, cast_type)
        except ValueError as exc:
            raise ConfigurationInvalidError(f"{env_key}={value!r} is not a valid {cast_type}: {exc}") from exc
        logger.debug("[CONFIG] %s overrides %s: %r -> %r",
                     env_key, config_key, _deep_get(data, config_key), cast_value)
        _deep_set(data, config_key, cast_value)


def load_snapshot(path: Optional[Path] = None) -> ConfigSnapshot:
    """Read, override, validate and freeze the provider configuration.

    Raises:
        ConfigurationMissingError: the file does not exist or cannot be read.
        ConfigurationInvalidError: the content fails validation.
    """
    path = Path(path) if path else default_config_path()
    data = _load_yaml(path)
    _apply_env_overrides(data)
    snapshot = ConfigSnapshot.from_dict(data, source=str(path))
    logger.info(
        "[CONFIG] Loaded %s: %d audio / %d text providers, timeout=%dms",
        path,
        len(snapshot.audio_providers),
        len(snapshot.text_providers),
        snapshot.timeout_ms,
    )
    return snapshot


class ConfigStore:
    """Holds the current ConfigSnapshot and publishes replacements atomically.

    Readers call current() and keep the snapshot they got for the whole
    request. When reloading is enabled and the interval has elapsed, the
    next current() call re-reads the file; a failed reload is logged and the
    previous snapshot stays published.
    """

    def __init__(self, path: Optional[Path] = None, clock=time.monotonic):
        self._path = Path(path) if path else None
        self._clock = clock
        self._lock = threading.Lock()
        self._snapshot: Optional[ConfigSnapshot] = None
        self._last_check = 0.0
        self.last_error: Optional[str] = None

    @property
    def path(self) -> Path:
        return self._path or default_config_path()

    def load(self) -> ConfigSnapshot:
        """Initial (fatal) load. Errors propagate to the caller."""
        snapshot = load_snapshot(self.path)
        with self._lock:
            self._snapshot = snapshot
            self._last_check = self._clock()
            self.last_error = None
        return snapshot

    def current(self) -> ConfigSnapshot:
        snapshot = self._snapshot
        if snapshot is None:
            return self.load()
        if snapshot.reload_enabled and self._due(snapshot):
            return self.reload()
        return snapshot

    def _due(self, snapshot: ConfigSnapshot) -> bool:
        return (self._clock() - self._last_check) * 1000 >= snapshot.reload_interval_ms

    def reload(self) -> ConfigSnapshot:
        """Re-read the file. On failure keep (and return) the old snapshot."""
        with self._lock:
            self._last_check = self._clock()
            previous = self._snapshot
        try:
            snapshot = load_snapshot(self.path)
        except ConfigurationError as exc:
            if previous is None:
                raise
            self.last_error = str(exc)
            logger.error("[CONFIG] Reload failed, keeping previous snapshot: %s", exc)
            return previous
        with self._lock:
            self._snapshot = snapshot
            self.last_error = None
        logger.info("[CONFIG] Reloaded provider configuration from %s", self.path)
        return snapshot

    def set_snapshot(self, snapshot: ConfigSnapshot) -> None:
        """Publish an already-built snapshot (used by tests and embedders)."""
        with self._lock:
            self._snapshot = snapshot
            self._last_check = self._clock()

    @property
    def loaded(self) -> bool:
        return self._snapshot is not None


# Module-level singleton, import this everywhere:
#   from config.loader import config_store
config_store = ConfigStore()
