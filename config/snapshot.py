"""
Immutable configuration snapshot for the AI response orchestration layer.

A snapshot is built once from the raw config tree (see config/ai_providers.yaml),
validated, and then only ever read. Reloads build a brand new snapshot and
publish it through config.loader.ConfigStore; nothing here is mutated in place.

Usage:
    from config.snapshot import ConfigSnapshot

    snapshot = ConfigSnapshot.from_dict(raw_tree)
    snapshot.pool(QuestionType.SIMPLE_AUDIO)   # -> {'openai_realtime': {...}, ...}
    snapshot.timeout_ms                        # -> 5000
"""

from __future__ import annotations

import copy
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from providers.definition import QuestionType

REQUIRED_SECTIONS = ("audioProviders", "textProviders", "questionAnalysis", "ttsServices")
REQUIRED_PROVIDER_FIELDS = ("enabled", "priority", "weight", "apiKey", "model")

DEFAULT_TIMEOUT_MS = 5000
DEFAULT_MAX_RETRIES = 2
DEFAULT_COMPLEXITY_THRESHOLD = 3
DEFAULT_RELOAD_INTERVAL_MS = 300000


class ConfigurationError(Exception):
    """Base exception for configuration load/validation failures."""


class ConfigurationMissingError(ConfigurationError):
    """A required section or field is absent."""


class ConfigurationInvalidError(ConfigurationError):
    """A field is present but out of range or of the wrong shape."""


def _freeze(value: Any) -> Any:
    """Deep-copy a raw config value into read-only containers."""
    if isinstance(value, dict):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


def _as_int(value: Any, where: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationInvalidError(f"{where}: expected an integer, got {value!r}")


def _as_float(value: Any, where: str) -> float:
    if isinstance(value, bool):
        raise ConfigurationInvalidError(f"{where}: expected a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationInvalidError(f"{where}: expected a number, got {value!r}")


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.lower() in ("true", "1", "yes")
    return bool(value)


def validate_provider_entry(entry: Any, name: str, pool: str) -> None:
    """Reject a pool entry that is missing required fields or out of range."""
    if not isinstance(entry, dict):
        raise ConfigurationInvalidError(f"{pool} provider '{name}' must be a mapping")

    for key in REQUIRED_PROVIDER_FIELDS:
        if key not in entry:
            raise ConfigurationMissingError(
                f"Missing field for {pool} provider '{name}': {key}"
            )

    if not isinstance(entry["enabled"], bool):
        raise ConfigurationInvalidError(
            f"{pool}.{name}.enabled must be true or false, got {entry['enabled']!r}"
        )

    priority = _as_int(entry["priority"], f"{pool}.{name}.priority")
    weight = _as_int(entry["weight"], f"{pool}.{name}.weight")
    if priority < 1:
        raise ConfigurationInvalidError(
            f"Invalid priority for {pool} provider '{name}': {priority}"
        )
    if weight < 1:
        raise ConfigurationInvalidError(
            f"Invalid weight for {pool} provider '{name}': {weight}"
        )

    mode = entry.get("mode", "api")
    if mode not in ("direct", "api"):
        raise ConfigurationInvalidError(
            f"Invalid mode for {pool} provider '{name}': {mode!r}"
        )
    if mode == "direct" and not str(entry.get("endpoint") or "").strip():
        raise ConfigurationInvalidError(
            f"{pool} provider '{name}' is in direct mode but has no endpoint"
        )

    if "maxTokens" in entry:
        max_tokens = _as_int(entry["maxTokens"], f"{pool}.{name}.maxTokens")
        if max_tokens < 1:
            raise ConfigurationInvalidError(
                f"Invalid maxTokens for {pool} provider '{name}': {max_tokens}"
            )
    if "temperature" in entry:
        _as_float(entry["temperature"], f"{pool}.{name}.temperature")
    headers = entry.get("headers")
    if headers is not None and not isinstance(headers, dict):
        raise ConfigurationInvalidError(f"{pool}.{name}.headers must be a mapping")

    fmt = entry.get("responseFormat")
    if fmt is not None and fmt not in ("audio", "text"):
        raise ConfigurationInvalidError(
            f"Invalid responseFormat for {pool} provider '{name}': {fmt!r}"
        )


def validate_config_tree(data: Any) -> None:
    """Validate the raw config tree. Raises ConfigurationError subclasses."""
    if not isinstance(data, dict):
        raise ConfigurationInvalidError("AI configuration root must be a mapping")

    for section in REQUIRED_SECTIONS:
        if section not in data:
            raise ConfigurationMissingError(f"Missing configuration section: {section}")

    for pool in ("audioProviders", "textProviders"):
        providers = data[pool] or {}
        if not isinstance(providers, dict):
            raise ConfigurationInvalidError(f"{pool} must be a mapping of provider name to settings")
        for name, entry in providers.items():
            validate_provider_entry(entry, name, pool)

    analysis = data["questionAnalysis"] or {}
    for key in ("complexityKeywords", "simpleKeywords"):
        keywords = analysis.get(key, [])
        if not isinstance(keywords, list):
            raise ConfigurationInvalidError(f"questionAnalysis.{key} must be a list")

    selection = data.get("aiSelectionConfig") or {}
    timeout_ms = _as_int(selection.get("timeoutMs", DEFAULT_TIMEOUT_MS), "aiSelectionConfig.timeoutMs")
    if timeout_ms < 1:
        raise ConfigurationInvalidError(f"aiSelectionConfig.timeoutMs must be positive: {timeout_ms}")
    retries = _as_int(selection.get("maxRetries", DEFAULT_MAX_RETRIES), "aiSelectionConfig.maxRetries")
    if retries < 0:
        raise ConfigurationInvalidError(f"aiSelectionConfig.maxRetries must be >= 0: {retries}")


@dataclass(frozen=True)
class ConfigSnapshot:
    """Validated, read-only view of provider pools and routing settings."""

    audio_providers: Mapping[str, Mapping[str, Any]]
    text_providers: Mapping[str, Mapping[str, Any]]
    complexity_keywords: Tuple[str, ...] = ()
    simple_keywords: Tuple[str, ...] = ()
    complexity_threshold: int = DEFAULT_COMPLEXITY_THRESHOLD
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    fallback_on_error: bool = True
    max_retries: int = DEFAULT_MAX_RETRIES
    reload_enabled: bool = True
    reload_interval_ms: int = DEFAULT_RELOAD_INTERVAL_MS
    tts_services: Mapping[str, Mapping[str, Any]] = field(default_factory=lambda: MappingProxyType({}))
    statistics_enabled: bool = True
    log_selections: bool = True
    source: Optional[str] = None
    loaded_at: float = field(default_factory=time.time)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: Optional[str] = None) -> "ConfigSnapshot":
        """Validate a raw config tree and freeze it into a snapshot."""
        validate_config_tree(data)
        data = copy.deepcopy(data)

        analysis = data.get("questionAnalysis") or {}
        selection = data.get("aiSelectionConfig") or {}
        stats = data.get("statisticsTracking") or {}

        return cls(
            audio_providers=_freeze(data.get("audioProviders") or {}),
            text_providers=_freeze(data.get("textProviders") or {}),
            complexity_keywords=tuple(str(k).lower() for k in analysis.get("complexityKeywords", [])),
            simple_keywords=tuple(str(k).lower() for k in analysis.get("simpleKeywords", [])),
            complexity_threshold=_as_int(
                analysis.get("complexityThreshold", DEFAULT_COMPLEXITY_THRESHOLD),
                "questionAnalysis.complexityThreshold",
            ),
            timeout_ms=_as_int(selection.get("timeoutMs", DEFAULT_TIMEOUT_MS), "aiSelectionConfig.timeoutMs"),
            fallback_on_error=_as_bool(selection.get("fallbackOnError"), True),
            max_retries=_as_int(selection.get("maxRetries", DEFAULT_MAX_RETRIES), "aiSelectionConfig.maxRetries"),
            reload_enabled=_as_bool(selection.get("reloadEnabled"), True),
            reload_interval_ms=_as_int(
                selection.get("reloadIntervalMs", DEFAULT_RELOAD_INTERVAL_MS),
                "aiSelectionConfig.reloadIntervalMs",
            ),
            tts_services=_freeze(data.get("ttsServices") or {}),
            statistics_enabled=_as_bool(stats.get("enabled"), True),
            log_selections=_as_bool(stats.get("logSelections"), True),
            source=source,
        )

    def pool(self, question_type: QuestionType) -> Mapping[str, Mapping[str, Any]]:
        """Return the provider pool serving a question type."""
        if question_type is QuestionType.SIMPLE_AUDIO:
            return self.audio_providers
        return self.text_providers

    def tts_settings(self, engine_id: str) -> Mapping[str, Any]:
        """Return the raw settings block for a TTS engine (case-insensitive)."""
        for key, value in self.tts_services.items():
            if key.lower() == (engine_id or "").lower():
                return value
        return MappingProxyType({})

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    def stats(self) -> Dict[str, Any]:
        """Summary used by the diagnostics endpoint."""
        return {
            "source": self.source,
            "loaded_at": self.loaded_at,
            "reload_enabled": self.reload_enabled,
            "reload_interval_ms": self.reload_interval_ms,
            "audio_providers_count": len(self.audio_providers),
            "text_providers_count": len(self.text_providers),
            "timeout_ms": self.timeout_ms,
            "fallback_on_error": self.fallback_on_error,
            "max_retries": self.max_retries,
        }


__all__ = [
    "ConfigSnapshot",
    "ConfigurationError",
    "ConfigurationMissingError",
    "ConfigurationInvalidError",
    "validate_config_tree",
    "validate_provider_entry",
]
