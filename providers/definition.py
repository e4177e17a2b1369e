"""
Provider definitions — the request-scoped value object handed to adapters.

A ProviderDefinition is materialized fresh from a pool entry of the current
configuration snapshot every time a provider is selected. It is frozen and
never shared across requests.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional

DEFAULT_PRIORITY = 999
DEFAULT_WEIGHT = 1
DEFAULT_MAX_TOKENS = 150
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MODE = "api"

_PLACEHOLDER = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


class QuestionType(Enum):
    SIMPLE_AUDIO = "simple_audio"    # short/direct questions -> audio-capable providers
    COMPLEX_TEXT = "complex_text"    # analytical questions -> text + separate TTS

    @property
    def pool_key(self) -> str:
        return "audioProviders" if self is QuestionType.SIMPLE_AUDIO else "textProviders"

    @property
    def default_response_format(self) -> str:
        return "audio" if self is QuestionType.SIMPLE_AUDIO else "text"


def resolve_env_var(value: Optional[str]) -> Optional[str]:
    """Resolve ${ENV_VAR} placeholders against the process environment.

    A value that is entirely one placeholder resolves to the variable's value,
    or None when the variable is unset. Embedded placeholders are substituted
    in place; unresolved ones are left intact.
    """
    if value is None:
        return None
    value = str(value)
    whole = _PLACEHOLDER.fullmatch(value.strip())
    if whole:
        return os.environ.get(whole.group(1))

    def _sub(m: re.Match) -> str:
        return os.environ.get(m.group(1), m.group(0))

    return _PLACEHOLDER.sub(_sub, value)


def entry_enabled(entry: Mapping[str, Any]) -> bool:
    """Read an entry's `enabled` flag. Strings count only when true/1/yes."""
    value = entry.get("enabled", True)
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


@dataclass(frozen=True)
class ProviderDefinition:
    name: str
    question_type: QuestionType
    priority: int = DEFAULT_PRIORITY
    weight: int = DEFAULT_WEIGHT
    mode: str = DEFAULT_MODE
    api_key: Optional[str] = None
    model: Optional[str] = None
    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float = DEFAULT_TEMPERATURE
    voice: Optional[str] = None
    response_format: str = "text"
    tts_provider: Optional[str] = None
    endpoint: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict, hash=False)
    system_prompt: Optional[str] = None
    enabled: bool = True

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    @property
    def is_audio_capable(self) -> bool:
        return self.response_format == "audio"

    @property
    def needs_tts(self) -> bool:
        return self.response_format == "text" and not _blank(self.tts_provider)

    # ------------------------------------------------------------------
    # Credentials / endpoint (resolved at use time, never at load time)
    # ------------------------------------------------------------------

    def resolved_api_key(self) -> Optional[str]:
        key = resolve_env_var(self.api_key)
        if _blank(key) or _PLACEHOLDER.search(key):
            return None
        return key

    def resolved_endpoint(self) -> Optional[str]:
        endpoint = resolve_env_var(self.endpoint)
        return None if _blank(endpoint) else endpoint

    def effective_mode(self) -> Optional[str]:
        """Resolve which mode this definition can actually run in.

        direct requires a resolvable credential and an endpoint; api is
        accepted without a credential.
        """
        if self.mode == "direct":
            if self.resolved_api_key() and self.resolved_endpoint():
                return "direct"
            return None
        if self.mode == "api":
            return "api"
        return None

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def is_usable(self) -> bool:
        if not self.enabled:
            return False
        if _blank(self.name) or _blank(self.model):
            return False
        if self.priority < 1 or self.weight < 1:
            return False
        if self.effective_mode() is None:
            return False
        if self.question_type is QuestionType.SIMPLE_AUDIO:
            return self.is_audio_capable or self.needs_tts
        return self.needs_tts or self.is_audio_capable

    def as_dict(self) -> Dict[str, Any]:
        """Loggable representation. The credential is never included."""
        return {
            "name": self.name,
            "type": self.question_type.name,
            "priority": self.priority,
            "weight": self.weight,
            "mode": self.mode,
            "model": self.model,
            "enabled": self.enabled,
            "response_format": self.response_format,
            "tts_provider": self.tts_provider,
            "voice": self.voice,
            "endpoint": self.endpoint,
        }

    def __str__(self) -> str:
        return (
            f"ProviderDefinition(name='{self.name}', type={self.question_type.name}, "
            f"priority={self.priority}, weight={self.weight}, model='{self.model}')"
        )


def materialize(
    name: str,
    entry: Mapping[str, Any],
    question_type: QuestionType,
) -> ProviderDefinition:
    """Build a ProviderDefinition from a raw pool entry, applying defaults.

    Absent weight defaults to 1 here, while the selector treats an absent
    weight as 10 when computing probability mass. Both defaults are kept.
    """
    headers = entry.get("headers") or {}
    return ProviderDefinition(
        name=name,
        question_type=question_type,
        priority=int(entry.get("priority", DEFAULT_PRIORITY)),
        weight=int(entry.get("weight", DEFAULT_WEIGHT)),
        mode=str(entry.get("mode", DEFAULT_MODE)),
        api_key=entry.get("apiKey"),
        model=entry.get("model"),
        max_tokens=int(entry.get("maxTokens", DEFAULT_MAX_TOKENS)),
        temperature=float(entry.get("temperature", DEFAULT_TEMPERATURE)),
        voice=entry.get("voice"),
        response_format=entry.get("responseFormat") or question_type.default_response_format,
        tts_provider=entry.get("ttsProvider"),
        endpoint=entry.get("endpoint"),
        headers={str(k): str(v) for k, v in headers.items()},
        system_prompt=entry.get("systemPrompt"),
        enabled=entry_enabled(entry),
    )


__all__ = [
    "QuestionType",
    "ProviderDefinition",
    "materialize",
    "entry_enabled",
    "resolve_env_var",
]
