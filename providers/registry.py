"""
Provider registry — the fixed table mapping provider names to adapters.

Usage:
    from providers.registry import registry, ProviderType

    # Adapter modules register themselves at import time
    registry.register(ProviderType.LLM, 'claude', ClaudeProvider)

    # Lookup ignores case; every call builds a new instance
    adapter = registry.get_provider(ProviderType.LLM, 'Claude')
    engine = registry.get_provider(ProviderType.TTS, 'azure', config={...})

    # Diagnostics listing
    rows = registry.list_providers(ProviderType.LLM, include_unavailable=True)

New vendors are added by writing an adapter module that registers itself;
the dispatcher never needs to change.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Type

logger = logging.getLogger(__name__)


class ProviderType(Enum):
    LLM = "llm"
    TTS = "tts"


class ProviderRegistry:
    """Name -> class table for completion adapters and speech engines.

    Names are stored lowercase. Instances are never cached: the dispatcher asks
    for a new adapter on every call so that per-request settings (timeout, TTS
    settings) cannot leak from one question to the next.
    """

    _instance: Optional["ProviderRegistry"] = None

    def __init__(self) -> None:
        self._classes: Dict[ProviderType, Dict[str, Type]] = {t: {} for t in ProviderType}
        self._defaults: Dict[ProviderType, Dict[str, Dict]] = {t: {} for t in ProviderType}

    @classmethod
    def get_instance(cls) -> "ProviderRegistry":
        if cls._instance is None:
            cls._instance = ProviderRegistry()
        return cls._instance

    @staticmethod
    def _key(provider_id: Optional[str]) -> str:
        return (provider_id or "").lower()

    def register(
        self,
        provider_type: ProviderType,
        provider_id: str,
        provider_class: Type,
        config: Optional[Dict] = None,
    ) -> None:
        """Bind provider_id to provider_class.

        Args:
            provider_type:  LLM or TTS.
            provider_id:    Adapter name as it appears in the provider file.
            provider_class: The class itself; instantiated on lookup.
            config:         Register-time defaults, overridden by call-time config.
        """
        key = self._key(provider_id)
        self._classes[provider_type][key] = provider_class
        if config:
            self._defaults[provider_type][key] = dict(config)
        logger.debug("Registered %s adapter %s", provider_type.value, key)

    def get_provider(
        self,
        provider_type: ProviderType,
        provider_id: str,
        config: Optional[Dict] = None,
    ) -> Any:
        """Build an adapter for provider_id.

        Raises:
            KeyError: provider_id has no registered adapter.
        """
        key = self._key(provider_id)
        table = self._classes[provider_type]
        if key not in table:
            raise KeyError(
                f"Unknown {provider_type.value} provider: '{provider_id}'. "
                f"Available: {sorted(table)}"
            )
        settings = {**self._defaults[provider_type].get(key, {}), **(config or {})}
        return table[key](settings)

    def list_providers(
        self,
        provider_type: ProviderType,
        include_unavailable: bool = False,
    ) -> List[Dict]:
        """Describe registered adapters, ordered by id.

        Adapters are built with their register-time defaults only, so
        'available' reflects environment fallbacks, not the config snapshot.
        Rows carry id, name, available and info.
        """
        rows = []
        for key, provider_class in sorted(self._classes[provider_type].items()):
            try:
                adapter = provider_class(dict(self._defaults[provider_type].get(key, {})))
                available, info = adapter.is_available(), adapter.get_info()
            except Exception as exc:
                logger.warning("Could not describe %s adapter %s: %s", provider_type.value, key, exc)
                available, info = False, {"name": key, "status": "error"}
            if available or include_unavailable:
                rows.append({"id": key, "name": info.get("name", key), "available": available, "info": info})
        return rows

    def registered_ids(self, provider_type: ProviderType) -> List[str]:
        return list(self._classes[provider_type])

    def is_registered(self, provider_type: ProviderType, provider_id: Optional[str]) -> bool:
        return self._key(provider_id) in self._classes[provider_type]


registry = ProviderRegistry.get_instance()


def get_tts_provider(provider_id: str, config: Optional[Dict] = None) -> Any:
    return registry.get_provider(ProviderType.TTS, provider_id, config)


__all__ = [
    "ProviderType",
    "ProviderRegistry",
    "registry",
    "get_tts_provider",
]
