"""
Provider abstract base classes and the per-request error taxonomy.

Both completion adapters (providers.llm) and speech engines (providers.tts)
share this interface contract. Adapters receive their runtime settings through
a config dict and a ProviderDefinition; they keep no cross-request state.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class BaseProvider(ABC):
    """Shared shape of completion adapters and speech engines.

    The registry builds a new instance per call from a plain settings dict, so
    nothing stored on an adapter outlives one question.
    """

    # Registry name, overridden by each adapter
    provider_id: str = "unnamed"

    def __init__(self, config: Dict[str, Any] = None):
        self._config = dict(config or {})

    @abstractmethod
    def is_available(self) -> bool:
        """True when the credentials this adapter falls back on are present."""

    @abstractmethod
    def get_info(self) -> Dict[str, Any]:
        """Diagnostics metadata carrying at least name and status."""

    def get_config(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    def __repr__(self) -> str:
        name = self.get_info().get("name", self.provider_id)
        return f"<{type(self).__name__} {self.provider_id} name={name!r} available={self.is_available()}>"


class ProviderError(Exception):
    """Base exception for all per-request provider errors."""

    def __init__(self, provider_name: str, message: str):
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


class ProviderUnavailableError(ProviderError):
    """Raised when a provider is not available or not configured."""
    pass


class NoProviderAvailableError(ProviderUnavailableError):
    """No enabled provider in the pool requested for a question type."""

    def __init__(self, pool: str, message: Optional[str] = None):
        self.pool = pool
        super().__init__(pool, message or f"No AI provider available for {pool}")


class DispatchError(ProviderError):
    """Vendor error, non-success status, or malformed payload during dispatch."""
    pass


class DispatchTimeoutError(DispatchError):
    """The adapter call exceeded the configured time budget."""

    def __init__(self, provider_name: str, timeout_ms: int):
        self.timeout_ms = timeout_ms
        super().__init__(provider_name, f"call exceeded {timeout_ms} ms")


class DispatchCancelled(ProviderError):
    """Raised inside an adapter when its cancellation event has been set."""
    pass


__all__ = [
    "BaseProvider",
    "ProviderError",
    "ProviderUnavailableError",
    "NoProviderAvailableError",
    "DispatchError",
    "DispatchTimeoutError",
    "DispatchCancelled",
]
