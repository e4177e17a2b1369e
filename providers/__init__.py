"""
Provider package: abstract base classes + registry pattern.

Sub-packages:
  providers.llm       : LLMProvider base class + vendor completion adapters
  providers.tts       : TTSProvider base class + speech engines
  providers.definition: ProviderDefinition, QuestionType, materialize()
  providers.registry  : ProviderRegistry singleton
"""

from providers.base import (
    BaseProvider,
    DispatchCancelled,
    DispatchError,
    DispatchTimeoutError,
    NoProviderAvailableError,
    ProviderError,
    ProviderUnavailableError,
)
from providers.definition import ProviderDefinition, QuestionType, materialize
from providers.registry import (
    ProviderRegistry,
    ProviderType,
    registry,
    get_tts_provider,
)

__all__ = [
    # Base classes and errors
    "BaseProvider",
    "ProviderError",
    "ProviderUnavailableError",
    "NoProviderAvailableError",
    "DispatchError",
    "DispatchTimeoutError",
    "DispatchCancelled",
    # Definitions
    "ProviderDefinition",
    "QuestionType",
    "materialize",
    # Registry
    "ProviderRegistry",
    "ProviderType",
    "registry",
    "get_tts_provider",
]
