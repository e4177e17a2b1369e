"""Completion adapter package.

Importing this package registers all vendor adapters with the registry.
"""

from providers.llm.base import LLMProvider, LLMResponse, LLMError

# Import concrete adapters so their registry.register() calls fire
from providers.llm import openai_provider  # noqa: F401
from providers.llm import gemini_provider  # noqa: F401
from providers.llm import copilot_provider  # noqa: F401
from providers.llm import claude_provider  # noqa: F401
from providers.llm import mistral_provider  # noqa: F401

__all__ = ["LLMProvider", "LLMResponse", "LLMError"]
