"""
Anthropic Claude adapter (registry id: claude). Text only.
"""

import threading
import time
from typing import Any, Dict, Optional

from providers.definition import ProviderDefinition
from providers.llm.base import LLMError, LLMProvider, LLMResponse
from providers.registry import ProviderType, registry

ANTHROPIC_VERSION = "2023-06-01"


class ClaudeProvider(LLMProvider):
    """Anthropic Messages API."""

    provider_id = "claude"
    API_URL = "https://api.anthropic.com/v1/messages"
    API_KEY_ENV = "ANTHROPIC_API_KEY"

    def complete(
        self,
        question: str,
        definition: ProviderDefinition,
        cancel_event: Optional[threading.Event] = None,
    ) -> LLMResponse:
        api_key = self.require_api_key(definition)
        self.check_cancelled(definition, cancel_event)

        start = time.time()
        data = self.post_json(
            definition,
            self.endpoint_for(definition),
            {
                "model": definition.model,
                "max_tokens": definition.max_tokens,
                "temperature": definition.temperature,
                "system": self.system_prompt_for(definition),
                "messages": [{"role": "user", "content": question}],
            },
            headers={
                "x-api-key": api_key,
                "anthropic-version": ANTHROPIC_VERSION,
            },
        )
        try:
            text = data["content"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMError(definition.name, f"Malformed Claude payload: {exc}") from exc

        return LLMResponse(
            content=text,
            model=data.get("model", definition.model),
            provider=definition.name,
            response_format="text",
            usage=data.get("usage", {}),
            latency_ms=(time.time() - start) * 1000,
            finish_reason=data.get("stop_reason") or "stop",
            raw_response=data,
        )

    def get_info(self) -> Dict[str, Any]:
        info = super().get_info()
        info["name"] = self._config.get("name", "Anthropic Claude")
        return info


# Auto-register when this module is imported
registry.register(ProviderType.LLM, "claude", ClaudeProvider)
