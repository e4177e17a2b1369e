"""
Mistral AI adapter (registry id: mistral). Text only.
"""

import threading
import time
from typing import Any, Dict, Optional

from providers.definition import ProviderDefinition
from providers.llm.base import LLMError, LLMProvider, LLMResponse
from providers.registry import ProviderType, registry


class MistralProvider(LLMProvider):
    """Mistral chat completions."""

    provider_id = "mistral"
    API_URL = "https://api.mistral.ai/v1/chat/completions"
    API_KEY_ENV = "MISTRAL_API_KEY"

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
                "messages": self.chat_messages(question, definition),
                "max_tokens": definition.max_tokens,
                "temperature": definition.temperature,
                # Nucleus sampling kept slightly below 1 for spoken answers
                "top_p": 0.9,
                "safe_prompt": bool(self._config.get("safe_prompt", False)),
            },
            headers={"Authorization": f"Bearer {api_key}"},
        )
        try:
            choice = data["choices"][0]
            text = choice["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMError(definition.name, f"Malformed Mistral payload: {exc}") from exc

        return LLMResponse(
            content=text,
            model=data.get("model", definition.model),
            provider=definition.name,
            response_format="text",
            usage=data.get("usage", {}),
            latency_ms=(time.time() - start) * 1000,
            finish_reason=choice.get("finish_reason", "stop"),
            raw_response=data,
        )

    def get_info(self) -> Dict[str, Any]:
        info = super().get_info()
        info["name"] = self._config.get("name", "Mistral AI")
        return info


# Auto-register when this module is imported
registry.register(ProviderType.LLM, "mistral", MistralProvider)
