"""
Microsoft Copilot adapter (registry id: copilot_speech).

Chat completion against an Azure OpenAI deployment, then speech through the
Azure SSML engine. `endpoint` is either the Azure resource name or a full
https:// base URL; `model` names the deployment.
"""

import threading
import time
from typing import Any, Dict, Optional

from providers.definition import ProviderDefinition
from providers.llm.base import LLMError, LLMProvider, LLMResponse
from providers.registry import ProviderType, registry

AZURE_OPENAI_URL = (
    "https://{endpoint}.openai.azure.com/openai/deployments/{deployment}"
    "/chat/completions"
)
API_VERSION = "2024-02-15-preview"


def deployment_url(endpoint: str, deployment: str) -> str:
    if endpoint.startswith("http://") or endpoint.startswith("https://"):
        base = endpoint.rstrip("/")
        return f"{base}/openai/deployments/{deployment}/chat/completions"
    return AZURE_OPENAI_URL.format(endpoint=endpoint, deployment=deployment)


class CopilotProvider(LLMProvider):
    """Azure OpenAI deployment + Azure Speech."""

    provider_id = "copilot_speech"
    API_KEY_ENV = "AZURE_OPENAI_KEY"

    def complete(
        self,
        question: str,
        definition: ProviderDefinition,
        cancel_event: Optional[threading.Event] = None,
    ) -> LLMResponse:
        api_key = self.require_api_key(definition)
        endpoint = definition.resolved_endpoint()
        if not endpoint:
            raise LLMError(definition.name, "Azure OpenAI endpoint missing")
        self.check_cancelled(definition, cancel_event)

        start = time.time()
        data = self.post_json(
            definition,
            deployment_url(endpoint, definition.model),
            {
                "messages": self.chat_messages(question, definition),
                "max_tokens": definition.max_tokens,
                "temperature": definition.temperature,
            },
            headers={"api-key": api_key},
            params={"api-version": self._config.get("api_version", API_VERSION)},
        )
        try:
            choice = data["choices"][0]
            text = choice["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMError(definition.name, f"Malformed completion payload: {exc}") from exc

        content, fmt = text, "text"
        if definition.is_audio_capable:
            content = self.speak("azure", text, definition, cancel_event)
            fmt = "audio"

        return LLMResponse(
            content=content,
            model=definition.model,
            provider=definition.name,
            response_format=fmt,
            usage=data.get("usage", {}),
            latency_ms=(time.time() - start) * 1000,
            finish_reason=choice.get("finish_reason", "stop"),
            raw_response=data,
        )

    def get_info(self) -> Dict[str, Any]:
        info = super().get_info()
        info["name"] = self._config.get("name", "Microsoft Copilot (Azure OpenAI)")
        info["endpoint"] = AZURE_OPENAI_URL
        return info


# Auto-register when this module is imported
registry.register(ProviderType.LLM, "copilot_speech", CopilotProvider)
