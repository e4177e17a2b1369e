"""
Google Gemini completion adapter (registry id: gemini_live).

generateContent for the answer, then the Google TTS engine for speech. The
adapter's own credential is reused for the speech call unless ttsServices
configures a separate Google key.
"""

import threading
import time
from typing import Any, Dict, Optional

from providers.definition import ProviderDefinition, resolve_env_var
from providers.llm.base import LLMError, LLMProvider, LLMResponse
from providers.registry import ProviderType, registry

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


class GeminiProvider(LLMProvider):
    """Gemini generateContent + Google Cloud TTS."""

    provider_id = "gemini_live"
    API_URL = GEMINI_URL
    API_KEY_ENV = "GEMINI_API_KEY"

    def complete(
        self,
        question: str,
        definition: ProviderDefinition,
        cancel_event: Optional[threading.Event] = None,
    ) -> LLMResponse:
        api_key = self.require_api_key(definition)
        self.check_cancelled(definition, cancel_event)

        url = self.endpoint_for(definition).format(model=definition.model)
        start = time.time()
        data = self.post_json(
            definition,
            url,
            {
                "systemInstruction": {"parts": [{"text": self.system_prompt_for(definition)}]},
                "contents": [{"role": "user", "parts": [{"text": question}]}],
                "generationConfig": {
                    "maxOutputTokens": definition.max_tokens,
                    "temperature": definition.temperature,
                },
            },
            params={"key": api_key},
        )
        try:
            candidate = data["candidates"][0]
            text = candidate["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMError(definition.name, f"Malformed Gemini payload: {exc}") from exc

        content, fmt = text, "text"
        if definition.is_audio_capable:
            overrides = {}
            google_key = resolve_env_var(self.tts_settings("google").get("apiKey"))
            if not google_key or google_key.startswith("${"):
                overrides["apiKey"] = api_key
            content = self.speak("google", text, definition, cancel_event, overrides)
            fmt = "audio"

        return LLMResponse(
            content=content,
            model=definition.model,
            provider=definition.name,
            response_format=fmt,
            usage=data.get("usageMetadata", {}),
            latency_ms=(time.time() - start) * 1000,
            finish_reason=candidate.get("finishReason", "STOP").lower(),
            raw_response=data,
        )

    def get_info(self) -> Dict[str, Any]:
        info = super().get_info()
        info["name"] = self._config.get("name", "Google Gemini")
        return info


# Auto-register when this module is imported
registry.register(ProviderType.LLM, "gemini_live", GeminiProvider)
