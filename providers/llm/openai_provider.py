"""
OpenAI completion adapter.

Two registry ids share this adapter:
  openai_realtime: chat completion followed by the audio/speech endpoint
                    (tts-1, mp3), returns base64 audio
  openai_text    : chat completion only, returns text

The definition's responseFormat decides; the id only changes the default.
"""

import base64
import time
import threading
from typing import Any, Dict, Optional

from providers.definition import ProviderDefinition
from providers.llm.base import LLMError, LLMProvider, LLMResponse
from providers.registry import ProviderType, registry

OPENAI_SPEECH_URL = "https://api.openai.com/v1/audio/speech"
DEFAULT_SPEECH_MODEL = "tts-1"
DEFAULT_SPEECH_VOICE = "alloy"


class OpenAIProvider(LLMProvider):
    """OpenAI chat completions, with optional vendor speech."""

    provider_id = "openai_realtime"
    API_URL = "https://api.openai.com/v1/chat/completions"
    API_KEY_ENV = "OPENAI_API_KEY"

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
            },
            headers={"Authorization": f"Bearer {api_key}"},
        )
        try:
            choice = data["choices"][0]
            text = choice["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMError(definition.name, f"Malformed completion payload: {exc}") from exc

        if not definition.is_audio_capable:
            return LLMResponse(
                content=text,
                model=definition.model,
                provider=definition.name,
                response_format="text",
                usage=data.get("usage", {}),
                latency_ms=(time.time() - start) * 1000,
                finish_reason=choice.get("finish_reason", "stop"),
                raw_response=data,
            )

        self.check_cancelled(definition, cancel_event)
        audio = self.post_for_bytes(
            definition,
            self._config.get("speech_url", OPENAI_SPEECH_URL),
            {
                "model": self._config.get("speech_model", DEFAULT_SPEECH_MODEL),
                "input": text,
                "voice": definition.voice or DEFAULT_SPEECH_VOICE,
                "response_format": "mp3",
            },
            headers={"Authorization": f"Bearer {api_key}"},
        )
        return LLMResponse(
            content=base64.b64encode(audio).decode("utf-8"),
            model=definition.model,
            provider=definition.name,
            response_format="audio",
            usage=data.get("usage", {}),
            latency_ms=(time.time() - start) * 1000,
            finish_reason=choice.get("finish_reason", "stop"),
            raw_response=data,
        )

    def get_info(self) -> Dict[str, Any]:
        info = super().get_info()
        info["name"] = self._config.get("name", "OpenAI")
        return info


class OpenAITextProvider(OpenAIProvider):
    provider_id = "openai_text"


# Auto-register when this module is imported
registry.register(ProviderType.LLM, "openai_realtime", OpenAIProvider)
registry.register(ProviderType.LLM, "openai_text", OpenAITextProvider)
