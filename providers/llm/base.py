"""
Completion adapter abstract base class.

Every vendor family implements one shared contract:

    complete(question, definition, cancel_event) -> LLMResponse

The response carries either plain text (response_format='text') or a
base64-encoded audio string (response_format='audio'). Adapters are
synchronous; the dispatcher runs them off the caller's thread and signals
cancellation through a threading.Event.
"""

import logging
import os
import threading
import time
from abc import abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import requests

from providers.base import BaseProvider, DispatchCancelled, ProviderError
from providers.definition import ProviderDefinition, resolve_env_var

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "Tu es un assistant vocal francophone, intelligent et bienveillant. "
    "Réponds de manière naturelle et concise, comme dans une conversation parlée. "
    "Évite les listes à puces et préfère un style oral."
)

DEFAULT_REQUEST_TIMEOUT = 30.0


@dataclass
class LLMResponse:
    content: str
    model: str
    provider: str
    response_format: str = "text"
    usage: Dict[str, int] = field(default_factory=dict)
    latency_ms: float = 0.0
    finish_reason: str = "stop"
    raw_response: Any = None

    @property
    def is_audio(self) -> bool:
        return self.response_format == "audio"


class LLMError(ProviderError):
    """Adapter-level vendor error (bad status, malformed payload, missing key)."""
    pass


class LLMProvider(BaseProvider):
    """Abstract base class for completion adapters (OpenAI, Gemini, Claude, ...)."""

    # Vendor default endpoint, overridden by ProviderDefinition.endpoint
    API_URL: str = ""
    # Env var consulted when the definition's credential does not resolve
    API_KEY_ENV: Optional[str] = None

    def __init__(self, config: Dict[str, Any] = None) -> None:
        super().__init__(config)
        self.timeout = float(self._config.get("timeout", DEFAULT_REQUEST_TIMEOUT))

    @abstractmethod
    def complete(
        self,
        question: str,
        definition: ProviderDefinition,
        cancel_event: Optional[threading.Event] = None,
    ) -> LLMResponse:
        """Answer a question; return text or base64 audio."""
        pass

    def health_check(self, definition: Optional[ProviderDefinition] = None) -> Dict[str, Any]:
        """Blocking check with a one-word prompt. Diagnostics only."""
        if definition is None:
            return {"ok": False, "latency_ms": 0, "detail": "no provider definition to check"}
        t = time.time()
        try:
            self.complete("Bonjour", definition)
            return {"ok": True, "latency_ms": int((time.time() - t) * 1000), "detail": "reachable"}
        except Exception as exc:
            return {"ok": False, "latency_ms": int((time.time() - t) * 1000), "detail": str(exc)}

    # ------------------------------------------------------------------
    # Helpers shared by vendor adapters
    # ------------------------------------------------------------------

    def resolve_api_key(self, definition: ProviderDefinition) -> str:
        key = definition.resolved_api_key()
        if key:
            return key
        if self.API_KEY_ENV:
            return os.getenv(self.API_KEY_ENV, "")
        return ""

    def require_api_key(self, definition: ProviderDefinition) -> str:
        key = self.resolve_api_key(definition)
        if not key:
            raise LLMError(definition.name, "API key missing")
        return key

    def endpoint_for(self, definition: ProviderDefinition) -> str:
        return definition.resolved_endpoint() or self.API_URL

    def system_prompt_for(self, definition: ProviderDefinition) -> str:
        return definition.system_prompt or DEFAULT_SYSTEM_PROMPT

    def chat_messages(self, question: str, definition: ProviderDefinition) -> List[Dict[str, str]]:
        """OpenAI-style message list: system persona + user question."""
        return [
            {"role": "system", "content": self.system_prompt_for(definition)},
            {"role": "user", "content": question},
        ]

    def extra_headers(self, definition: ProviderDefinition) -> Dict[str, str]:
        return {k: resolve_env_var(v) or "" for k, v in definition.headers.items()}

    @staticmethod
    def check_cancelled(definition: ProviderDefinition, cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise DispatchCancelled(definition.name, "call cancelled by dispatcher")

    def post_json(
        self,
        definition: ProviderDefinition,
        url: str,
        payload: Mapping[str, Any],
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """POST a JSON payload and return the decoded JSON body."""
        merged = {"Content-Type": "application/json"}
        merged.update(headers or {})
        merged.update(self.extra_headers(definition))
        try:
            resp = requests.post(url, headers=merged, params=params, json=payload, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise LLMError(definition.name, f"API request failed: {exc}") from exc

        try:
            return resp.json()
        except ValueError as exc:
            raise LLMError(definition.name, f"Response is not JSON: {exc}") from exc

    def post_for_bytes(
        self,
        definition: ProviderDefinition,
        url: str,
        payload: Mapping[str, Any],
        headers: Optional[Dict[str, str]] = None,
    ) -> bytes:
        """POST a JSON payload and return the raw response body (audio)."""
        merged = {"Content-Type": "application/json"}
        merged.update(headers or {})
        try:
            resp = requests.post(url, headers=merged, json=payload, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise LLMError(definition.name, f"Speech request failed: {exc}") from exc
        if not resp.content:
            raise LLMError(definition.name, "Speech response was empty")
        return resp.content

    def speak(
        self,
        engine_id: str,
        text: str,
        definition: ProviderDefinition,
        cancel_event: Optional[threading.Event] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Run the vendor speech step through a registered TTS engine.

        Engine settings come from the ttsServices block handed over by the
        dispatcher; overrides win (e.g. the adapter's own credential).
        """
        from providers.registry import get_tts_provider

        settings = dict(self.tts_settings(engine_id))
        settings.update(overrides or {})
        settings.setdefault("timeout", self.timeout)
        engine = get_tts_provider(engine_id, settings)
        self.check_cancelled(definition, cancel_event)
        return engine.synthesize(text, definition.voice, cancel_event)

    def tts_settings(self, engine_id: str) -> Mapping[str, Any]:
        services = self._config.get("tts_services") or {}
        for key, value in services.items():
            if key.lower() == engine_id.lower():
                return value or {}
        return {}

    def get_info(self) -> Dict[str, Any]:
        return {
            "name": self._config.get("name", self.__class__.__name__),
            "provider_id": self.provider_id,
            "endpoint": self.API_URL,
            "available": self.is_available(),
            "status": "active" if self.is_available() else "inactive",
        }

    def is_available(self) -> bool:
        """True when a fallback credential env var is set (or none is needed)."""
        if not self.API_KEY_ENV:
            return True
        return bool(os.getenv(self.API_KEY_ENV))


__all__ = ["LLMProvider", "LLMResponse", "LLMError", "DEFAULT_SYSTEM_PROMPT"]
