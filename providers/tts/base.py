"""
TTS engine abstract base class.

Engines turn plain text into a base64-encoded audio string. They are used
only when the selected completion provider returns text and names a TTS
engine (ProviderDefinition.needs_tts), or internally by audio adapters that
delegate their speech step.
"""

import os
import threading
import time
from abc import abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from providers.base import BaseProvider, DispatchCancelled, ProviderError
from providers.definition import resolve_env_var

DEFAULT_TTS_TIMEOUT = 30.0


@dataclass
class TTSVoice:
    id: str
    name: str
    language: str = "fr-FR"
    gender: Optional[str] = None
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "language": self.language,
            "gender": self.gender,
            "description": self.description,
        }


class TTSError(ProviderError):
    """Speech synthesis vendor error or malformed payload."""
    pass


class TTSProvider(BaseProvider):
    """Abstract base class for speech engines (Azure SSML, Google JSON)."""

    # Env var consulted when the configured apiKey does not resolve
    API_KEY_ENV: Optional[str] = None
    DEFAULT_VOICE: str = ""

    def __init__(self, config: Dict[str, Any] = None) -> None:
        super().__init__(config)
        self.timeout = float(self._config.get("timeout", DEFAULT_TTS_TIMEOUT))
        self.api_key = self._resolve_api_key()
        self.default_voice = self._config.get("defaultVoice") or self.DEFAULT_VOICE

    def _resolve_api_key(self) -> str:
        key = resolve_env_var(self._config.get("apiKey"))
        if key and not key.startswith("${"):
            return key
        if self.API_KEY_ENV:
            return os.getenv(self.API_KEY_ENV, "")
        return ""

    @abstractmethod
    def synthesize(
        self,
        text: str,
        voice: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        """Convert text to a base64-encoded audio string (never empty)."""
        pass

    @abstractmethod
    def list_voices(self) -> List[str]:
        """Return list of known voice IDs."""
        pass

    def list_voices_detailed(self) -> List[TTSVoice]:
        return [TTSVoice(id=v, name=v) for v in self.list_voices()]

    def validate_text(self, text: str) -> None:
        if text is None:
            raise TTSError(self.provider_id, "Text cannot be None")
        if not isinstance(text, str):
            raise TTSError(self.provider_id, f"Text must be str, got {type(text).__name__}")
        if not text.strip():
            raise TTSError(self.provider_id, "Text cannot be empty or whitespace-only")

    def check_cancelled(self, cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise DispatchCancelled(self.provider_id, "speech synthesis cancelled")

    def health_check(self) -> Dict[str, Any]:
        """Synthesize a one-word sample. Blocking; diagnostics only."""
        if not self.is_available():
            return {"ok": False, "latency_ms": 0, "detail": "credentials not configured"}
        t = time.time()
        try:
            self.synthesize("Test")
            return {"ok": True, "latency_ms": int((time.time() - t) * 1000), "detail": "reachable"}
        except Exception as exc:
            return {"ok": False, "latency_ms": int((time.time() - t) * 1000), "detail": str(exc)}

    def is_available(self) -> bool:
        return bool(self.api_key)

    def get_info(self) -> Dict[str, Any]:
        return {
            "name": self._config.get("name", self.__class__.__name__),
            "provider_id": self.provider_id,
            "status": "active" if self.is_available() else "inactive",
            "available": self.is_available(),
            "default_voice": self.default_voice,
            "audio_format": "mp3",
        }


__all__ = ["TTSProvider", "TTSVoice", "TTSError"]
