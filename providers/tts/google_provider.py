"""
Google Cloud Text-to-Speech engine (JSON).

The request carries input text, a voice block (language, name, gender) and
an audio-config block (encoding, speaking rate, pitch). The response already
contains base64 audio in `audioContent`, which is returned as-is.

Settings (config/ai_providers.yaml -> ttsServices.google):
    apiKey, defaultVoice, speed, pitch, languageCode, gender
Key fallback: GOOGLE_TTS_API_KEY env var.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Dict, List, Optional

import httpx

from providers.registry import ProviderType, registry
from providers.tts.base import TTSError, TTSProvider

logger = logging.getLogger(__name__)

GOOGLE_TTS_URL = "https://texttospeech.googleapis.com/v1/text:synthesize"

AVAILABLE_VOICES = [
    "fr-FR-Wavenet-C",   # Female (default)
    "fr-FR-Wavenet-A",   # Female
    "fr-FR-Wavenet-B",   # Male
    "fr-FR-Wavenet-D",   # Male
    "fr-FR-Neural2-A",
]


def build_payload(
    text: str,
    voice: str,
    language: str = "fr-FR",
    gender: str = "FEMALE",
    speaking_rate: float = 1.0,
    pitch: float = 0.0,
) -> Dict[str, Any]:
    """Return the JSON request body for one synthesis request."""
    return {
        "input": {"text": text},
        "voice": {
            "languageCode": language,
            "name": voice,
            "ssmlGender": gender,
        },
        "audioConfig": {
            "audioEncoding": "MP3",
            "speakingRate": speaking_rate,
            "pitch": pitch,
            "volumeGainDb": 0.0,
        },
    }


def _as_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


class GoogleTTSProvider(TTSProvider):
    """Google Cloud TTS REST engine."""

    provider_id = "google"
    API_KEY_ENV = "GOOGLE_TTS_API_KEY"
    DEFAULT_VOICE = "fr-FR-Wavenet-C"

    def __init__(self, config: Dict[str, Any] = None) -> None:
        super().__init__(config)
        self.url = self._config.get("endpoint") or GOOGLE_TTS_URL
        self.speaking_rate = _as_float(self._config.get("speed"), 1.0)
        self.pitch = _as_float(self._config.get("pitch"), 0.0)
        self.language = self._config.get("languageCode", "fr-FR")
        self.gender = self._config.get("gender", "FEMALE")

    def synthesize(
        self,
        text: str,
        voice: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        self.validate_text(text)
        if not self.api_key:
            raise TTSError(self.provider_id, "Google TTS API key not set")
        self.check_cancelled(cancel_event)

        voice = voice or self.default_voice
        payload = build_payload(text, voice, self.language, self.gender, self.speaking_rate, self.pitch)

        t = time.time()
        logger.info("[Google] Requesting TTS: '%s' voice=%s", text[:60], voice)
        try:
            with httpx.Client(timeout=httpx.Timeout(self.timeout, connect=min(10.0, self.timeout))) as client:
                resp = client.post(self.url, params={"key": self.api_key}, json=payload)
        except httpx.HTTPError as exc:
            raise TTSError(self.provider_id, f"request failed: {exc}") from exc

        if resp.status_code != 200:
            raise TTSError(self.provider_id, f"API error {resp.status_code}: {resp.text[:200]}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise TTSError(self.provider_id, f"response is not JSON: {exc}") from exc

        audio = data.get("audioContent") if isinstance(data, dict) else None
        if not audio:
            raise TTSError(self.provider_id, "no audioContent in response")

        elapsed = int((time.time() - t) * 1000)
        logger.info("[Google] Generated %d base64 chars in %dms", len(audio), elapsed)
        return audio

    def list_voices(self) -> List[str]:
        return AVAILABLE_VOICES.copy()

    def get_info(self) -> Dict[str, Any]:
        info = super().get_info()
        info["name"] = self._config.get("name", "Google Cloud TTS")
        info["format"] = "json"
        return info


# Auto-register when this module is imported
registry.register(ProviderType.TTS, "google", GoogleTTSProvider)
