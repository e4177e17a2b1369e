"""
Azure Cognitive Services speech engine (SSML).

Builds a <speak> envelope with the voice name and a <prosody> element
carrying rate and pitch, requests compressed MP3 output, and base64-encodes
the returned bytes.

Settings (config/ai_providers.yaml -> ttsServices.azure):
    region, apiKey, defaultVoice, speed, pitch, languageCode, naturalPauses
Key fallback: AZURE_SPEECH_KEY env var. Region fallback: AZURE_SPEECH_REGION.
"""

from __future__ import annotations

import base64
import logging
import os
import threading
import time
from typing import Any, Dict, List, Optional
from xml.sax.saxutils import escape, quoteattr

import httpx

from providers.definition import resolve_env_var
from providers.registry import ProviderType, registry
from providers.tts.base import TTSError, TTSProvider
from services.speech_normalizer import add_natural_pauses

logger = logging.getLogger(__name__)

AZURE_TTS_URL = "https://{region}.tts.speech.microsoft.com/cognitiveservices/v1"
OUTPUT_FORMAT = "audio-16khz-128kbitrate-mono-mp3"

AVAILABLE_VOICES = [
    "fr-FR-DeniseNeural",    # Female (default)
    "fr-FR-HenriNeural",     # Male
    "fr-FR-EloiseNeural",    # Female, child
    "fr-FR-VivienneMultilingualNeural",
]

_SSML_ENTITIES = {'"': "&quot;", "'": "&apos;"}


def build_ssml(
    text: str,
    voice: str,
    rate: Any = 1.0,
    pitch: Any = "default",
    language: str = "fr-FR",
    natural_pauses: bool = False,
) -> str:
    """Return the SSML document for one synthesis request."""
    body = escape(text, _SSML_ENTITIES)
    if natural_pauses:
        body = add_natural_pauses(body)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<speak version="1.0" xmlns="http://www.w3.org/2001/10/synthesis" xml:lang={quoteattr(language)}>'
        f"<voice name={quoteattr(voice)}>"
        f"<prosody rate={quoteattr(str(rate))} pitch={quoteattr(str(pitch))}>"
        f"{body}"
        "</prosody></voice></speak>"
    )


class AzureTTSProvider(TTSProvider):
    """Azure Speech REST engine."""

    provider_id = "azure"
    API_KEY_ENV = "AZURE_SPEECH_KEY"
    DEFAULT_VOICE = "fr-FR-DeniseNeural"

    def __init__(self, config: Dict[str, Any] = None) -> None:
        super().__init__(config)
        self.region = (
            resolve_env_var(self._config.get("region"))
            or os.getenv("AZURE_SPEECH_REGION", "")
        )
        self.rate = self._config.get("speed", 1.0)
        self.pitch = self._config.get("pitch", "default")
        self.language = self._config.get("languageCode", "fr-FR")
        self.natural_pauses = bool(self._config.get("naturalPauses", False))

    @property
    def url(self) -> str:
        return AZURE_TTS_URL.format(region=self.region)

    def synthesize(
        self,
        text: str,
        voice: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        self.validate_text(text)
        if not self.api_key:
            raise TTSError(self.provider_id, "Azure speech key not set")
        if not self.region:
            raise TTSError(self.provider_id, "Azure speech region not set")
        self.check_cancelled(cancel_event)

        voice = voice or self.default_voice
        ssml = build_ssml(text, voice, self.rate, self.pitch, self.language, self.natural_pauses)
        headers = {
            "Content-Type": "application/ssml+xml",
            "Ocp-Apim-Subscription-Key": self.api_key,
            "X-Microsoft-OutputFormat": OUTPUT_FORMAT,
            "User-Agent": "voice-router",
        }

        t = time.time()
        logger.info("[Azure] Requesting TTS: '%s' voice=%s", text[:60], voice)
        try:
            with httpx.Client(timeout=httpx.Timeout(self.timeout, connect=min(10.0, self.timeout))) as client:
                resp = client.post(self.url, content=ssml.encode("utf-8"), headers=headers)
        except httpx.HTTPError as exc:
            raise TTSError(self.provider_id, f"request failed: {exc}") from exc

        if resp.status_code != 200:
            raise TTSError(self.provider_id, f"API error {resp.status_code}: {resp.text[:200]}")
        if not resp.content:
            raise TTSError(self.provider_id, "empty audio body")

        elapsed = int((time.time() - t) * 1000)
        logger.info("[Azure] Generated %d bytes in %dms", len(resp.content), elapsed)
        return base64.b64encode(resp.content).decode("utf-8")

    def list_voices(self) -> List[str]:
        return AVAILABLE_VOICES.copy()

    def is_available(self) -> bool:
        return bool(self.api_key and self.region)

    def get_info(self) -> Dict[str, Any]:
        info = super().get_info()
        info["name"] = self._config.get("name", "Azure Speech")
        info["region"] = self.region
        info["format"] = "ssml"
        return info


# Auto-register when this module is imported
registry.register(ProviderType.TTS, "azure", AzureTTSProvider)
