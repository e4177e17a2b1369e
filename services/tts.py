"""
services/tts.py — Unified TTS Service

Single entry point for turning a text answer into speech. The engine is
picked by the provider definition's ttsProvider (case-insensitive) and its
settings come from the ttsServices block of the current config snapshot.

Engines:
  - azure : Azure Speech, SSML request, MP3 body
  - google: Google Cloud TTS, JSON request, base64 audioContent

Usage:
    from services.tts import TTSService

    audio_b64 = TTSService(config_store).synthesize(text, definition)
"""

import logging
import threading
import time
from typing import Any, Dict, Optional

import providers.tts  # noqa: F401  (registers the speech engines)
from config.snapshot import ConfigSnapshot
from providers.definition import ProviderDefinition
from providers.registry import ProviderRegistry, ProviderType, registry as default_registry
from providers.tts.base import TTSError
from services.speech_normalizer import SpeechNormalizer, get_normalizer

logger = logging.getLogger(__name__)


class TTSService:
    """Voices text answers through the configured engine."""

    def __init__(
        self,
        store=None,
        provider_registry: Optional[ProviderRegistry] = None,
        normalizer: Optional[SpeechNormalizer] = None,
    ):
        self._store = store
        self._registry = provider_registry or default_registry
        self._normalizer = normalizer or get_normalizer()

    def _snapshot(self, snapshot: Optional[ConfigSnapshot]) -> Optional[ConfigSnapshot]:
        if snapshot is None and self._store is not None:
            return self._store.current()
        return snapshot

    def engine(self, engine_id: str, snapshot: Optional[ConfigSnapshot] = None):
        """Instantiate the engine registered under *engine_id*.

        Raises:
            TTSError: no engine id, or no engine registered under it.
        """
        if not engine_id:
            raise TTSError("tts", "No TTS engine configured for this provider")
        if not self._registry.is_registered(ProviderType.TTS, engine_id):
            raise TTSError(engine_id, f"Unknown TTS engine '{engine_id}'")
        snapshot = self._snapshot(snapshot)
        settings: Dict[str, Any] = {}
        if snapshot is not None:
            settings = dict(snapshot.tts_settings(engine_id))
            settings.setdefault("timeout", snapshot.timeout_seconds)
        return self._registry.get_provider(ProviderType.TTS, engine_id, settings)

    def synthesize(
        self,
        text: str,
        definition: ProviderDefinition,
        snapshot: Optional[ConfigSnapshot] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        """Return base64 audio for *text* using definition.tts_provider.

        Raises:
            TTSError: unknown engine, vendor failure, or empty result.
        """
        engine = self.engine(definition.tts_provider, snapshot)
        spoken = self._normalizer.normalize(text)
        if not spoken:
            raise TTSError(definition.tts_provider, "Nothing to synthesize after normalization")

        start = time.time()
        audio_b64 = engine.synthesize(spoken, definition.voice, cancel_event)
        if not audio_b64:
            raise TTSError(definition.tts_provider, "Engine returned empty audio")
        logger.info(
            "[TTS] %s voiced %d chars for %s in %dms",
            definition.tts_provider,
            len(spoken),
            definition.name,
            int((time.time() - start) * 1000),
        )
        return audio_b64

    def is_available(self, engine_id: str, snapshot: Optional[ConfigSnapshot] = None) -> bool:
        """Synthesize a sample word through the engine. Blocking; diagnostics only."""
        try:
            engine = self.engine(engine_id, snapshot)
        except TTSError as exc:
            logger.warning("[TTS] %s", exc)
            return False
        result = engine.health_check()
        if not result["ok"]:
            logger.warning("[TTS] %s health check failed: %s", engine_id, result["detail"])
        return bool(result["ok"])


__all__ = ["TTSService"]
