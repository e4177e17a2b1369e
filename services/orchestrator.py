"""
services/orchestrator.py — Question answering pipeline

classify -> select -> dispatch -> (voice the text answer if needed)

One snapshot is captured per question and used for every step, so a config
reload in the middle of a request never mixes old and new settings.

Fallback: when the snapshot enables fallbackOnError, a failed dispatch or
speech step moves on to the next provider of the same pool in priority order,
at most maxRetries extra attempts. The last error is re-raised when every
attempt fails.

Each attempt has one timeoutMs budget covering the completion and, for text
answers, the speech step. Both run on worker threads; an expired speech step
raises DispatchTimeoutError like an expired completion.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

from config.snapshot import ConfigSnapshot
from providers.base import DispatchError, DispatchTimeoutError
from providers.definition import ProviderDefinition, QuestionType
from providers.tts.base import TTSError
from services.classifier import classify_question
from services.dispatcher import CallExpired, Dispatcher, run_bounded
from services.selector import ProviderSelector
from services.tts import TTSService

logger = logging.getLogger(__name__)


@dataclass
class OrchestratedAnswer:
    question_type: QuestionType
    provider: str
    audio_b64: Optional[str] = None
    text: Optional[str] = None
    attempts: List[str] = field(default_factory=list)
    latency_ms: int = 0

    def to_dict(self) -> dict:
        return {
            "question_type": self.question_type.value,
            "provider": self.provider,
            "audio_b64": self.audio_b64,
            "text": self.text,
            "attempts": list(self.attempts),
            "latency_ms": self.latency_ms,
        }


class ResponseOrchestrator:
    """Ties the classifier, selector, dispatcher and TTS service together."""

    def __init__(
        self,
        store,
        selector: Optional[ProviderSelector] = None,
        dispatcher: Optional[Dispatcher] = None,
        tts_service: Optional[TTSService] = None,
    ):
        self._store = store
        self.selector = selector or ProviderSelector(store)
        self.dispatcher = dispatcher or Dispatcher(store)
        self.tts = tts_service or TTSService(store)

    def answer(self, question: str) -> OrchestratedAnswer:
        """Answer one question.

        Raises:
            ValueError:               empty question.
            NoProviderAvailableError: the pool has no enabled provider.
            DispatchError / DispatchTimeoutError / TTSError: every attempt failed.
        """
        if not question or not question.strip():
            raise ValueError("question must be a non-empty string")

        snapshot = self._store.current()
        start = time.time()
        question_type = classify_question(question, snapshot)
        definition = self.selector.select(question_type, snapshot)

        attempts: List[str] = []
        candidates: Optional[List[ProviderDefinition]] = None
        while True:
            attempts.append(definition.name)
            try:
                answer = self._attempt(question, question_type, definition, snapshot)
            except (DispatchError, TTSError) as exc:
                retries_used = len(attempts) - 1
                if not snapshot.fallback_on_error or retries_used >= snapshot.max_retries:
                    self._log_stats(question_type, definition.name, attempts, start, snapshot, ok=False)
                    raise
                if candidates is None:
                    candidates = self.selector.fallback_candidates(question_type, attempts, snapshot)
                else:
                    candidates = [c for c in candidates if c.name not in attempts]
                if not candidates:
                    self._log_stats(question_type, definition.name, attempts, start, snapshot, ok=False)
                    raise
                logger.warning("[FALLBACK] %s failed (%s); trying %s", definition.name, exc, candidates[0].name)
                definition = candidates.pop(0)
                continue

            answer.attempts = attempts
            answer.latency_ms = int((time.time() - start) * 1000)
            self._log_stats(question_type, definition.name, attempts, start, snapshot, ok=True)
            return answer

    def _attempt(
        self,
        question: str,
        question_type: QuestionType,
        definition: ProviderDefinition,
        snapshot: ConfigSnapshot,
    ) -> OrchestratedAnswer:
        attempt_start = time.time()
        response = self.dispatcher.dispatch(question, definition, snapshot)
        if response.is_audio:
            return OrchestratedAnswer(question_type, definition.name, audio_b64=response.content)

        text = response.content
        if definition.needs_tts:
            audio = self._voice(text, definition, snapshot, attempt_start)
            return OrchestratedAnswer(question_type, definition.name, audio_b64=audio, text=text)
        return OrchestratedAnswer(question_type, definition.name, text=text)

    def _voice(
        self,
        text: str,
        definition: ProviderDefinition,
        snapshot: ConfigSnapshot,
        attempt_start: float,
    ) -> str:
        """Speech step on a worker thread, bounded by what is left of the attempt budget."""
        remaining = snapshot.timeout_seconds - (time.time() - attempt_start)
        try:
            return run_bounded(
                lambda cancel_event: self.tts.synthesize(text, definition, snapshot, cancel_event),
                remaining,
                f"tts-{definition.tts_provider}",
            )
        except CallExpired:
            logger.warning(
                "[TTS] %s for %s exceeded the %dms budget; cancellation signalled",
                definition.tts_provider,
                definition.name,
                snapshot.timeout_ms,
            )
            raise DispatchTimeoutError(definition.name, snapshot.timeout_ms)

    def _log_stats(self, question_type, provider, attempts, start, snapshot, ok) -> None:
        if not snapshot.statistics_enabled:
            return
        logger.info(
            "[STATS] type=%s provider=%s attempts=%d ok=%s latency=%dms",
            question_type.value,
            provider,
            len(attempts),
            ok,
            int((time.time() - start) * 1000),
        )


__all__ = ["ResponseOrchestrator", "OrchestratedAnswer"]
