"""
services/dispatcher.py — Time-bounded adapter dispatch

Looks up the adapter registered under the provider's name and runs its
complete() call on a daemon thread. The caller waits on a result queue for at
most the snapshot timeout. On timeout the per-call cancellation event is set
(the adapter stops between vendor steps) and DispatchTimeoutError is raised.
Adapter failures come back as DispatchError with the original cause chained.
run_bounded() is the shared worker-thread mechanism; the orchestrator uses it
for the speech step too.

No retry and no fallback here; that is the orchestrator's job.
"""

import logging
import queue
import threading
import time
from typing import Any, Callable, Optional

import providers.llm  # noqa: F401  (registers the vendor adapters)
import providers.tts  # noqa: F401  (registers the speech engines)
from config.snapshot import ConfigSnapshot, DEFAULT_TIMEOUT_MS
from providers.base import DispatchError, DispatchTimeoutError
from providers.definition import ProviderDefinition
from providers.llm.base import LLMResponse
from providers.registry import ProviderRegistry, ProviderType, registry as default_registry

logger = logging.getLogger(__name__)


class CallExpired(Exception):
    """run_bounded() gave up waiting; the worker's cancel event has been set."""


def run_bounded(call: Callable[[threading.Event], Any], timeout_s: float, name: str) -> Any:
    """Run call(cancel_event) on a daemon thread and wait at most timeout_s.

    Returns the call's result and re-raises whatever it raised. On expiry the
    cancel event is set, the worker is abandoned and CallExpired is raised.
    """
    cancel_event = threading.Event()
    results: queue.Queue = queue.Queue(maxsize=1)

    def _run():
        try:
            results.put(("ok", call(cancel_event)))
        except Exception as exc:
            results.put(("error", exc))

    threading.Thread(target=_run, name=name, daemon=True).start()
    try:
        status, payload = results.get(timeout=max(timeout_s, 0.0))
    except queue.Empty:
        cancel_event.set()
        raise CallExpired(name)
    if status == "error":
        raise payload
    return payload


class Dispatcher:
    """Runs one adapter call under a time budget."""

    def __init__(self, store=None, provider_registry: Optional[ProviderRegistry] = None):
        self._store = store
        self._registry = provider_registry or default_registry

    def _adapter_for(self, definition: ProviderDefinition, snapshot: Optional[ConfigSnapshot], budget_s: float):
        if not self._registry.is_registered(ProviderType.LLM, definition.name):
            raise DispatchError(definition.name, f"No adapter registered for provider '{definition.name}'")
        config = {"timeout": budget_s}
        if snapshot is not None:
            config["tts_services"] = dict(snapshot.tts_services)
        return self._registry.get_provider(ProviderType.LLM, definition.name, config)

    def dispatch(
        self,
        question: str,
        definition: ProviderDefinition,
        snapshot: Optional[ConfigSnapshot] = None,
    ) -> LLMResponse:
        """Answer *question* with the adapter for *definition*.

        Raises:
            DispatchError:        unknown provider, or the adapter failed.
            DispatchTimeoutError: no result within the configured timeout.
        """
        if snapshot is None and self._store is not None:
            snapshot = self._store.current()
        timeout_ms = snapshot.timeout_ms if snapshot is not None else DEFAULT_TIMEOUT_MS
        budget_s = timeout_ms / 1000.0

        adapter = self._adapter_for(definition, snapshot, budget_s)
        start = time.time()
        try:
            response = run_bounded(
                lambda cancel_event: adapter.complete(question, definition, cancel_event),
                budget_s,
                f"dispatch-{definition.name}",
            )
        except CallExpired:
            logger.warning(
                "[DISPATCH] %s timed out after %dms; cancellation signalled",
                definition.name,
                timeout_ms,
            )
            raise DispatchTimeoutError(definition.name, timeout_ms)
        except Exception as exc:
            elapsed = int((time.time() - start) * 1000)
            logger.warning("[DISPATCH] %s failed after %dms: %s", definition.name, elapsed, exc)
            raise DispatchError(definition.name, f"adapter call failed: {exc}") from exc

        logger.info(
            "[DISPATCH] %s answered in %dms (format=%s)",
            definition.name,
            int((time.time() - start) * 1000),
            response.response_format,
        )
        return response


__all__ = ["Dispatcher", "run_bounded", "CallExpired"]
