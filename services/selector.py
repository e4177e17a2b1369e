"""
services/selector.py — Weighted provider selection

Picks one provider from the pool serving a question type. Each enabled entry
gets probability weight / total_weight; the draw walks the pool in file order
and keeps the first entry whose running total exceeds the random number.

The random source is injectable so tests can seed it. The default is
random.SystemRandom(), which is safe to share between threads.

Usage:
    from services.selector import ProviderSelector

    selector = ProviderSelector(config_store)
    definition = selector.select(QuestionType.SIMPLE_AUDIO)
"""

import logging
import random
import threading
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from config.snapshot import ConfigSnapshot
from providers.base import NoProviderAvailableError
from providers.definition import ProviderDefinition, QuestionType, entry_enabled, materialize

logger = logging.getLogger(__name__)

# Probability mass for an entry that omits `weight`. Loaded snapshots always
# carry one; this only applies to snapshots built without validation.
SELECTION_DEFAULT_WEIGHT = 10


def _enabled_entries(pool: Mapping[str, Mapping[str, Any]]) -> List[Tuple[str, Mapping[str, Any]]]:
    return [(name, entry) for name, entry in pool.items() if entry_enabled(entry)]


def _selection_weight(entry: Mapping[str, Any]) -> int:
    return int(entry.get("weight", SELECTION_DEFAULT_WEIGHT))


class ProviderSelector:
    """Weighted random choice over the enabled providers of a pool."""

    def __init__(self, store=None, rng: Optional[random.Random] = None):
        """
        Args:
            store: Object with a current() method returning a ConfigSnapshot
                   (config.loader.ConfigStore). Optional when every call
                   passes a snapshot explicitly.
            rng:   Random source; defaults to random.SystemRandom().
        """
        self._store = store
        self._rng = rng or random.SystemRandom()
        self._rng_lock = threading.Lock()
        self._stats_lock = threading.Lock()
        self._counts: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))

    def _snapshot(self, snapshot: Optional[ConfigSnapshot]) -> ConfigSnapshot:
        if snapshot is not None:
            return snapshot
        if self._store is None:
            raise ValueError("ProviderSelector needs a config store or an explicit snapshot")
        return self._store.current()

    def select(
        self,
        question_type: QuestionType,
        snapshot: Optional[ConfigSnapshot] = None,
    ) -> ProviderDefinition:
        """Return a freshly materialized definition for one weighted pick.

        Raises:
            NoProviderAvailableError: the pool has no enabled entry.
        """
        snapshot = self._snapshot(snapshot)
        candidates = _enabled_entries(snapshot.pool(question_type))
        if not candidates:
            raise NoProviderAvailableError(question_type.pool_key)

        total = sum(_selection_weight(entry) for _, entry in candidates)
        if total <= 0:
            raise NoProviderAvailableError(question_type.pool_key, "all provider weights are zero")

        with self._rng_lock:
            draw = self._rng.randrange(total)

        chosen_name, chosen_entry = candidates[-1]
        cumulative = 0
        for name, entry in candidates:
            cumulative += _selection_weight(entry)
            if draw < cumulative:
                chosen_name, chosen_entry = name, entry
                break

        definition = materialize(chosen_name, chosen_entry, question_type)
        self._record(question_type, chosen_name, snapshot)
        if snapshot.log_selections:
            logger.info(
                "[AI_SELECTION] type=%s provider=%s weight=%d/%d",
                question_type.value,
                chosen_name,
                _selection_weight(chosen_entry),
                total,
            )
        return definition

    def fallback_candidates(
        self,
        question_type: QuestionType,
        exclude: Iterable[str] = (),
        snapshot: Optional[ConfigSnapshot] = None,
    ) -> List[ProviderDefinition]:
        """Remaining enabled providers, best first (priority asc, weight desc)."""
        snapshot = self._snapshot(snapshot)
        skip = {name.lower() for name in exclude}
        definitions = [
            materialize(name, entry, question_type)
            for name, entry in _enabled_entries(snapshot.pool(question_type))
            if name.lower() not in skip
        ]
        definitions.sort(key=lambda d: (d.priority, -d.weight))
        return definitions

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def _record(self, question_type: QuestionType, name: str, snapshot: ConfigSnapshot) -> None:
        if not snapshot.statistics_enabled:
            return
        with self._stats_lock:
            self._counts[question_type.value][name] += 1

    def selection_statistics(self) -> Dict[str, Dict[str, int]]:
        """Copy of the per-(type, provider) selection counters."""
        with self._stats_lock:
            return {qtype: dict(per_provider) for qtype, per_provider in self._counts.items()}

    def reset_statistics(self) -> None:
        with self._stats_lock:
            self._counts.clear()


__all__ = ["ProviderSelector", "SELECTION_DEFAULT_WEIGHT"]
