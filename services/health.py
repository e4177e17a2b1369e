"""
Health check logic for liveness and readiness checks.

Liveness  (/health/live) : is the process running?
Readiness (/health/ready): can it route questions? (config loaded, and each
                            pool has at least one usable provider with a
                            registered adapter)

Checks are synchronous and informational; they never gate a request.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import providers.llm  # noqa: F401  (registers the vendor adapters)
import providers.tts  # noqa: F401  (registers the speech engines)
from config.snapshot import ConfigSnapshot, ConfigurationError
from providers.definition import QuestionType, materialize
from providers.registry import ProviderType, registry

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    healthy: bool
    message: str
    details: Optional[Dict] = field(default=None)


class HealthChecker:
    """Liveness and readiness health checks."""

    def __init__(self, store=None):
        self.start_time = time.time()
        self._store = store

    def liveness(self) -> CheckResult:
        """Liveness check: always healthy if the process is alive."""
        return CheckResult(
            healthy=True,
            message="Process is running",
            details={"uptime_seconds": round(time.time() - self.start_time, 1)},
        )

    def readiness(self) -> CheckResult:
        """Readiness check: healthy only when config is loaded and both pools are usable."""
        checks: Dict[str, Dict] = {}

        try:
            snapshot = self._store.current()
        except ConfigurationError as exc:
            checks["config"] = {"healthy": False, "message": str(exc)}
            return CheckResult(healthy=False, message="Configuration not loaded", details=checks)

        checks["config"] = CheckResult(
            healthy=True,
            message=f"Loaded from {snapshot.source}",
            details=snapshot.stats(),
        ).__dict__

        all_ok = True
        for question_type in QuestionType:
            result = check_pool(snapshot, question_type)
            checks[question_type.pool_key] = result.__dict__
            if not result.healthy:
                all_ok = False

        return CheckResult(
            healthy=all_ok,
            message="All checks passed" if all_ok else "One or more checks failed",
            details=checks,
        )


# ---------------------------------------------------------------------------
# Individual check helpers
# ---------------------------------------------------------------------------

def describe_pool(snapshot: ConfigSnapshot, question_type: QuestionType) -> List[Dict]:
    """Per-provider view of a pool: definition, usability, adapter presence."""
    rows = []
    for name, entry in snapshot.pool(question_type).items():
        definition = materialize(name, entry, question_type)
        row = definition.as_dict()
        row["usable"] = definition.is_usable()
        row["adapter_registered"] = registry.is_registered(ProviderType.LLM, name)
        rows.append(row)
    return rows


def check_pool(snapshot: ConfigSnapshot, question_type: QuestionType) -> CheckResult:
    """Check that at least one provider in the pool can be dispatched."""
    rows = describe_pool(snapshot, question_type)
    ready = [r["name"] for r in rows if r["usable"] and r["adapter_registered"]]
    if not ready:
        return CheckResult(
            healthy=False,
            message=f"No usable provider in {question_type.pool_key}",
            details={"providers": [r["name"] for r in rows]},
        )
    return CheckResult(
        healthy=True,
        message=f"{len(ready)} usable provider(s)",
        details={"providers": ready},
    )


def list_adapters() -> Dict[str, List[Dict]]:
    """Every registered adapter and speech engine, keyed by provider type."""
    return {t.value: registry.list_providers(t, include_unavailable=True) for t in ProviderType}
