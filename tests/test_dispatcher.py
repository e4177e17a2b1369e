"""
Tests for services/dispatcher.py — adapter lookup, time budget, error wrapping.
"""

import threading
import time

import pytest

from config.snapshot import ConfigSnapshot
from providers.base import DispatchError, DispatchTimeoutError
from providers.definition import ProviderDefinition, QuestionType
from providers.llm.base import LLMError, LLMResponse
from providers.registry import ProviderRegistry, ProviderType
from services.dispatcher import CallExpired, Dispatcher, run_bounded


class _EchoAdapter:
    def __init__(self, config=None):
        self.config = config or {}

    def complete(self, question, definition, cancel_event=None):
        return LLMResponse(
            content=f"echo:{question}", model=definition.model or "m",
            provider=definition.name, response_format="text",
        )


class _SlowAdapter:
    seen_events = []

    def __init__(self, config=None):
        self.config = config or {}

    def complete(self, question, definition, cancel_event=None):
        _SlowAdapter.seen_events.append(cancel_event)
        cancel_event.wait(5)
        return LLMResponse(content="late", model="m", provider=definition.name)


class _FailingAdapter:
    def __init__(self, config=None):
        pass

    def complete(self, question, definition, cancel_event=None):
        raise LLMError(definition.name, "HTTP 500")


class _ConfigCapture:
    last_config = None

    def __init__(self, config=None):
        _ConfigCapture.last_config = config

    def complete(self, question, definition, cancel_event=None):
        return LLMResponse(content="ok", model="m", provider=definition.name)


@pytest.fixture
def reg():
    r = ProviderRegistry()
    r.register(ProviderType.LLM, "echo", _EchoAdapter)
    r.register(ProviderType.LLM, "slow", _SlowAdapter)
    r.register(ProviderType.LLM, "failing", _FailingAdapter)
    r.register(ProviderType.LLM, "capture", _ConfigCapture)
    return r


@pytest.fixture
def fast_snapshot(make_config):
    data = make_config()
    data["aiSelectionConfig"]["timeoutMs"] = 200
    return ConfigSnapshot.from_dict(data)


def _definition(name):
    return ProviderDefinition(name=name, question_type=QuestionType.COMPLEX_TEXT, model="m")


def test_dispatch_returns_adapter_response(reg, snapshot):
    response = Dispatcher(provider_registry=reg).dispatch("salut", _definition("echo"), snapshot)
    assert response.content == "echo:salut"
    assert response.provider == "echo"


def test_lookup_is_case_insensitive(reg, snapshot):
    response = Dispatcher(provider_registry=reg).dispatch("q", _definition("ECHO"), snapshot)
    assert response.content == "echo:q"


def test_unknown_provider_raises_dispatch_error(reg, snapshot):
    with pytest.raises(DispatchError) as exc_info:
        Dispatcher(provider_registry=reg).dispatch("q", _definition("nobody"), snapshot)
    assert exc_info.value.provider_name == "nobody"
    assert not isinstance(exc_info.value, DispatchTimeoutError)


def test_adapter_failure_is_wrapped_with_cause(reg, snapshot):
    with pytest.raises(DispatchError) as exc_info:
        Dispatcher(provider_registry=reg).dispatch("q", _definition("failing"), snapshot)
    assert isinstance(exc_info.value.__cause__, LLMError)
    assert "HTTP 500" in str(exc_info.value)


def test_timeout_is_bounded_and_signals_cancellation(reg, fast_snapshot):
    _SlowAdapter.seen_events.clear()
    start = time.monotonic()
    with pytest.raises(DispatchTimeoutError) as exc_info:
        Dispatcher(provider_registry=reg).dispatch("q", _definition("slow"), fast_snapshot)
    elapsed = time.monotonic() - start

    assert elapsed < 0.2 + 0.5
    assert exc_info.value.timeout_ms == 200
    assert exc_info.value.provider_name == "slow"
    assert isinstance(_SlowAdapter.seen_events[0], threading.Event)
    assert _SlowAdapter.seen_events[0].is_set()


def test_timeout_is_a_dispatch_error(reg, fast_snapshot):
    with pytest.raises(DispatchError):
        Dispatcher(provider_registry=reg).dispatch("q", _definition("slow"), fast_snapshot)


def test_adapter_receives_budget_and_tts_settings(reg, snapshot):
    Dispatcher(provider_registry=reg).dispatch("q", _definition("capture"), snapshot)
    config = _ConfigCapture.last_config
    assert config["timeout"] == pytest.approx(snapshot.timeout_ms / 1000.0)
    assert "azure" in config["tts_services"]


def test_snapshot_taken_from_store(reg, store):
    response = Dispatcher(store, provider_registry=reg).dispatch("q", _definition("echo"))
    assert response.content == "echo:q"


# ---------------------------------------------------------------------------
# run_bounded
# ---------------------------------------------------------------------------

def test_run_bounded_returns_result():
    assert run_bounded(lambda cancel_event: 42, 1.0, "t") == 42


def test_run_bounded_reraises_call_error():
    def _boom(cancel_event):
        raise LLMError("x", "boom")

    with pytest.raises(LLMError):
        run_bounded(_boom, 1.0, "t")


def test_run_bounded_expires_and_sets_event():
    seen = []

    def _slow(cancel_event):
        seen.append(cancel_event)
        cancel_event.wait(5)

    start = time.monotonic()
    with pytest.raises(CallExpired):
        run_bounded(_slow, 0.1, "t")
    assert time.monotonic() - start < 0.6
    assert seen[0].is_set()


def test_run_bounded_with_spent_budget_does_not_wait():
    def _slow(cancel_event):
        cancel_event.wait(5)

    start = time.monotonic()
    with pytest.raises(CallExpired):
        run_bounded(_slow, -1.0, "t")
    assert time.monotonic() - start < 0.5
