"""
Tests for providers/definition.py — ProviderDefinition, materialize(), env placeholders.
"""

import dataclasses

import pytest

from providers.definition import (
    ProviderDefinition,
    QuestionType,
    materialize,
    resolve_env_var,
)


class TestResolveEnvVar:
    def test_none_passthrough(self):
        assert resolve_env_var(None) is None

    def test_literal_passthrough(self):
        assert resolve_env_var("sk-literal") == "sk-literal"

    def test_whole_placeholder_resolves(self, monkeypatch):
        monkeypatch.setenv("VR_TEST_KEY", "secret")
        assert resolve_env_var("${VR_TEST_KEY}") == "secret"

    def test_whole_placeholder_unset_is_none(self, monkeypatch):
        monkeypatch.delenv("VR_TEST_KEY", raising=False)
        assert resolve_env_var("${VR_TEST_KEY}") is None

    def test_embedded_placeholder(self, monkeypatch):
        monkeypatch.setenv("VR_REGION", "westeurope")
        assert resolve_env_var("https://${VR_REGION}.example") == "https://westeurope.example"


class TestMaterialize:
    def test_defaults_applied(self):
        d = materialize("claude", {"apiKey": "k", "model": "m"}, QuestionType.COMPLEX_TEXT)
        assert d.priority == 999
        assert d.weight == 1
        assert d.max_tokens == 150
        assert d.temperature == pytest.approx(0.7)
        assert d.mode == "api"
        assert d.response_format == "text"
        assert d.enabled is True

    def test_audio_pool_defaults_to_audio_format(self):
        d = materialize("openai_realtime", {"apiKey": "k", "model": "m"}, QuestionType.SIMPLE_AUDIO)
        assert d.response_format == "audio"
        assert d.is_audio_capable

    def test_fields_copied(self):
        entry = {
            "apiKey": "k", "model": "m", "priority": 2, "weight": 30, "maxTokens": 400,
            "temperature": 0.2, "voice": "alloy", "responseFormat": "text",
            "ttsProvider": "azure", "endpoint": "https://x", "headers": {"X-A": 1},
            "systemPrompt": "Be brief",
        }
        d = materialize("mistral", entry, QuestionType.COMPLEX_TEXT)
        assert (d.priority, d.weight, d.max_tokens) == (2, 30, 400)
        assert d.tts_provider == "azure"
        assert d.headers == {"X-A": "1"}
        assert d.system_prompt == "Be brief"

    def test_definition_is_frozen(self):
        d = materialize("claude", {"apiKey": "k", "model": "m"}, QuestionType.COMPLEX_TEXT)
        with pytest.raises(dataclasses.FrozenInstanceError):
            d.weight = 5


class TestCapabilities:
    def test_needs_tts_only_for_text_with_engine(self):
        base = dict(name="p", question_type=QuestionType.COMPLEX_TEXT, model="m")
        assert ProviderDefinition(**base, response_format="text", tts_provider="azure").needs_tts
        assert not ProviderDefinition(**base, response_format="text").needs_tts
        assert not ProviderDefinition(**base, response_format="audio", tts_provider="azure").needs_tts

    def test_resolved_api_key_unresolved_placeholder(self, monkeypatch):
        monkeypatch.delenv("VR_MISSING", raising=False)
        d = ProviderDefinition("p", QuestionType.COMPLEX_TEXT, api_key="${VR_MISSING}", model="m")
        assert d.resolved_api_key() is None

    def test_resolved_api_key_at_call_time(self, monkeypatch):
        d = ProviderDefinition("p", QuestionType.COMPLEX_TEXT, api_key="${VR_LATE}", model="m")
        monkeypatch.setenv("VR_LATE", "late-key")
        assert d.resolved_api_key() == "late-key"

    def test_as_dict_never_contains_credential(self):
        d = ProviderDefinition("p", QuestionType.COMPLEX_TEXT, api_key="sk-secret", model="m")
        assert "sk-secret" not in str(d.as_dict())
        assert "sk-secret" not in str(d)


class TestUsability:
    def _text(self, **kw):
        values = dict(name="claude", question_type=QuestionType.COMPLEX_TEXT, api_key="k",
                      model="m", priority=1, weight=1, response_format="text", tts_provider="azure")
        values.update(kw)
        return ProviderDefinition(**values)

    def test_usable_text_provider(self):
        assert self._text().is_usable()

    def test_disabled_not_usable(self):
        assert not self._text(enabled=False).is_usable()

    def test_missing_model_not_usable(self):
        assert not self._text(model="").is_usable()

    def test_zero_weight_not_usable(self):
        assert not self._text(weight=0).is_usable()

    def test_text_without_tts_not_usable(self):
        assert not self._text(tts_provider=None).is_usable()

    def test_api_mode_accepted_without_credential(self):
        d = self._text(api_key=None)
        assert d.effective_mode() == "api"
        assert d.is_usable()

    def test_direct_mode_needs_credential_and_endpoint(self):
        assert self._text(mode="direct", endpoint=None).effective_mode() is None
        assert self._text(mode="direct", api_key=None, endpoint="https://x").effective_mode() is None
        assert self._text(mode="direct", endpoint="https://x").effective_mode() == "direct"

    def test_audio_provider_usable(self):
        d = ProviderDefinition("openai_realtime", QuestionType.SIMPLE_AUDIO, api_key="k",
                               model="m", priority=1, weight=1, response_format="audio")
        assert d.is_usable()
