"""
Tests for config/snapshot.py and config/loader.py — validation, env overrides,
lazy reload with keep-old-on-failure.
"""

from pathlib import Path
from types import MappingProxyType

import pytest
import yaml

from config.loader import (
    ConfigStore,
    _apply_env_overrides,
    _cast,
    _deep_get,
    _deep_set,
    _load_yaml,
    load_snapshot,
)
from config.snapshot import (
    ConfigSnapshot,
    ConfigurationInvalidError,
    ConfigurationMissingError,
)
from providers.definition import QuestionType


def _write(path: Path, data) -> Path:
    path.write_text(yaml.safe_dump(data, allow_unicode=True), encoding="utf-8")
    return path


class _Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


# ---------------------------------------------------------------------------
# Unit: _cast / _deep_set / _deep_get
# ---------------------------------------------------------------------------

class TestCast:
    def test_bool_true_values(self):
        for val in ("true", "1", "yes", "True", "YES"):
            assert _cast(val, "bool") is True

    def test_bool_false_values(self):
        for val in ("false", "0", "no", ""):
            assert _cast(val, "bool") is False

    def test_int_cast(self):
        assert _cast("5000", int) == 5000

    def test_str_passthrough(self):
        assert _cast("hello", str) == "hello"


class TestDeepAccess:
    def test_set_creates_intermediate_dicts(self):
        data = {}
        _deep_set(data, "aiSelectionConfig.timeoutMs", 10)
        assert data == {"aiSelectionConfig": {"timeoutMs": 10}}

    def test_set_replaces_empty_section(self):
        data = {"statisticsTracking": None}
        _deep_set(data, "statisticsTracking.logSelections", False)
        assert data == {"statisticsTracking": {"logSelections": False}}

    def test_get_missing_returns_default(self):
        assert _deep_get({"a": {}}, "a.b", "dflt") == "dflt"


# ---------------------------------------------------------------------------
# Snapshot validation
# ---------------------------------------------------------------------------

class TestSnapshot:
    def test_from_dict_reads_settings(self, snapshot):
        assert snapshot.timeout_ms == 2000
        assert snapshot.fallback_on_error is True
        assert snapshot.max_retries == 2
        assert snapshot.complexity_threshold == 3
        assert "pourquoi" in snapshot.complexity_keywords
        assert snapshot.timeout_seconds == pytest.approx(2.0)

    def test_pools(self, snapshot):
        assert list(snapshot.pool(QuestionType.SIMPLE_AUDIO)) == ["openai_realtime", "gemini_live"]
        assert list(snapshot.pool(QuestionType.COMPLEX_TEXT)) == ["claude", "mistral"]

    def test_snapshot_is_read_only(self, snapshot):
        assert isinstance(snapshot.audio_providers, MappingProxyType)
        with pytest.raises(TypeError):
            snapshot.audio_providers["x"] = {}
        with pytest.raises(TypeError):
            snapshot.audio_providers["gemini_live"]["weight"] = 1

    def test_source_tree_not_shared(self, raw_config):
        snap = ConfigSnapshot.from_dict(raw_config)
        raw_config["audioProviders"]["gemini_live"]["weight"] = 99
        assert snap.audio_providers["gemini_live"]["weight"] == 40

    def test_tts_settings_case_insensitive(self, snapshot):
        assert snapshot.tts_settings("AZURE")["region"] == "westeurope"
        assert dict(snapshot.tts_settings("unknown")) == {}

    def test_defaults_when_selection_section_absent(self, raw_config):
        del raw_config["aiSelectionConfig"]
        snap = ConfigSnapshot.from_dict(raw_config)
        assert snap.timeout_ms == 5000
        assert snap.max_retries == 2
        assert snap.reload_interval_ms == 300000

    def test_missing_section(self, raw_config):
        del raw_config["ttsServices"]
        with pytest.raises(ConfigurationMissingError):
            ConfigSnapshot.from_dict(raw_config)

    @pytest.mark.parametrize("field", ["enabled", "priority", "weight", "apiKey", "model"])
    def test_missing_provider_field(self, raw_config, field):
        del raw_config["textProviders"]["claude"][field]
        with pytest.raises(ConfigurationMissingError):
            ConfigSnapshot.from_dict(raw_config)

    def test_zero_weight_rejected(self, raw_config):
        raw_config["textProviders"]["claude"]["weight"] = 0
        with pytest.raises(ConfigurationInvalidError):
            ConfigSnapshot.from_dict(raw_config)

    def test_zero_priority_rejected(self, raw_config):
        raw_config["audioProviders"]["gemini_live"]["priority"] = 0
        with pytest.raises(ConfigurationInvalidError):
            ConfigSnapshot.from_dict(raw_config)

    def test_direct_mode_without_endpoint_rejected(self, raw_config):
        raw_config["audioProviders"]["gemini_live"]["mode"] = "direct"
        with pytest.raises(ConfigurationInvalidError):
            ConfigSnapshot.from_dict(raw_config)

    def test_unknown_mode_rejected(self, raw_config):
        raw_config["audioProviders"]["gemini_live"]["mode"] = "websocket"
        with pytest.raises(ConfigurationInvalidError):
            ConfigSnapshot.from_dict(raw_config)

    @pytest.mark.parametrize("value", ["false", "true", 1, None])
    def test_non_boolean_enabled_rejected(self, raw_config, value):
        raw_config["textProviders"]["claude"]["enabled"] = value
        with pytest.raises(ConfigurationInvalidError, match="enabled"):
            ConfigSnapshot.from_dict(raw_config)

    @pytest.mark.parametrize("value", ["many", 0, -5, None])
    def test_bad_max_tokens_rejected(self, raw_config, value):
        raw_config["textProviders"]["claude"]["maxTokens"] = value
        with pytest.raises(ConfigurationInvalidError, match="maxTokens"):
            ConfigSnapshot.from_dict(raw_config)

    @pytest.mark.parametrize("value", ["warm", None, True, [0.5]])
    def test_bad_temperature_rejected(self, raw_config, value):
        raw_config["textProviders"]["claude"]["temperature"] = value
        with pytest.raises(ConfigurationInvalidError, match="temperature"):
            ConfigSnapshot.from_dict(raw_config)

    @pytest.mark.parametrize("value", ["X-Team: voice", ["X-Team"], 3])
    def test_non_mapping_headers_rejected(self, raw_config, value):
        raw_config["audioProviders"]["gemini_live"]["headers"] = value
        with pytest.raises(ConfigurationInvalidError, match="headers"):
            ConfigSnapshot.from_dict(raw_config)

    def test_numeric_strings_accepted(self, raw_config):
        raw_config["textProviders"]["claude"]["maxTokens"] = "300"
        raw_config["textProviders"]["claude"]["temperature"] = "0.2"
        raw_config["textProviders"]["claude"]["headers"] = {"X-Team": "voice"}
        snap = ConfigSnapshot.from_dict(raw_config)
        assert snap.text_providers["claude"]["maxTokens"] == "300"

    def test_invalid_field_reload_keeps_previous(self, tmp_path, raw_config):
        path = _write(tmp_path / "ai.yaml", raw_config)
        store = ConfigStore(path=path)
        before = store.load()
        raw_config["textProviders"]["claude"]["temperature"] = "warm"
        _write(path, raw_config)
        assert store.reload() is before
        assert "temperature" in store.last_error

    def test_non_positive_timeout_rejected(self, raw_config):
        raw_config["aiSelectionConfig"]["timeoutMs"] = 0
        with pytest.raises(ConfigurationInvalidError):
            ConfigSnapshot.from_dict(raw_config)


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

class TestLoadYaml:
    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationMissingError):
            _load_yaml(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("audioProviders: [unclosed", encoding="utf-8")
        with pytest.raises(ConfigurationInvalidError):
            _load_yaml(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        with pytest.raises(ConfigurationInvalidError):
            _load_yaml(path)

    def test_json_is_accepted(self, tmp_path):
        path = tmp_path / "ai.json"
        path.write_text('{"audioProviders": {}}', encoding="utf-8")
        assert _load_yaml(path) == {"audioProviders": {}}


class TestEnvOverrides:
    def test_named_overrides(self, monkeypatch):
        monkeypatch.setenv("AI_TIMEOUT_MS", "1234")
        monkeypatch.setenv("AI_FALLBACK_ON_ERROR", "false")
        monkeypatch.setenv("AI_MAX_RETRIES", "0")
        data = {}
        _apply_env_overrides(data)
        assert data["aiSelectionConfig"] == {"timeoutMs": 1234, "fallbackOnError": False, "maxRetries": 0}

    def test_bad_int_override(self, monkeypatch):
        monkeypatch.setenv("AI_TIMEOUT_MS", "soon")
        with pytest.raises(ConfigurationInvalidError):
            _apply_env_overrides({})

    def test_load_snapshot_applies_overrides(self, tmp_path, raw_config, monkeypatch):
        monkeypatch.setenv("AI_TIMEOUT_MS", "750")
        snap = load_snapshot(_write(tmp_path / "ai.yaml", raw_config))
        assert snap.timeout_ms == 750

    def test_config_path_env(self, tmp_path, raw_config, monkeypatch):
        path = _write(tmp_path / "custom.yaml", raw_config)
        monkeypatch.setenv("AI_CONFIG_PATH", str(path))
        assert load_snapshot().source == str(path)


class TestBundledConfig:
    def test_default_file_is_valid(self, monkeypatch):
        monkeypatch.delenv("AI_CONFIG_PATH", raising=False)
        for name in ("AI_TIMEOUT_MS", "AI_MAX_RETRIES", "AI_CONFIG_RELOAD_INTERVAL_MS"):
            monkeypatch.delenv(name, raising=False)
        snap = load_snapshot()
        assert "openai_realtime" in snap.audio_providers
        assert "claude" in snap.text_providers


# ---------------------------------------------------------------------------
# ConfigStore reload
# ---------------------------------------------------------------------------

class TestConfigStore:
    def _store(self, tmp_path, raw_config, interval_ms=1000):
        raw_config["aiSelectionConfig"]["reloadIntervalMs"] = interval_ms
        path = _write(tmp_path / "ai.yaml", raw_config)
        clock = _Clock()
        store = ConfigStore(path=path, clock=clock)
        store.load()
        return store, path, clock

    def test_current_loads_lazily(self, tmp_path, raw_config):
        store = ConfigStore(path=_write(tmp_path / "ai.yaml", raw_config))
        assert store.loaded is False
        assert store.current().timeout_ms == 2000
        assert store.loaded is True

    def test_initial_load_failure_is_fatal(self, tmp_path):
        with pytest.raises(ConfigurationMissingError):
            ConfigStore(path=tmp_path / "missing.yaml").load()

    def test_no_reload_before_interval(self, tmp_path, raw_config):
        store, path, clock = self._store(tmp_path, raw_config)
        first = store.current()
        raw_config["aiSelectionConfig"]["timeoutMs"] = 9000
        _write(path, raw_config)
        clock.now += 0.5
        assert store.current() is first

    def test_reload_after_interval_publishes_new_snapshot(self, tmp_path, raw_config):
        store, path, clock = self._store(tmp_path, raw_config)
        captured = store.current()
        raw_config["aiSelectionConfig"]["timeoutMs"] = 9000
        _write(path, raw_config)
        clock.now += 2
        fresh = store.current()
        assert fresh.timeout_ms == 9000
        # in-flight holders keep what they captured
        assert captured.timeout_ms == 2000

    def test_invalid_reload_keeps_previous(self, tmp_path, raw_config):
        store, path, clock = self._store(tmp_path, raw_config)
        before = store.current()
        raw_config["textProviders"]["claude"]["weight"] = 0
        _write(path, raw_config)
        clock.now += 2
        assert store.current() is before
        assert "weight" in store.last_error

    def test_successful_reload_clears_error(self, tmp_path, raw_config):
        store, path, clock = self._store(tmp_path, raw_config)
        path.write_text("{", encoding="utf-8")
        store.reload()
        assert store.last_error
        _write(path, raw_config)
        store.reload()
        assert store.last_error is None

    def test_reload_disabled(self, tmp_path, raw_config):
        raw_config["aiSelectionConfig"]["reloadEnabled"] = False
        store, path, clock = self._store(tmp_path, raw_config)
        first = store.current()
        clock.now += 10_000
        assert store.current() is first
