"""
pytest fixtures for the voice router test suite.

Modules are tested in isolation with an in-memory config tree; no test makes a
real network call (requests.post / httpx.Client are patched where needed).
"""

import copy
import os
import sys

import pytest

# Ensure project root is on sys.path so imports work
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


BASE_CONFIG = {
    "aiSelectionConfig": {
        "timeoutMs": 2000,
        "fallbackOnError": True,
        "maxRetries": 2,
        "reloadEnabled": True,
        "reloadIntervalMs": 300000,
    },
    "audioProviders": {
        "openai_realtime": {
            "enabled": True, "priority": 1, "weight": 60, "mode": "api",
            "apiKey": "sk-test", "model": "gpt-4o-mini", "voice": "alloy",
            "responseFormat": "audio",
        },
        "gemini_live": {
            "enabled": True, "priority": 2, "weight": 40, "mode": "api",
            "apiKey": "gemini-test", "model": "gemini-1.5-flash",
            "responseFormat": "audio",
        },
    },
    "textProviders": {
        "claude": {
            "enabled": True, "priority": 1, "weight": 50, "mode": "api",
            "apiKey": "anthropic-test", "model": "claude-3-haiku-20240307",
            "responseFormat": "text", "ttsProvider": "azure", "maxTokens": 500,
        },
        "mistral": {
            "enabled": True, "priority": 2, "weight": 50, "mode": "api",
            "apiKey": "mistral-test", "model": "mistral-small-latest",
            "responseFormat": "text", "ttsProvider": "google",
        },
    },
    "questionAnalysis": {
        "complexityThreshold": 3,
        "complexityKeywords": ["pourquoi", "comment", "expliquer", "analyse", "différence"],
        "simpleKeywords": ["bonjour", "merci", "heure"],
    },
    "ttsServices": {
        "azure": {"region": "westeurope", "apiKey": "azure-test", "defaultVoice": "fr-FR-DeniseNeural"},
        "google": {"apiKey": "google-test", "defaultVoice": "fr-FR-Wavenet-C"},
    },
    "statisticsTracking": {"enabled": True, "logSelections": True},
}


def _make_config(**sections):
    """Fresh copy of BASE_CONFIG with top-level sections replaced."""
    data = copy.deepcopy(BASE_CONFIG)
    data.update(copy.deepcopy(sections))
    return data


@pytest.fixture
def raw_config():
    return _make_config()


@pytest.fixture
def make_config():
    """Factory: fresh config tree with top-level sections replaced."""
    return _make_config


@pytest.fixture
def snapshot(raw_config):
    from config.snapshot import ConfigSnapshot
    return ConfigSnapshot.from_dict(raw_config, source="test")


@pytest.fixture
def store(snapshot):
    """A ConfigStore with the test snapshot already published."""
    from config.loader import ConfigStore
    s = ConfigStore(path="/nonexistent/ai_providers.yaml")
    s.set_snapshot(snapshot)
    return s


@pytest.fixture
def flask_app(store):
    """Return a configured Flask test app via the create_app() factory."""
    from app import create_app
    return create_app(config_override={"TESTING": True}, store=store)


@pytest.fixture
def client(flask_app):
    """Return a Flask test client."""
    return flask_app.test_client()


@pytest.fixture
def health_checker(store):
    """Return a HealthChecker instance for unit-testing health logic directly."""
    from services.health import HealthChecker
    return HealthChecker(store)
