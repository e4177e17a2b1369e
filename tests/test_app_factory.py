"""
Tests for app.py — Flask application factory.
"""

import logging
from unittest.mock import patch

import pytest
from flask import Flask

from config.loader import ConfigStore
from config.snapshot import ConfigurationMissingError


class TestCreateApp:
    def test_returns_flask_instance(self, flask_app):
        assert isinstance(flask_app, Flask)

    def test_testing_flag_set(self, flask_app):
        assert flask_app.config["TESTING"] is True

    def test_extensions_wired(self, flask_app, store):
        assert flask_app.extensions["config_store"] is store
        assert "orchestrator" in flask_app.extensions
        assert "health_checker" in flask_app.extensions

    def test_blueprints_registered(self, flask_app):
        assert "health" in flask_app.blueprints
        assert "ask" in flask_app.blueprints

    def test_missing_config_fails_startup(self, tmp_path):
        from app import create_app
        with pytest.raises(ConfigurationMissingError):
            create_app({"TESTING": True}, store=ConfigStore(path=tmp_path / "none.yaml"))

    def test_custom_orchestrator(self, store):
        from app import create_app
        sentinel = object()
        app = create_app({"TESTING": True}, store=store, orchestrator=sentinel)
        assert app.extensions["orchestrator"] is sentinel


class TestLogging:
    def test_log_level_from_env(self, monkeypatch):
        from app import configure_logging
        monkeypatch.setenv("LOG_LEVEL", "debug")
        with patch("app.logging.basicConfig") as basic_config:
            configure_logging()
        assert basic_config.call_args.kwargs["level"] == logging.DEBUG

    def test_unknown_level_defaults_to_info(self, monkeypatch):
        from app import configure_logging
        monkeypatch.setenv("LOG_LEVEL", "chatty")
        with patch("app.logging.basicConfig") as basic_config:
            configure_logging()
        assert basic_config.call_args.kwargs["level"] == logging.INFO

