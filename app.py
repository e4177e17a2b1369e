"""
Flask application factory for the voice router.

Usage:
    from app import create_app
    app = create_app()

    # tests: inject an already-loaded config store
    app = create_app(config_override={'TESTING': True}, store=store)

The factory loads the provider configuration eagerly: a missing or invalid
file fails startup (ConfigurationError). Later reloads happen lazily inside
ConfigStore.current() and keep the previous snapshot on failure.
"""
import logging
import os

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from config.loader import config_store as default_store
from services.health import HealthChecker
from services.orchestrator import ResponseOrchestrator

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Root logging setup; level from LOG_LEVEL (default INFO)."""
    level = os.getenv('LOG_LEVEL', 'INFO').upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )


def create_app(config_override: dict = None, store=None, orchestrator=None):
    """
    Create and configure the Flask application.

    Args:
        config_override: Optional dict of Flask config values to apply.
                         Primarily used in tests to inject TESTING=True etc.
        store:           ConfigStore to use (defaults to the module singleton).
        orchestrator:    Pre-built ResponseOrchestrator (tests).

    Returns:
        Flask: the configured application.
    """
    app = Flask(__name__, static_folder=None)

    app.config['JSON_SORT_KEYS'] = False
    if config_override:
        app.config.update(config_override)

    # Trust one level of X-Forwarded-* headers (reverse proxy)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

    store = store or default_store
    if not store.loaded:
        store.load()

    app.extensions['config_store'] = store
    app.extensions['orchestrator'] = orchestrator or ResponseOrchestrator(store)
    app.extensions['health_checker'] = HealthChecker(store)

    from routes.ask import ask_bp
    from routes.health import health_bp
    app.register_blueprint(health_bp)
    app.register_blueprint(ask_bp)

    @app.after_request
    def add_security_headers(response):
        """Add security headers to every response."""
        response.headers.setdefault('X-Content-Type-Options', 'nosniff')
        response.headers.setdefault('X-Frame-Options', 'DENY')
        response.headers.setdefault('Referrer-Policy', 'no-referrer')
        return response

    return app


if __name__ == '__main__':
    configure_logging()
    port = int(os.getenv('PORT', '5001'))
    application = create_app()
    logger.info("Voice router listening on http://localhost:%d", port)
    logger.info("  Health    → http://localhost:%d/health/ready", port)
    application.run(host='0.0.0.0', port=port)
