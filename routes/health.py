"""
routes/health.py — Health and provider diagnostics Blueprint

Endpoints:
  GET  /health/live            liveness check (always 200)
  GET  /health/ready           readiness check (200 or 503)
  GET  /api/providers          both pools with usability, config summary,
                                 registered adapters, selection statistics
  POST /api/providers/reload   re-read the provider file now; the previous
                                 snapshot is kept when the new one is invalid
  GET  /api/tts/<engine>/status  whether a speech engine can voice a sample word
"""

import logging

from flask import Blueprint, current_app, jsonify

from providers.definition import QuestionType
from services.health import describe_pool, list_adapters

logger = logging.getLogger(__name__)

health_bp = Blueprint('health', __name__)


def _result_json(result):
    return {"healthy": result.healthy, "message": result.message, "details": result.details}


@health_bp.route('/health/live', methods=['GET'])
def health_live():
    """Liveness check: 200 if the process is alive."""
    result = current_app.extensions['health_checker'].liveness()
    return jsonify(_result_json(result)), 200


@health_bp.route('/health/ready', methods=['GET'])
def health_ready():
    """Readiness check: 503 until at least one provider per pool is usable."""
    result = current_app.extensions['health_checker'].readiness()
    code = 200 if result.healthy else 503
    return jsonify(_result_json(result)), code


@health_bp.route('/api/providers', methods=['GET'])
def list_providers():
    store = current_app.extensions['config_store']
    orchestrator = current_app.extensions['orchestrator']
    snapshot = store.current()
    return jsonify({
        "config": snapshot.stats(),
        "last_reload_error": store.last_error,
        "pools": {
            qtype.pool_key: describe_pool(snapshot, qtype) for qtype in QuestionType
        },
        "adapters": list_adapters(),
        "selection_statistics": orchestrator.selector.selection_statistics(),
    })


@health_bp.route('/api/providers/reload', methods=['POST'])
def reload_providers():
    store = current_app.extensions['config_store']
    snapshot = store.reload()
    ok = store.last_error is None
    if not ok:
        logger.warning("Manual reload rejected: %s", store.last_error)
    return jsonify({
        "reloaded": ok,
        "error": store.last_error,
        "config": snapshot.stats(),
    }), (200 if ok else 422)


@health_bp.route('/api/tts/<engine_id>/status', methods=['GET'])
def tts_status(engine_id):
    """Synthesize a sample word through one speech engine. Blocking."""
    store = current_app.extensions['config_store']
    tts = current_app.extensions['orchestrator'].tts
    available = tts.is_available(engine_id, store.current())
    return jsonify({"engine": engine_id.lower(), "available": available})
