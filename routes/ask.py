"""
routes/ask.py — Question answering Blueprint

Registers routes:
  POST /api/ask   {"question": "..."} -> {"question_type", "provider",
                  "audio_b64", "text", "attempts", "latency_ms"}

Error mapping:
  400  missing / empty / too long question
  503  no enabled provider for the question's pool
  504  every attempt timed out
  502  every attempt failed (vendor error or speech failure)
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from providers.base import DispatchError, DispatchTimeoutError, NoProviderAvailableError
from providers.tts.base import TTSError

logger = logging.getLogger(__name__)

ask_bp = Blueprint('ask', __name__)

MAX_QUESTION_CHARS = 4000


@ask_bp.route('/api/ask', methods=['POST'])
def ask():
    data = request.get_json(silent=True)
    if not data or not isinstance(data, dict):
        return jsonify({'error': 'No JSON data provided'}), 400

    question = data.get('question')
    question = question.strip() if isinstance(question, str) else ''
    if not question:
        return jsonify({'error': 'No question provided'}), 400
    if len(question) > MAX_QUESTION_CHARS:
        return jsonify({'error': f'Question too long (max {MAX_QUESTION_CHARS} characters)'}), 400

    orchestrator = current_app.extensions['orchestrator']
    try:
        answer = orchestrator.answer(question)
    except NoProviderAvailableError as e:
        return jsonify({'error': str(e), 'code': 'no_provider'}), 503
    except DispatchTimeoutError as e:
        return jsonify({'error': str(e), 'code': 'timeout', 'provider': e.provider_name}), 504
    except (DispatchError, TTSError) as e:
        logger.error("Question failed: %s", e)
        return jsonify({'error': str(e), 'code': 'provider_error', 'provider': e.provider_name}), 502

    return jsonify(answer.to_dict())
