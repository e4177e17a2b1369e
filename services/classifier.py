"""
services/classifier.py — Question complexity classifier

Scores a question with keyword and shape heuristics and maps the score to a
QuestionType. Pure and deterministic: no I/O, no shared state.

Scoring:
    +2  per complexity keyword found (case-insensitive substring)
    -1  per simple keyword found
    +1  if the question is longer than 100 characters
    +1  if it contains two or more question marks
    +2  if it matches the reasoning pattern (pourquoi, comment, expliqu..., why, how, explain)

score >= threshold (default 3) -> COMPLEX_TEXT, otherwise SIMPLE_AUDIO.

Usage:
    from services.classifier import classify_question

    qtype = classify_question("Quelle heure est-il ?", snapshot)
"""

import re
from typing import Iterable, Optional

from providers.definition import QuestionType

DEFAULT_THRESHOLD = 3
LONG_QUESTION_CHARS = 100

_REASONING_RE = re.compile(r"\b(pourquoi|comment|expliqu|why|how|explain)")


def score_question(
    text: str,
    complexity_keywords: Iterable[str] = (),
    simple_keywords: Iterable[str] = (),
) -> int:
    """Return the raw complexity score of *text*."""
    lowered = (text or "").lower()
    score = 0

    for keyword in complexity_keywords:
        if keyword and keyword.lower() in lowered:
            score += 2
    for keyword in simple_keywords:
        if keyword and keyword.lower() in lowered:
            score -= 1

    if len(text or "") > LONG_QUESTION_CHARS:
        score += 1
    if lowered.count("?") >= 2:
        score += 1
    if _REASONING_RE.search(lowered):
        score += 2

    return score


def classify_question(text: str, settings=None, threshold: Optional[int] = None) -> QuestionType:
    """Classify *text* as SIMPLE_AUDIO or COMPLEX_TEXT.

    Args:
        text:      The user's question.
        settings:  Anything exposing complexity_keywords, simple_keywords and
                   complexity_threshold (normally a ConfigSnapshot). None means
                   no keywords and the default threshold.
        threshold: Explicit threshold, overriding settings.
    """
    complexity = getattr(settings, "complexity_keywords", ()) if settings is not None else ()
    simple = getattr(settings, "simple_keywords", ()) if settings is not None else ()
    if threshold is None:
        threshold = getattr(settings, "complexity_threshold", DEFAULT_THRESHOLD) if settings is not None else DEFAULT_THRESHOLD

    score = score_question(text, complexity, simple)
    return QuestionType.COMPLEX_TEXT if score >= threshold else QuestionType.SIMPLE_AUDIO


__all__ = ["classify_question", "score_question", "DEFAULT_THRESHOLD"]
