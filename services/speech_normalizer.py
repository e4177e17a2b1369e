"""
services/speech_normalizer.py — Speech Normalization Service

Cleans and normalizes answer text before it is sent to a TTS engine. The
engines voice French, so abbreviations and symbols are expanded to their
spoken French forms.

Usage:
    from services.speech_normalizer import SpeechNormalizer

    normalizer = SpeechNormalizer()
    clean_text = normalizer.normalize("M. Dupont a gagné 20 % de plus :)")
    # -> "Monsieur Dupont a gagné 20 pour cent de plus sourire"

Extra abbreviations can be passed to the constructor; they are applied after
the built-in French table.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Optional

logger = logging.getLogger(__name__)

# Ordered: longer keys first so "Mme." is not eaten by "M."
FRENCH_ABBREVIATIONS = (
    ("Mme.", "Madame"),
    ("Mlle.", "Mademoiselle"),
    ("Dr.", "Docteur"),
    ("M.", "Monsieur"),
    ("etc.", "et cetera"),
)

SYMBOLS = (
    ("%", " pour cent"),
    ("€", " euros"),
    ("$", " dollars"),
)

EMOTICONS = (
    (":)", " sourire "),
    (":(", " triste "),
)

PAUSES_MS = {
    ".": 500,
    "!": 500,
    "?": 500,
    ",": 200,
    ";": 300,
    ":": 300,
}

_PAUSE_RE = re.compile(r"(&#?\w+;)|([.!?,;:])(?=\s|$)")


def add_natural_pauses(text: str) -> str:
    """Insert SSML <break> tags after punctuation.

    Only punctuation followed by whitespace (or the end) counts, so decimals
    like 3.5 are left alone. XML entities such as &amp; are skipped, which
    makes this safe to run on already-escaped SSML text.
    """
    def _pause(match: "re.Match[str]") -> str:
        if match.group(1):
            return match.group(1)
        mark = match.group(2)
        return f'{mark}<break time="{PAUSES_MS[mark]}ms"/>'

    return _PAUSE_RE.sub(_pause, text)


class SpeechNormalizer:
    """
    Normalizes text for TTS by applying a fixed pipeline:

    1. Strip markdown formatting (headers, bold, code blocks, links)
    2. Strip URLs
    3. Expand French abbreviations (M. -> Monsieur, etc.)
    4. Verbalize symbols (% -> pour cent) and emoticons (:) -> sourire)
    5. Collapse whitespace
    """

    def __init__(
        self,
        abbreviations: Optional[Dict[str, str]] = None,
        strip_markdown: bool = True,
        max_length: int = 0,
    ) -> None:
        self._extra_abbreviations = dict(abbreviations or {})
        self._strip_md = strip_markdown
        # 0 disables the hard cap
        self._max_length = max_length

    # ── Public API ─────────────────────────────────────────────────────────────

    def normalize(self, text: str) -> str:
        """Apply the full normalization pipeline to *text*."""
        if not text:
            return text

        if self._strip_md:
            text = self._strip_markdown(text)
        text = re.sub(r"https?://\S+", "", text)

        text = self._expand_abbreviations(text)

        for emoticon, spoken in EMOTICONS:
            text = text.replace(emoticon, spoken)
        for symbol, spoken in SYMBOLS:
            text = text.replace(symbol, spoken)

        text = re.sub(r"\s+", " ", text).strip()

        if self._max_length and len(text) > self._max_length:
            cut = text[: self._max_length].rfind(". ")
            if cut > self._max_length // 2:
                text = text[: cut + 1]
            else:
                text = text[: self._max_length].rstrip() + "..."
            logger.debug("Speech normalizer truncated text to %d chars", len(text))

        return text

    # ── Internal helpers ───────────────────────────────────────────────────────

    def _strip_markdown(self, text: str) -> str:
        """Remove common markdown syntax from text."""
        text = re.sub(r"```[\s\S]*?```", "", text)
        text = re.sub(r"`([^`]+)`", r"\1", text)
        text = re.sub(r"^#{1,6}\s+", "", text, flags=re.MULTILINE)
        text = re.sub(r"\*\*(.+?)\*\*", r"\1", text)
        text = re.sub(r"\*(.+?)\*", r"\1", text)
        text = re.sub(r"!\[[^\]]*\]\([^)]+\)", "", text)
        text = re.sub(r"\[([^\]]+)\]\([^)]+\)", r"\1", text)
        text = re.sub(r"^[\-\*\+]\s+", "", text, flags=re.MULTILINE)
        return text

    def _expand_abbreviations(self, text: str) -> str:
        """
        Replace abbreviations with their spoken forms.

        Matches start on a word boundary so "FM." is not read as "FMonsieur".
        """
        table = list(FRENCH_ABBREVIATIONS) + sorted(
            self._extra_abbreviations.items(), key=lambda x: -len(x[0])
        )
        for abbrev, expansion in table:
            if not abbrev:
                continue
            pattern = r"(?<!\w)" + re.escape(abbrev)
            if abbrev[-1].isalnum():
                pattern += r"\b"
            text = re.sub(pattern, expansion, text)
        return text


# ── Module-level singleton ─────────────────────────────────────────────────────

_normalizer_instance: Optional[SpeechNormalizer] = None


def get_normalizer() -> SpeechNormalizer:
    """Return the shared SpeechNormalizer singleton (lazy-init)."""
    global _normalizer_instance
    if _normalizer_instance is None:
        _normalizer_instance = SpeechNormalizer()
    return _normalizer_instance


def normalize_for_tts(text: str) -> str:
    """Convenience function: normalize *text* using the global singleton."""
    return get_normalizer().normalize(text)


__all__ = [
    "SpeechNormalizer",
    "add_natural_pauses",
    "get_normalizer",
    "normalize_for_tts",
]
