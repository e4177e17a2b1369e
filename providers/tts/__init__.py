"""Speech engine package.

Importing this package registers the Azure (SSML) and Google (JSON) engines.
"""

from providers.tts.base import TTSProvider, TTSVoice, TTSError

# Import concrete engines so their registry.register() calls fire
from providers.tts import azure_provider  # noqa: F401
from providers.tts import google_provider  # noqa: F401

__all__ = ["TTSProvider", "TTSVoice", "TTSError"]
