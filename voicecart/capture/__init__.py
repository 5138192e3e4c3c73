"""
Voice capture module for VoiceCart.

The Azure recognizer and the sounddevice recorder are imported lazily by
callers since both need native libraries.
"""

from .errors import CaptureError, CaptureErrorKind
from .session import CaptureSession, CaptureState, SpeechRecognizer, Recorder

__all__ = [
    "CaptureError",
    "CaptureErrorKind",
    "CaptureSession",
    "CaptureState",
    "SpeechRecognizer",
    "Recorder",
]
