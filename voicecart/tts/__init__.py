"""
Text-to-Speech module for VoiceCart.

Provides Azure Neural TTS integration with emotion-adapted SSML and the
response synthesizer that drives speech and haptic output.
"""

from .ssml_builder import SSMLBuilder, ProsodyProfile, ProsodySettings, PROSODY_PROFILES, profile_for_emotion
from .synthesizer import ResponseSynthesizer, HapticPattern, HapticDriver, SpeechOutput

__all__ = [
    "SSMLBuilder",
    "ProsodyProfile",
    "ProsodySettings",
    "PROSODY_PROFILES",
    "profile_for_emotion",
    "ResponseSynthesizer",
    "HapticPattern",
    "HapticDriver",
    "SpeechOutput",
]
