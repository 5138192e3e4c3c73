"""
NLP module for VoiceCart.
Provides emotion classification and intent parsing.
"""

from .emotion import EmotionClassifier, EmotionResult, detect_lexical_emotion
from .intent import IntentParser
from .prosody_client import ClassificationError, HumeProsodyClient

__all__ = [
    "EmotionClassifier",
    "EmotionResult",
    "detect_lexical_emotion",
    "IntentParser",
    "ClassificationError",
    "HumeProsodyClient",
]
