"""
Emotion classification for VoiceCart.

Transcript keywords decide the emotional state unless the user consented
to voice-tone analysis and a prosody service is configured.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from ..consent import ConsentGate
from ..fallback import FallbackManager, ServiceType
from ..models import AudioSample, EmotionState
from .prosody_client import ClassificationError

logger = logging.getLogger(__name__)

# Keyword rules, evaluated in order; first matching rule wins.
# Matching is a case-insensitive substring test, so "frustrat" also
# matches "frustrated" and "frustrating".
EMOTION_RULES = (
    (EmotionState.FRUSTRATED, ("expensive", "too much", "can't afford", "cant afford", "frustrat")),
    (EmotionState.HAPPY, ("love", "perfect", "great", "thank")),
    (EmotionState.CONFUSED, ("help", "confus")),
)


@dataclass
class EmotionResult:
    """Result of emotion classification."""
    emotion: EmotionState
    source: str  # "lexical" or "prosody"
    indicators: list  # Keywords that triggered the emotion


def detect_lexical_emotion(text: str) -> EmotionResult:
    """
    Classify a transcript with the keyword rules.

    Args:
        text: Transcript text.

    Returns:
        EmotionResult with the first matching state, or neutral.
    """
    text_lower = text.lower()
    for emotion, keywords in EMOTION_RULES:
        matches = [keyword for keyword in keywords if keyword in text_lower]
        if matches:
            return EmotionResult(emotion=emotion, source="lexical", indicators=matches)
    return EmotionResult(emotion=EmotionState.NEUTRAL, source="lexical", indicators=[])


class ProsodyAnalyzer(Protocol):
    """External emotion inference from audio."""

    def analyze(self, sample: AudioSample) -> EmotionState: ...


class EmotionClassifier:
    """
    Consent-aware emotion classifier.

    Without consent only the transcript is inspected. With consent the
    prosody service may be asked first; any failure or timeout falls back
    to the keyword rules, so classification never fails.
    """

    def __init__(
        self,
        consent: ConsentGate,
        prosody: Optional[ProsodyAnalyzer] = None,
        timeout: float = 3.0,
        fallback: Optional[FallbackManager] = None
    ):
        """
        Initialize the classifier.

        Args:
            consent: Consent gate deciding whether audio may be analyzed
            prosody: Optional external prosody analyzer
            timeout: Seconds to wait for the prosody analyzer
            fallback: Health tracker for the prosody service
        """
        self.consent = consent
        self.prosody = prosody
        self.timeout = timeout
        self.fallback = fallback or FallbackManager()

    async def classify(
        self,
        transcript: str,
        audio_sample: Optional[AudioSample] = None
    ) -> EmotionState:
        """Classify one utterance. Never raises."""
        result = await self.analyze(transcript, audio_sample)
        return result.emotion

    async def analyze(
        self,
        transcript: str,
        audio_sample: Optional[AudioSample] = None
    ) -> EmotionResult:
        """
        Classify one utterance and report how the state was obtained.

        Args:
            transcript: Final transcript text
            audio_sample: Correlated audio; only read when consent is granted

        Returns:
            EmotionResult
        """
        if not self.consent.granted or self.prosody is None or audio_sample is None:
            return detect_lexical_emotion(transcript)

        if self.fallback.should_use_local(ServiceType.EMOTION):
            self.fallback.report_local_use(ServiceType.EMOTION)
            return detect_lexical_emotion(transcript)

        loop = asyncio.get_running_loop()
        try:
            emotion = await asyncio.wait_for(
                loop.run_in_executor(None, self.prosody.analyze, audio_sample),
                timeout=self.timeout
            )
        except asyncio.TimeoutError:
            self.fallback.report_failure(ServiceType.EMOTION, "timeout")
            return detect_lexical_emotion(transcript)
        except ClassificationError as e:
            self.fallback.report_failure(ServiceType.EMOTION, str(e))
            return detect_lexical_emotion(transcript)
        except Exception as e:
            logger.warning(f"Prosody analyzer raised unexpectedly: {e}")
            self.fallback.report_failure(ServiceType.EMOTION, str(e))
            return detect_lexical_emotion(transcript)

        self.fallback.report_success(ServiceType.EMOTION)
        return EmotionResult(emotion=emotion, source="prosody", indicators=[])
