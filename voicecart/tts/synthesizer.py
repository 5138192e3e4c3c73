"""
Response synthesizer for VoiceCart.

Speaks replies and drives haptic feedback. Both outputs are best effort:
a missing or failing device degrades to text-only / silent operation.
"""

import logging
import threading
from enum import Enum
from typing import Optional, Protocol, Sequence

from ..fallback import FallbackManager, ServiceType
from ..models import EmotionState

logger = logging.getLogger(__name__)


class HapticPattern(Enum):
    """Fixed vocabulary of vibration patterns (milliseconds on/off)."""

    CONFIRM = (100,)
    ERROR = (100, 50, 100)
    OFFLINE = (200, 100, 200, 100, 200)


class SpeechOutput(Protocol):
    """Speech-output capability."""

    def start_speaking(self, text: str, emotion: EmotionState) -> None: ...

    def stop_speaking(self) -> None: ...

    @property
    def is_speaking(self) -> bool: ...


class HapticDriver(Protocol):
    """Vibration capability."""

    def vibrate(self, pattern: Sequence[int]) -> None: ...


class ResponseSynthesizer:
    """
    Speech and haptic output.

    speak() is fire-and-forget and never queues: a new reply interrupts
    the one in progress so the user hears the latest response.
    """

    def __init__(
        self,
        speech: Optional[SpeechOutput] = None,
        haptics: Optional[HapticDriver] = None,
        fallback: Optional[FallbackManager] = None
    ):
        """
        Initialize the synthesizer.

        Args:
            speech: Speech output device, None for text-only
            haptics: Vibration device, None for silent
            fallback: Health tracker; repeated speech failures switch to text-only
        """
        self.speech = speech
        self.haptics = haptics
        self.fallback = fallback or FallbackManager()
        self.last_spoken: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def has_speech(self) -> bool:
        return self.speech is not None

    def speak(self, text: str, emotion: EmotionState = EmotionState.NEUTRAL) -> None:
        """
        Speak text with a voice adapted to the listener's emotion.

        Args:
            text: Reply text
            emotion: Listener's emotional state
        """
        with self._lock:
            self.last_spoken = text
            if self.speech is None:
                return
            if self.fallback.should_use_local(ServiceType.SPEECH):
                self.fallback.report_local_use(ServiceType.SPEECH)
                logger.debug("Speech output degraded, reply shown as text only")
                return

            try:
                if self.speech.is_speaking:
                    self.speech.stop_speaking()
                self.speech.start_speaking(text, emotion)
            except Exception as e:
                self.fallback.report_failure(ServiceType.SPEECH, str(e))
                return
            self.fallback.report_success(ServiceType.SPEECH)

    def stop(self) -> None:
        """Interrupt any reply being spoken."""
        with self._lock:
            if self.speech is None:
                return
            try:
                self.speech.stop_speaking()
            except Exception as e:
                logger.warning(f"Failed to stop speech output: {e}")

    def vibrate(self, pattern: Sequence[int]) -> None:
        """Vibrate if the device supports it. Never raises."""
        if isinstance(pattern, HapticPattern):
            pattern = pattern.value
        if self.haptics is None:
            return
        try:
            self.haptics.vibrate(list(pattern))
        except Exception as e:
            logger.debug(f"Haptic feedback unavailable: {e}")
