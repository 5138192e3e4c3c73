"""
SSML for emotion-adapted replies.

A frustrated shopper hears a slower, softer, empathetic voice; a happy one
a brighter and quicker voice; a confused one a patient pace.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from xml.sax.saxutils import escape, quoteattr

from ..models import EmotionState

SSML_NAMESPACE = "http://www.w3.org/2001/10/synthesis"
MSTTS_NAMESPACE = "https://www.w3.org/2001/mstts"

# Azure accepts styledegree values in this range
MIN_STYLE_DEGREE = 0.01
MAX_STYLE_DEGREE = 2.0


class ProsodyProfile(Enum):
    """Voice registers the assistant answers in."""

    NEUTRAL = "neutral"
    PATIENT = "patient"
    CHEERFUL = "cheerful"
    DE_ESCALATE = "de_escalate"


@dataclass(frozen=True)
class ProsodySettings:
    """
    Voice parameters of one profile.

    None leaves the voice default in place.
    """

    pitch: Optional[str] = None
    rate: Optional[str] = None
    volume: Optional[str] = None
    style: Optional[str] = None  # mstts:express-as style
    styledegree: Optional[float] = None

    def prosody_attributes(self) -> dict:
        values = {"pitch": self.pitch, "rate": self.rate, "volume": self.volume}
        return {name: value for name, value in values.items() if value is not None}


PROSODY_PROFILES: dict[ProsodyProfile, ProsodySettings] = {
    ProsodyProfile.NEUTRAL: ProsodySettings(style="friendly"),
    ProsodyProfile.PATIENT: ProsodySettings(
        pitch="-3%", rate="0.9", style="gentle", styledegree=0.9
    ),
    ProsodyProfile.CHEERFUL: ProsodySettings(
        pitch="+5%", rate="1.1", style="cheerful", styledegree=1.2
    ),
    ProsodyProfile.DE_ESCALATE: ProsodySettings(
        pitch="-10%", rate="0.8", volume="soft", style="empathetic", styledegree=0.7
    ),
}

EMOTION_PROFILES: dict[EmotionState, ProsodyProfile] = {
    EmotionState.NEUTRAL: ProsodyProfile.NEUTRAL,
    EmotionState.HAPPY: ProsodyProfile.CHEERFUL,
    EmotionState.FRUSTRATED: ProsodyProfile.DE_ESCALATE,
    EmotionState.CONFUSED: ProsodyProfile.PATIENT,
}


def profile_for_emotion(emotion: EmotionState) -> ProsodyProfile:
    """Map the listener's emotional state to the profile to answer with."""
    return EMOTION_PROFILES.get(emotion, ProsodyProfile.NEUTRAL)


def _attributes(values: dict) -> str:
    return " ".join(f"{name}={quoteattr(str(value))}" for name, value in values.items())


class SSMLBuilder:
    """Renders reply text as an Azure Neural TTS SSML document."""

    DEFAULT_VOICE = "en-US-JennyNeural"

    def __init__(self, voice: str = DEFAULT_VOICE, language: str = "en-US"):
        """
        Args:
            voice: Azure Neural voice name
            language: xml:lang of the document
        """
        self.voice = voice
        self.language = language

    def build(self, text: str, profile: ProsodyProfile = ProsodyProfile.NEUTRAL) -> str:
        """
        Render text with a prosody profile.

        Args:
            text: Plain reply text; XML special characters are escaped here
            profile: Voice register

        Returns:
            Complete SSML document
        """
        settings = PROSODY_PROFILES[profile]
        content = escape(text)

        prosody = settings.prosody_attributes()
        if prosody:
            content = f"<prosody {_attributes(prosody)}>{content}</prosody>"

        if settings.style:
            express = {"style": settings.style}
            if settings.styledegree is not None:
                degree = min(MAX_STYLE_DEGREE, max(MIN_STYLE_DEGREE, settings.styledegree))
                express["styledegree"] = f"{degree:.2f}"
            content = f"<mstts:express-as {_attributes(express)}>{content}</mstts:express-as>"

        return (
            f'<speak version="1.0" xmlns="{SSML_NAMESPACE}" '
            f'xmlns:mstts="{MSTTS_NAMESPACE}" xml:lang="{self.language}">'
            f"<voice name={quoteattr(self.voice)}>{content}</voice>"
            "</speak>"
        )

    def build_for_emotion(self, text: str, emotion: EmotionState) -> str:
        """Render text in the profile matched to an emotional state."""
        return self.build(text, profile_for_emotion(emotion))
