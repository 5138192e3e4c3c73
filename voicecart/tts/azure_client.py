"""
Spoken replies through Azure Neural TTS.

Each reply is rendered as SSML for the shopper's mood and played on the
default speaker. Playback runs in the background, so a newer reply can
cut off one that is still playing.
"""

import os
import threading
import logging
from typing import Optional

import azure.cognitiveservices.speech as speechsdk

from ..models import EmotionState
from .ssml_builder import SSMLBuilder

logger = logging.getLogger(__name__)


class TTSError(Exception):
    """Azure reported an error while synthesizing a reply."""

    def __init__(self, message: str, reason: Optional[str] = None, details: Optional[str] = None):
        self.reason = reason
        self.details = details
        super().__init__(message)


def _raise_for_result(result: speechsdk.SpeechSynthesisResult) -> None:
    """
    Raise TTSError for a failed synthesis.

    Completed results and cancellations requested by stop_speaking pass.
    """
    reason = result.reason
    if reason == speechsdk.ResultReason.SynthesizingAudioCompleted:
        return
    if reason != speechsdk.ResultReason.Canceled:
        raise TTSError(f"Unexpected synthesis result: {reason}", reason=str(reason))

    cancellation = result.cancellation_details
    if cancellation.reason == speechsdk.CancellationReason.Error:
        raise TTSError(
            f"Synthesis cancelled by the service ({cancellation.error_code})",
            reason=str(cancellation.error_code),
            details=cancellation.error_details
        )


def _required(value: Optional[str], env_var: str, argument: str) -> str:
    if not value:
        raise ValueError(f"{env_var} is not set and no {argument} was given")
    return value


class AzureTTSClient:
    """Speaker-bound Azure synthesizer with interruptible playback."""

    def __init__(
        self,
        speech_key: Optional[str] = None,
        speech_region: Optional[str] = None,
        voice: str = SSMLBuilder.DEFAULT_VOICE,
        language: str = "en-US"
    ):
        """
        Args:
            speech_key: Subscription key, AZURE_SPEECH_KEY when omitted
            speech_region: Service region, AZURE_SPEECH_REGION when omitted
            voice: Neural voice used for every reply
            language: xml:lang of the generated SSML

        Raises:
            ValueError: The key or region is missing
        """
        self.speech_key = _required(speech_key or os.getenv("AZURE_SPEECH_KEY"), "AZURE_SPEECH_KEY", "speech_key")
        self.speech_region = _required(
            speech_region or os.getenv("AZURE_SPEECH_REGION"), "AZURE_SPEECH_REGION", "speech_region"
        )
        self.voice = voice
        self.ssml_builder = SSMLBuilder(voice=voice, language=language)

        self._speech_config = speechsdk.SpeechConfig(subscription=self.speech_key, region=self.speech_region)
        self._speech_config.set_speech_synthesis_output_format(
            speechsdk.SpeechSynthesisOutputFormat.Riff16Khz16BitMonoPcm
        )
        self._synthesizer: Optional[speechsdk.SpeechSynthesizer] = None
        self._speaking = threading.Event()

    @property
    def synthesizer(self) -> speechsdk.SpeechSynthesizer:
        if self._synthesizer is None:
            synthesizer = speechsdk.SpeechSynthesizer(
                speech_config=self._speech_config,
                audio_config=speechsdk.audio.AudioOutputConfig(use_default_speaker=True)
            )
            # SDK events fire on SDK threads; the Event is the only shared state
            synthesizer.synthesis_started.connect(lambda evt: self._speaking.set())
            synthesizer.synthesis_completed.connect(lambda evt: self._speaking.clear())
            synthesizer.synthesis_canceled.connect(self._on_canceled)
            self._synthesizer = synthesizer
        return self._synthesizer

    def _on_canceled(self, evt) -> None:
        self._speaking.clear()
        try:
            _raise_for_result(evt.result)
        except TTSError as e:
            logger.warning(f"Reply playback failed: {e} {e.details or ''}".rstrip())

    @property
    def is_speaking(self) -> bool:
        return self._speaking.is_set()

    def start_speaking(self, text: str, emotion: EmotionState = EmotionState.NEUTRAL) -> None:
        """Queue text for playback in the voice matched to emotion and return."""
        ssml = self.ssml_builder.build_for_emotion(text, emotion)
        self._speaking.set()
        self.synthesizer.speak_ssml_async(ssml)

    def stop_speaking(self) -> None:
        """Cut off the reply being played, if any."""
        if self._synthesizer is not None:
            self._synthesizer.stop_speaking_async().get()
        self._speaking.clear()
