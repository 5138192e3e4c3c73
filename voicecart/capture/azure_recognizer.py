"""
Azure Speech continuous recognition for VoiceCart.

Wraps the SDK's event callbacks into the (text, is_final) / error / end
callbacks a CaptureSession consumes. SDK callbacks fire on SDK threads.
"""

import os
import logging
from typing import Callable, Optional

import azure.cognitiveservices.speech as speechsdk

from .errors import CaptureError, CaptureErrorKind

logger = logging.getLogger(__name__)

# Cancellation error codes the user can recover from by retrying
_NETWORK_ERRORS = {
    speechsdk.CancellationErrorCode.ConnectionFailure,
    speechsdk.CancellationErrorCode.ServiceTimeout,
    speechsdk.CancellationErrorCode.ServiceUnavailable,
    speechsdk.CancellationErrorCode.TooManyRequests,
}


def _map_cancellation(details) -> CaptureError:
    """Translate SDK cancellation details into a CaptureError."""
    error_details = details.error_details or ""
    if details.error_code in _NETWORK_ERRORS:
        kind = CaptureErrorKind.NETWORK
    elif "microphone" in error_details.lower() or "SPXERR_MIC" in error_details:
        kind = CaptureErrorKind.PERMISSION_DENIED
    elif details.error_code in (
        speechsdk.CancellationErrorCode.AuthenticationFailure,
        speechsdk.CancellationErrorCode.Forbidden,
    ):
        kind = CaptureErrorKind.UNSUPPORTED
    else:
        kind = CaptureErrorKind.STREAM_FAILURE
    return CaptureError(f"Voice recognition error: {details.error_code} {error_details}", kind=kind)


class AzureSpeechRecognizer:
    """
    Continuous speech recognition from the default microphone.

    Interim hypotheses come from the `recognizing` event, finalized
    utterances from `recognized`.
    """

    def __init__(
        self,
        speech_key: Optional[str] = None,
        speech_region: Optional[str] = None,
        language: str = "en-US"
    ):
        """
        Initialize the recognizer.

        Args:
            speech_key: Azure Speech API key (defaults to AZURE_SPEECH_KEY env var)
            speech_region: Azure region (defaults to AZURE_SPEECH_REGION env var)
            language: Recognition language
        """
        self.speech_key = speech_key or os.getenv("AZURE_SPEECH_KEY")
        self.speech_region = speech_region or os.getenv("AZURE_SPEECH_REGION")

        if not self.speech_key or not self.speech_region:
            raise ValueError(
                "Azure Speech credentials not provided. "
                "Set AZURE_SPEECH_KEY and AZURE_SPEECH_REGION environment variables."
            )

        self.language = language
        self._recognizer: Optional[speechsdk.SpeechRecognizer] = None

    def start(
        self,
        on_result: Callable[[str, bool, Optional[int]], None],
        on_error: Callable[[CaptureError], None],
        on_end: Callable[[], None]
    ) -> None:
        """
        Start continuous recognition.

        Raises:
            CaptureError: If the microphone or the service cannot be opened
        """
        speech_config = speechsdk.SpeechConfig(
            subscription=self.speech_key,
            region=self.speech_region
        )
        speech_config.speech_recognition_language = self.language

        try:
            audio_config = speechsdk.audio.AudioConfig(use_default_microphone=True)
            recognizer = speechsdk.SpeechRecognizer(
                speech_config=speech_config,
                audio_config=audio_config
            )
        except RuntimeError as e:
            raise CaptureError(f"Microphone unavailable: {e}", kind=CaptureErrorKind.PERMISSION_DENIED)

        def handle_recognizing(evt):
            if evt.result.text:
                on_result(evt.result.text, False, evt.result.offset)

        def handle_recognized(evt):
            if evt.result.reason == speechsdk.ResultReason.RecognizedSpeech:
                on_result(evt.result.text, True, evt.result.offset)
            elif evt.result.reason == speechsdk.ResultReason.NoMatch:
                # Segment ended without words; close it with an empty final
                on_result("", True, evt.result.offset)

        def handle_canceled(evt):
            details = evt.cancellation_details
            if details.reason == speechsdk.CancellationReason.Error:
                on_error(_map_cancellation(details))
            else:
                on_end()

        recognizer.recognizing.connect(handle_recognizing)
        recognizer.recognized.connect(handle_recognized)
        recognizer.canceled.connect(handle_canceled)
        recognizer.session_stopped.connect(lambda evt: on_end())

        try:
            recognizer.start_continuous_recognition_async().get()
        except RuntimeError as e:
            raise CaptureError(f"Could not start recognition: {e}", kind=CaptureErrorKind.STREAM_FAILURE)
        self._recognizer = recognizer
        logger.info("Azure continuous recognition started")

    def stop(self) -> None:
        """Stop continuous recognition."""
        recognizer, self._recognizer = self._recognizer, None
        if recognizer is not None:
            recognizer.stop_continuous_recognition_async().get()
            logger.info("Azure continuous recognition stopped")
