"""Capture error types."""

from enum import Enum


class CaptureErrorKind(Enum):
    """Why voice capture stopped."""

    UNSUPPORTED = "unsupported"
    PERMISSION_DENIED = "permission_denied"
    NO_SPEECH = "no_speech"
    NETWORK = "network"
    STREAM_FAILURE = "stream_failure"


# Kinds the user may retry by re-activating the microphone
RETRYABLE_KINDS = {
    CaptureErrorKind.NO_SPEECH,
    CaptureErrorKind.NETWORK,
    CaptureErrorKind.STREAM_FAILURE,
}

USER_MESSAGES = {
    CaptureErrorKind.UNSUPPORTED: "Speech recognition isn't available here. You can still type your requests.",
    CaptureErrorKind.PERMISSION_DENIED: "Microphone access denied. Please enable microphone permissions.",
    CaptureErrorKind.NO_SPEECH: "I didn't hear anything. Turn the microphone on again when you're ready.",
    CaptureErrorKind.NETWORK: "Voice recognition lost its connection. Turn the microphone on again to retry.",
    CaptureErrorKind.STREAM_FAILURE: "Voice recognition stopped unexpectedly. Turn the microphone on again to retry.",
}


class CaptureError(Exception):
    """Exception raised when voice capture fails."""

    def __init__(self, message: str, kind: CaptureErrorKind = CaptureErrorKind.STREAM_FAILURE):
        self.kind = kind
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    @property
    def user_message(self) -> str:
        return USER_MESSAGES[self.kind]
