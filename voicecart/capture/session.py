"""
Capture session for VoiceCart.

Owns the continuous listening state machine (IDLE <-> LISTENING) and
turns recognizer callbacks into a typed stream of CaptureEvents. Only
final events, one per utterance, are forwarded downstream.
"""

import uuid
import logging
import threading
from enum import Enum
from typing import Callable, Optional, Protocol

from ..consent import ConsentGate
from ..models import AudioSample, CaptureEvent, ConsentState
from .errors import CaptureError, CaptureErrorKind

logger = logging.getLogger(__name__)


class CaptureState(Enum):
    """States of the capture session."""

    IDLE = "idle"
    LISTENING = "listening"


class SpeechRecognizer(Protocol):
    """Continuous speech recognition capability."""

    def start(
        self,
        on_result: Callable[[str, bool, Optional[int]], None],
        on_error: Callable[[CaptureError], None],
        on_end: Callable[[], None]
    ) -> None: ...

    def stop(self) -> None: ...


class Recorder(Protocol):
    """Audio side-stream used for consented tone analysis."""

    def start(self, session_id: str) -> None: ...

    def cut(self) -> Optional[AudioSample]: ...

    def discard(self) -> None: ...

    def stop(self) -> None: ...


def default_recorder_factory() -> Recorder:
    """Build the sounddevice recorder (imported lazily: needs PortAudio)."""
    from .recorder import AudioRecorder
    return AudioRecorder()


class CaptureSession:
    """
    Continuous microphone capture.

    start() is idempotent while listening. The session never restarts
    itself after an error; re-activation is always a user action.
    """

    def __init__(
        self,
        recognizer: Optional[SpeechRecognizer],
        consent: ConsentGate,
        recorder_factory: Optional[Callable[[], Recorder]] = default_recorder_factory,
        on_final: Optional[Callable[[CaptureEvent, Optional[AudioSample]], None]] = None,
        on_interim: Optional[Callable[[CaptureEvent], None]] = None,
        on_error: Optional[Callable[[CaptureError], None]] = None,
        on_state_change: Optional[Callable[[CaptureState], None]] = None
    ):
        """
        Initialize the capture session.

        Args:
            recognizer: Speech recognizer, None when the platform has none
            consent: Consent gate; audio is only recorded when granted
            recorder_factory: Builds the audio side-stream recorder
            on_final: Callback for each final event with its audio sample
            on_interim: Callback for interim events (display only)
            on_error: Callback for capture errors
            on_state_change: Callback when the capture state changes
        """
        self.recognizer = recognizer
        self.consent = consent
        self.recorder_factory = recorder_factory
        self.on_final = on_final
        self.on_interim = on_interim
        self.on_error = on_error
        self.on_state_change = on_state_change

        self._state = CaptureState.IDLE
        self._lock = threading.RLock()
        self._recorder: Optional[Recorder] = None
        self._sequence = 0
        self.session_id: Optional[str] = None
        self.interim_text = ""
        # Recognizer segment of the last final; a second final for it is a repeat
        self._final_segment: Optional[int] = None
        self.error: Optional[CaptureError] = None
        self.voice_disabled = False

        if recognizer is None:
            self.error = CaptureError(
                "Speech recognition not supported on this platform",
                kind=CaptureErrorKind.UNSUPPORTED
            )
            self.voice_disabled = True

        consent.add_listener(self._on_consent_change)

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def is_listening(self) -> bool:
        return self._state == CaptureState.LISTENING

    @property
    def is_recording_audio(self) -> bool:
        return self._recorder is not None

    def _set_state(self, state: CaptureState) -> None:
        if state == self._state:
            return
        self._state = state
        if self.on_state_change:
            self.on_state_change(state)

    def start(self) -> bool:
        """
        Begin listening.

        Returns:
            True if the session is listening after the call.
        """
        with self._lock:
            if self._state == CaptureState.LISTENING:
                return True
            if self.voice_disabled:
                self._report(self.error)
                return False

            self.error = None
            self.interim_text = ""
            self.session_id = f"capture-{uuid.uuid4().hex[:8]}"
            try:
                self.recognizer.start(self._handle_result, self._handle_error, self._handle_end)
            except CaptureError as e:
                self._fail(e)
                return False

            self._set_state(CaptureState.LISTENING)
            if self.consent.granted:
                self._start_recorder()
            logger.info(f"Capture session {self.session_id} listening")
            return True

    def stop(self) -> None:
        """Stop listening and discard any in-flight utterance."""
        with self._lock:
            if self._state == CaptureState.IDLE:
                return
            self._teardown()

        # Outside the lock: the recognizer may deliver its end callback
        # synchronously while stopping.
        try:
            self.recognizer.stop()
        except (CaptureError, RuntimeError) as e:
            logger.warning(f"Error stopping recognizer: {e}")
        logger.info(f"Capture session {self.session_id} stopped")

    def _teardown(self) -> None:
        self._stop_recorder()
        self.interim_text = ""
        self._final_segment = None
        self._sequence += 1
        self._set_state(CaptureState.IDLE)

    def _start_recorder(self) -> None:
        if self._recorder is not None or self.recorder_factory is None:
            return
        recorder = self.recorder_factory()
        try:
            recorder.start(self.session_id)
        except CaptureError as e:
            # Tone analysis is optional; keep listening on transcript only
            logger.warning(f"Audio side-stream unavailable: {e}")
            return
        self._recorder = recorder

    def _stop_recorder(self) -> None:
        recorder, self._recorder = self._recorder, None
        if recorder is not None:
            recorder.stop()

    def _on_consent_change(self, state: ConsentState) -> None:
        with self._lock:
            if not state.granted:
                self._stop_recorder()
            elif self._state == CaptureState.LISTENING:
                self._start_recorder()

    def _handle_result(self, text: str, is_final: bool, segment: Optional[int] = None) -> None:
        with self._lock:
            if self._state != CaptureState.LISTENING:
                return
            event = CaptureEvent(text=text, is_final=is_final, sequence=self._sequence)

            if not is_final:
                self.interim_text = text
                if self.on_interim:
                    self.on_interim(event)
                return

            if segment is not None and segment == self._final_segment:
                logger.debug(f"Dropping repeated final for segment {segment}")
                return
            self._final_segment = segment

            self._sequence += 1
            self.interim_text = ""
            if not text.strip():
                # No words in this segment; its audio belongs to no utterance
                if self._recorder is not None:
                    self._recorder.discard()
                return
            sample = self._recorder.cut() if self._recorder is not None else None

        if self.on_final:
            self.on_final(event, sample)

    def _handle_error(self, error: CaptureError) -> None:
        with self._lock:
            if self._state != CaptureState.LISTENING:
                return
            self._fail(error)

    def _handle_end(self) -> None:
        with self._lock:
            if self._state != CaptureState.LISTENING:
                return
            logger.info(f"Capture session {self.session_id} ended by recognizer")
            self._teardown()

    def _fail(self, error: CaptureError) -> None:
        self.error = error
        if error.kind in (CaptureErrorKind.PERMISSION_DENIED, CaptureErrorKind.UNSUPPORTED):
            self.voice_disabled = True
        logger.warning(f"Capture error ({error.kind.value}): {error}")
        self._teardown()
        self._report(error)

    def _report(self, error: Optional[CaptureError]) -> None:
        if error is not None and self.on_error:
            self.on_error(error)
