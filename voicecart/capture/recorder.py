"""
Microphone audio side-stream for consented voice-tone analysis.

Buffers raw samples while a capture session is listening and cuts one
AudioSample per utterance. Buffers are only ever kept in memory and are
dropped on discard().
"""

import logging
import threading
from typing import Optional

import numpy as np
import sounddevice as sd

from ..models import AudioSample
from .errors import CaptureError, CaptureErrorKind

logger = logging.getLogger(__name__)


class AudioRecorder:
    """
    sounddevice-backed recorder.

    The PortAudio callback runs on its own thread, so the chunk buffer is
    guarded by a lock.
    """

    def __init__(
        self,
        sample_rate: int = 16000,
        max_seconds: float = 30.0,
        device: Optional[int] = None
    ):
        """
        Initialize the recorder.

        Args:
            sample_rate: Capture sample rate in Hz
            max_seconds: Oldest audio beyond this length is dropped
            device: sounddevice input device index (None for default)
        """
        self.sample_rate = sample_rate
        self.max_samples = int(sample_rate * max_seconds)
        self.device = device
        self.session_id: Optional[str] = None
        self._stream: Optional[sd.InputStream] = None
        self._chunks: list[np.ndarray] = []
        self._buffered = 0
        self._lock = threading.Lock()

    @property
    def is_recording(self) -> bool:
        return self._stream is not None

    def _callback(self, indata, frames, time_info, status) -> None:
        if status:
            logger.debug(f"Audio input status: {status}")
        chunk = indata[:, 0].copy()
        with self._lock:
            self._chunks.append(chunk)
            self._buffered += len(chunk)
            while self._buffered > self.max_samples and len(self._chunks) > 1:
                self._buffered -= len(self._chunks.pop(0))

    def start(self, session_id: str) -> None:
        """
        Open the input stream.

        Raises:
            CaptureError: If the microphone cannot be opened
        """
        if self._stream is not None:
            return
        self.session_id = session_id
        try:
            stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=1,
                dtype="float32",
                device=self.device,
                callback=self._callback
            )
            stream.start()
        except sd.PortAudioError as e:
            raise CaptureError(f"Could not open microphone: {e}", kind=CaptureErrorKind.STREAM_FAILURE)
        self._stream = stream
        logger.info(f"Audio recording started for session {session_id}")

    def cut(self) -> Optional[AudioSample]:
        """Take the audio buffered since the previous cut."""
        with self._lock:
            chunks, self._chunks, self._buffered = self._chunks, [], 0
        if not chunks or self.session_id is None:
            return None
        return AudioSample(
            samples=np.concatenate(chunks),
            sample_rate=self.sample_rate,
            session_id=self.session_id
        )

    def discard(self) -> None:
        """Drop any buffered audio."""
        with self._lock:
            self._chunks = []
            self._buffered = 0

    def stop(self) -> None:
        """Close the input stream and drop buffered audio."""
        stream, self._stream = self._stream, None
        if stream is not None:
            try:
                stream.stop()
                stream.close()
            except sd.PortAudioError as e:
                logger.warning(f"Error closing audio stream: {e}")
            logger.info(f"Audio recording stopped for session {self.session_id}")
        self.discard()
        self.session_id = None
