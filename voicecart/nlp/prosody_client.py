"""
Hume prosody client for VoiceCart.

Sends a consented audio sample to the Hume batch API and maps the
prosody model's emotion scores onto the assistant's four states.
"""

import io
import os
import time
import wave
import logging
from typing import Optional

import numpy as np
import requests

from ..models import AudioSample, EmotionState

logger = logging.getLogger(__name__)

HUME_API_URL = "https://api.hume.ai/v0/batch/jobs"

# Hume prosody emotion names grouped by the state they indicate
PROSODY_EMOTION_MAP = {
    EmotionState.FRUSTRATED: (
        "Anger", "Annoyance", "Contempt", "Disappointment", "Distress", "Disgust",
    ),
    EmotionState.HAPPY: (
        "Joy", "Amusement", "Contentment", "Excitement", "Satisfaction", "Love",
    ),
    EmotionState.CONFUSED: (
        "Confusion", "Doubt", "Awkwardness", "Realization",
    ),
}

# Below this aggregated score the sample is considered neutral
MIN_SCORE = 0.2


class ClassificationError(Exception):
    """Exception raised when external emotion inference fails."""

    def __init__(self, message: str, reason: Optional[str] = None):
        self.reason = reason
        super().__init__(message)


class HumeProsodyClient:
    """
    Client for Hume's batch prosody model.

    Each call submits one job, polls it until completion and reads the
    predictions. The whole call is bounded by `timeout`.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = HUME_API_URL,
        timeout: float = 3.0,
        poll_interval: float = 0.25
    ):
        """
        Initialize the Hume client.

        Args:
            api_key: Hume API key (defaults to HUME_API_KEY env var)
            base_url: Batch jobs endpoint
            timeout: Overall deadline in seconds for one analysis
            poll_interval: Seconds between job status checks
        """
        self.api_key = api_key or os.getenv("HUME_API_KEY")
        if not self.api_key:
            raise ValueError(
                "Hume API key not provided. "
                "Set HUME_API_KEY environment variable or pass api_key parameter."
            )
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._session = requests.Session()
        self._session.headers.update({"X-Hume-Api-Key": self.api_key})

    def _numpy_to_wav_bytes(self, audio_array: np.ndarray, sample_rate: int) -> bytes:
        """Convert a numpy audio array to mono 16-bit WAV bytes."""
        if audio_array.dtype != np.int16:
            # Convert float32 [-1, 1] to int16
            audio_array = (np.clip(audio_array, -1.0, 1.0) * 32767).astype(np.int16)

        wav_buffer = io.BytesIO()
        with wave.open(wav_buffer, 'wb') as wav_file:
            wav_file.setnchannels(1)
            wav_file.setsampwidth(2)
            wav_file.setframerate(sample_rate)
            wav_file.writeframes(audio_array.tobytes())

        return wav_buffer.getvalue()

    def analyze(self, sample: AudioSample) -> EmotionState:
        """
        Classify the emotional tone of an audio sample.

        Args:
            sample: Consented audio sample

        Returns:
            Inferred EmotionState

        Raises:
            ClassificationError: On HTTP failure, job failure or deadline
        """
        deadline = time.monotonic() + self.timeout
        wav_bytes = self._numpy_to_wav_bytes(sample.samples, sample.sample_rate)

        try:
            response = self._session.post(
                self.base_url,
                data={"json": '{"models": {"prosody": {}}}'},
                files={"file": (f"{sample.session_id}.wav", wav_bytes, "audio/wav")},
                timeout=self._remaining(deadline)
            )
            response.raise_for_status()
            job_id = response.json()["job_id"]

            self._wait_for_job(job_id, deadline)

            response = self._session.get(
                f"{self.base_url}/{job_id}/predictions",
                timeout=self._remaining(deadline)
            )
            response.raise_for_status()
            predictions = response.json()
        except requests.RequestException as e:
            raise ClassificationError(f"Prosody request failed: {e}", reason="http")
        except (KeyError, ValueError) as e:
            raise ClassificationError(f"Unexpected prosody response: {e}", reason="format")

        return self.emotion_from_predictions(predictions)

    def _remaining(self, deadline: float) -> float:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise ClassificationError("Prosody analysis timed out", reason="timeout")
        return remaining

    def _wait_for_job(self, job_id: str, deadline: float) -> None:
        while True:
            response = self._session.get(
                f"{self.base_url}/{job_id}",
                timeout=self._remaining(deadline)
            )
            response.raise_for_status()
            status = response.json()["state"]["status"]
            if status == "COMPLETED":
                return
            if status == "FAILED":
                raise ClassificationError(f"Prosody job {job_id} failed", reason="job_failed")
            time.sleep(min(self.poll_interval, self._remaining(deadline)))

    @staticmethod
    def emotion_from_predictions(predictions: list) -> EmotionState:
        """
        Aggregate Hume prosody scores into an EmotionState.

        Scores of every prediction segment are averaged per emotion name,
        then summed per state; the highest state wins if it clears MIN_SCORE.
        """
        totals: dict[str, list[float]] = {}
        for source in predictions:
            for result in source.get("results", {}).get("predictions", []):
                prosody = result.get("models", {}).get("prosody", {})
                for group in prosody.get("grouped_predictions", []):
                    for segment in group.get("predictions", []):
                        for emotion in segment.get("emotions", []):
                            totals.setdefault(emotion["name"], []).append(float(emotion["score"]))

        averages = {name: sum(scores) / len(scores) for name, scores in totals.items()}

        best_state = EmotionState.NEUTRAL
        best_score = MIN_SCORE
        for state, names in PROSODY_EMOTION_MAP.items():
            score = sum(averages.get(name, 0.0) for name in names)
            if score > best_score:
                best_state, best_score = state, score

        logger.debug(f"Prosody scores resolved to {best_state.value} ({best_score:.2f})")
        return best_state
