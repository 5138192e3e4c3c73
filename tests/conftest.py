"""Shared pytest fixtures and collaborator fakes."""

from typing import Optional

import numpy as np
import pytest
import pytest_asyncio

from voicecart.capture import CaptureError, CaptureErrorKind
from voicecart.catalog import Catalog
from voicecart.connectivity import ConnectivityMonitor
from voicecart.consent import ConsentGate
from voicecart.memory import RedisClient, SimpleRedis
from voicecart.models import AudioSample, EmotionState
from voicecart.nlp import EmotionClassifier
from voicecart.orchestrator import Orchestrator
from voicecart.payment import PaymentError, PaymentResult
from voicecart.tts import ResponseSynthesizer


# =============================================================================
# Fakes
# =============================================================================


class FakeSpeech:
    """Records speech output calls."""

    def __init__(self, fail: bool = False):
        self.spoken: list[tuple[str, EmotionState]] = []
        self.stop_calls = 0
        self.fail = fail
        self._speaking = False

    @property
    def is_speaking(self) -> bool:
        return self._speaking

    def start_speaking(self, text, emotion):
        if self.fail:
            raise RuntimeError("speaker unplugged")
        self.spoken.append((text, emotion))
        self._speaking = True

    def stop_speaking(self):
        self.stop_calls += 1
        self._speaking = False


class FakeHaptics:
    """Records vibration patterns."""

    def __init__(self):
        self.patterns: list[list[int]] = []

    def vibrate(self, pattern):
        self.patterns.append(list(pattern))


class FakePayment:
    """Payment processor double."""

    def __init__(self, error: Optional[PaymentError] = None):
        self.calls: list[tuple[float, str]] = []
        self.error = error

    def charge(self, amount, cart_summary):
        self.calls.append((amount, cart_summary))
        if self.error is not None:
            raise self.error
        return PaymentResult(success=True, reference=f"ref-{len(self.calls)}")


class FakeRecognizer:
    """Speech recognizer double driven by the test."""

    def __init__(self, start_error: Optional[CaptureError] = None):
        self.start_calls = 0
        self.stop_calls = 0
        self.start_error = start_error
        self._on_result = None
        self._on_error = None
        self._on_end = None

    def start(self, on_result, on_error, on_end):
        self.start_calls += 1
        if self.start_error is not None:
            raise self.start_error
        self._on_result, self._on_error, self._on_end = on_result, on_error, on_end

    def stop(self):
        self.stop_calls += 1

    def emit(self, text, is_final, segment=None):
        self._on_result(text, is_final, segment)

    def fail(self, kind=CaptureErrorKind.NO_SPEECH):
        self._on_error(CaptureError("recognizer failed", kind=kind))

    def end(self):
        self._on_end()


class FakeRecorder:
    """Audio recorder double."""

    def __init__(self):
        self.session_id = None
        self.stopped = False
        self.cuts = 0
        self.discards = 0

    def start(self, session_id):
        self.session_id = session_id

    def cut(self):
        self.cuts += 1
        return AudioSample(
            samples=np.zeros(1600, dtype=np.float32),
            sample_rate=16000,
            session_id=self.session_id
        )

    def discard(self):
        self.discards += 1

    def stop(self):
        self.stopped = True


class ForbiddenAudio:
    """Audio sample that fails the test when anything reads it."""

    def __getattr__(self, name):
        raise AssertionError(f"audio sample accessed: {name}")


class FailingStore:
    """Persistence that always fails."""

    def get_json(self, key):
        raise ConnectionError("store down")

    def set_json(self, key, value):
        raise ConnectionError("store down")


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def store():
    return RedisClient(client=SimpleRedis())


@pytest.fixture
def failing_store():
    return FailingStore()


@pytest.fixture
def consent(store):
    return ConsentGate(store)


@pytest.fixture
def catalog():
    return Catalog()


@pytest.fixture
def speech():
    return FakeSpeech()


@pytest.fixture
def haptics():
    return FakeHaptics()


@pytest.fixture
def payment():
    return FakePayment()


@pytest.fixture
def connectivity():
    return ConnectivityMonitor()


@pytest.fixture
def forbidden_audio():
    return ForbiddenAudio()


@pytest.fixture
def sample():
    return AudioSample(
        samples=np.zeros(16000, dtype=np.float32),
        sample_rate=16000,
        session_id="capture-test"
    )


@pytest.fixture
def make_orchestrator(consent, catalog, speech, haptics, payment, connectivity):
    """Factory building an orchestrator wired to fakes."""

    def factory(**overrides):
        kwargs = dict(
            session_id="session-test",
            catalog=catalog,
            consent=consent,
            classifier=EmotionClassifier(consent),
            synthesizer=ResponseSynthesizer(speech=speech, haptics=haptics),
            payment=payment,
            connectivity=connectivity,
        )
        kwargs.update(overrides)
        return Orchestrator(**kwargs)

    return factory


@pytest_asyncio.fixture
async def orchestrator(make_orchestrator):
    orch = make_orchestrator()
    await orch.start()
    yield orch
    await orch.shutdown()
