"""
Async Orchestrator for VoiceCart.

Runs the per-utterance pipeline:
Final transcript → Emotion → Intent → Router (→ Payment) → Speech/Haptics
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from .capture import CaptureError, CaptureSession, SpeechRecognizer
from .capture.session import default_recorder_factory
from .catalog import Catalog
from .config import AssistantConfig
from .connectivity import ConnectivityError, ConnectivityMonitor
from .consent import ConsentGate
from .fallback import FallbackManager
from .memory import RedisClient
from .models import (
    AudioSample, CaptureEvent, Checkout, CheckoutRequest, ConnectivityState,
    DiscountOffer, EmotionState, Intent,
)
from .nlp import EmotionClassifier, IntentParser
from .payment import PaymentError, PaymentProcessor, SandboxPaymentProcessor
from .router import CommandRouter, RoutingError
from .tts import HapticPattern, ResponseSynthesizer

logger = logging.getLogger(__name__)

GENERIC_ERROR_RESPONSE = "Sorry, something went wrong on my end. Please try that again."
CLARIFY_RESPONSE = "Sorry, I didn't quite get that. Could you say it another way?"

CONSENT_PROMPT = (
    "Cool if I analyze your voice to personalize responses? This helps me "
    "understand your emotions and provide better service."
)
CONSENT_GRANTED_RESPONSE = (
    "Thanks! I'll now analyze your voice tone to better understand how you feel. "
    "You can revoke this anytime."
)
CONSENT_DECLINED_RESPONSE = (
    "No problem! I'll just use your words to help you shop. Emotion analysis is off."
)


class OrchestratorError(Exception):
    """Exception raised when the orchestrator cannot be set up or used."""

    def __init__(self, message: str, component: Optional[str] = None):
        self.component = component
        super().__init__(message)


class PipelineState(Enum):
    """Per-utterance pipeline states."""

    AWAITING_FINAL_TRANSCRIPT = "awaiting_final_transcript"
    CLASSIFYING = "classifying"
    ROUTING = "routing"
    SYNTHESIZING = "synthesizing"


@dataclass
class PipelineResult:
    """Result from a single utterance."""

    user_input: str
    assistant_response: str
    emotion: EmotionState = EmotionState.NEUTRAL
    intent: Optional[Intent] = None
    discount: Optional[DiscountOffer] = None
    cart: tuple = ()
    payment_reference: Optional[str] = None
    error: Optional[str] = None
    latency_ms: float = 0.0


@dataclass
class _Utterance:
    text: str
    audio: Optional[AudioSample]
    future: asyncio.Future = field(repr=False)


class Orchestrator:
    """
    Sequential control loop for the shopping assistant.

    Final transcripts are queued FIFO and processed one at a time by a
    single worker, so cart mutations apply in the order they were spoken.
    Every failure inside an utterance is turned into a spoken reply; the
    loop itself never stops on an utterance error.
    """

    def __init__(
        self,
        session_id: Optional[str] = None,
        catalog: Optional[Catalog] = None,
        consent: Optional[ConsentGate] = None,
        classifier: Optional[EmotionClassifier] = None,
        parser: Optional[IntentParser] = None,
        router: Optional[CommandRouter] = None,
        synthesizer: Optional[ResponseSynthesizer] = None,
        payment: Optional[PaymentProcessor] = None,
        connectivity: Optional[ConnectivityMonitor] = None,
        on_state_change: Optional[Callable[[PipelineState], None]] = None,
        on_transcription: Optional[Callable[[str], None]] = None,
        on_response: Optional[Callable[[str], None]] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            session_id: Session ID used in logs
            catalog: Product catalog
            consent: Consent gate (in-memory if not provided)
            classifier: Emotion classifier
            parser: Intent parser
            router: Command router
            synthesizer: Speech/haptic output (text-only if not provided)
            payment: Payment processor (sandbox if not provided)
            connectivity: Connectivity monitor
            on_state_change: Callback when pipeline state changes
            on_transcription: Callback when a final transcript is processed
            on_response: Callback when a reply is ready
        """
        self.session_id = session_id or self._generate_session_id()
        self.catalog = catalog or Catalog()
        self.consent = consent or ConsentGate()
        self.classifier = classifier or EmotionClassifier(self.consent)
        self.parser = parser or IntentParser(self.catalog)
        self.router = router or CommandRouter(self.catalog)
        self.synthesizer = synthesizer or ResponseSynthesizer()
        self.payment = payment or SandboxPaymentProcessor()
        self.connectivity = connectivity or ConnectivityMonitor()
        self.on_state_change = on_state_change
        self.on_transcription = on_transcription
        self.on_response = on_response

        self._state = PipelineState.AWAITING_FINAL_TRANSCRIPT
        self._cart: tuple = ()
        self._mood = EmotionState.NEUTRAL
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._running = False
        self.capture: Optional[CaptureSession] = None

        self.connectivity.add_listener(self._on_connectivity_change)

    @classmethod
    def from_config(cls, config: AssistantConfig, **kwargs) -> "Orchestrator":
        """
        Build an orchestrator wired to the configured services.

        Services without credentials are left out: no Azure key means
        text-only output, no Hume key means lexical emotion only, no
        payment URL means the sandbox processor.

        Raises:
            OrchestratorError: If a configured service fails to initialize
        """
        fallback = FallbackManager()
        store = RedisClient(host=config.redis_host, port=config.redis_port)
        consent = ConsentGate(store, version=config.consent_version)

        prosody = None
        if config.prosody_enabled:
            from .nlp import HumeProsodyClient
            prosody = HumeProsodyClient(api_key=config.hume_api_key, timeout=config.emotion_timeout_s)
        classifier = EmotionClassifier(
            consent,
            prosody=prosody,
            timeout=config.emotion_timeout_s,
            fallback=fallback
        )

        speech = None
        if config.azure_enabled:
            try:
                from .tts.azure_client import AzureTTSClient
                speech = AzureTTSClient(
                    speech_key=config.azure_speech_key,
                    speech_region=config.azure_speech_region,
                    voice=config.azure_voice,
                    language=config.speech_language
                )
            except Exception as e:
                raise OrchestratorError(f"Failed to initialize TTS: {e}", component="tts")

        payment = None
        if config.payment_api_url:
            from .payment import HttpPaymentClient
            payment = HttpPaymentClient(base_url=config.payment_api_url, api_key=config.payment_api_key)

        return cls(
            consent=consent,
            classifier=classifier,
            synthesizer=ResponseSynthesizer(speech=speech, fallback=fallback),
            payment=payment,
            **kwargs
        )

    @property
    def state(self) -> PipelineState:
        """Get current pipeline state."""
        return self._state

    @property
    def cart(self) -> tuple:
        """Current cart lines (immutable snapshot)."""
        return self._cart

    @property
    def mood(self) -> EmotionState:
        """Most recent non-neutral emotion of the session."""
        return self._mood

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def pending(self) -> int:
        """Number of utterances waiting to be processed."""
        return self._queue.qsize() if self._queue else 0

    def _set_state(self, state: PipelineState) -> None:
        """Update pipeline state and notify callback."""
        self._state = state
        self._notify(self.on_state_change, state)

    def _notify(self, callback: Optional[Callable], *args) -> None:
        """Run a host callback; a failing host never stops the worker."""
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception(f"Host callback {getattr(callback, '__name__', callback)!r} failed")

    def _generate_session_id(self) -> str:
        """Generate a unique session ID."""
        return f"session-{uuid.uuid4().hex[:8]}"

    # Lifecycle

    async def start(self) -> None:
        """Start the utterance worker on the running event loop."""
        if self._running:
            return
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._worker = self._loop.create_task(self._run())
        self._running = True
        logger.info(f"Orchestrator {self.session_id} started")

    async def shutdown(self) -> None:
        """Stop capture, the worker and any speech in progress."""
        self._running = False
        if self.capture is not None:
            self.capture.stop()
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
        self.synthesizer.stop()
        self._set_state(PipelineState.AWAITING_FINAL_TRANSCRIPT)
        logger.info(f"Orchestrator {self.session_id} stopped")

    async def drain(self) -> None:
        """Wait until every queued utterance has been processed."""
        if self._queue is not None:
            await self._queue.join()

    # Input

    def submit(
        self,
        event: CaptureEvent,
        audio: Optional[AudioSample] = None
    ) -> Optional[asyncio.Future]:
        """
        Queue a capture event for processing.

        Interim events are ignored. Must be called on the event loop.

        Returns:
            Future resolving to the PipelineResult, or None for interim events
        """
        if not event.is_final:
            return None
        if not self._running:
            raise OrchestratorError("Orchestrator not started. Call start() first.")
        future = self._loop.create_future()
        self._queue.put_nowait(_Utterance(text=event.text, audio=audio, future=future))
        return future

    def submit_threadsafe(self, event: CaptureEvent, audio: Optional[AudioSample] = None) -> None:
        """Queue a capture event from a non-loop thread (recognizer callbacks)."""
        if self._loop is None or not self._running:
            logger.warning("Dropping final transcript: orchestrator not running")
            return
        self._loop.call_soon_threadsafe(self.submit, event, audio)

    async def process_text(self, text: str, audio: Optional[AudioSample] = None) -> PipelineResult:
        """
        Process one utterance and wait for its result.

        The utterance is queued behind any earlier ones.

        Args:
            text: Final transcript
            audio: Correlated audio sample, if any

        Returns:
            Pipeline result with response and metadata
        """
        if not self._running:
            await self.start()
        return await self.submit(CaptureEvent(text=text, is_final=True, sequence=-1), audio)

    # Worker

    async def _run(self) -> None:
        while True:
            utterance = await self._queue.get()
            try:
                result = await self._process(utterance.text, utterance.audio)
            except Exception:
                logger.exception(f"Unhandled error while processing {utterance.text!r}")
                result = PipelineResult(
                    user_input=utterance.text,
                    assistant_response=GENERIC_ERROR_RESPONSE,
                    error="pipeline",
                    cart=self._cart
                )
                self._set_state(PipelineState.AWAITING_FINAL_TRANSCRIPT)
            try:
                if not utterance.future.done():
                    utterance.future.set_result(result)
            finally:
                self._queue.task_done()

    async def _process(self, text: str, audio: Optional[AudioSample]) -> PipelineResult:
        start_time = time.perf_counter()
        result = PipelineResult(user_input=text, assistant_response="")
        haptic = HapticPattern.CONFIRM

        self._notify(self.on_transcription, text)

        try:
            self._set_state(PipelineState.CLASSIFYING)
            result.emotion = await self.classifier.classify(text, audio)
            if result.emotion != EmotionState.NEUTRAL:
                self._mood = result.emotion

            self._set_state(PipelineState.ROUTING)
            result.intent = self.parser.parse(text)
            if isinstance(result.intent, Checkout):
                self.connectivity.require_online()

            route = self.router.route(result.intent, self._mood, self._cart)
            self._cart = route.cart
            result.discount = route.discount
            response = route.response

            if route.checkout is not None:
                result.payment_reference = await self._charge(route.checkout)
                self._cart = ()
                self._mood = EmotionState.NEUTRAL
                response = (
                    f"{response} Payment complete. "
                    f"Your confirmation number is {result.payment_reference}."
                )
            result.assistant_response = response

        except ConnectivityError as e:
            result.assistant_response = str(e)
            result.error = "offline"
            haptic = HapticPattern.ERROR
        except PaymentError as e:
            result.assistant_response = (
                f"Payment failed: {e} (code {e.reason_code}). "
                "Your cart is still saved, so you can try again."
            )
            result.error = f"payment:{e.reason_code}"
            haptic = HapticPattern.ERROR
        except RoutingError as e:
            logger.warning(f"Routing error: {e}")
            result.assistant_response = CLARIFY_RESPONSE
            result.error = "routing"
            haptic = HapticPattern.ERROR
        except Exception:
            logger.exception(f"Pipeline error while processing {text!r}")
            result.assistant_response = GENERIC_ERROR_RESPONSE
            result.error = "pipeline"
            haptic = HapticPattern.ERROR

        result.cart = self._cart
        self._set_state(PipelineState.SYNTHESIZING)
        self._emit(result.assistant_response, result.emotion, haptic)

        result.latency_ms = (time.perf_counter() - start_time) * 1000
        self._set_state(PipelineState.AWAITING_FINAL_TRANSCRIPT)
        return result

    async def _charge(self, request: CheckoutRequest) -> str:
        """Charge the payment processor off the event loop."""
        self.connectivity.require_online()
        loop = asyncio.get_running_loop()
        payment = await loop.run_in_executor(
            None,
            lambda: self.payment.charge(request.amount, request.summary)
        )
        if not payment.success:
            raise PaymentError("The payment was declined.", reason_code="declined")
        logger.info(f"Charged {request.amount:.2f} ({payment.reference})")
        return payment.reference

    def _emit(self, text: str, emotion: EmotionState, haptic: Optional[HapticPattern] = None) -> None:
        """Speak a reply and notify the response callback."""
        try:
            self.synthesizer.speak(text, emotion)
            if haptic is not None:
                self.synthesizer.vibrate(haptic)
        except Exception as e:
            logger.warning(f"Output failed: {e}")
        self._notify(self.on_response, text)

    # Consent

    @property
    def consent_prompt_needed(self) -> bool:
        """True until the user made a consent decision."""
        return not self.consent.has_decision

    def request_consent(self) -> str:
        """Speak the consent question and return its text."""
        self._emit(CONSENT_PROMPT, EmotionState.NEUTRAL)
        return CONSENT_PROMPT

    def set_consent(self, granted: bool) -> str:
        """Record the user's consent decision and acknowledge it."""
        self.consent.set_consent(granted)
        if granted:
            self._emit(CONSENT_GRANTED_RESPONSE, EmotionState.HAPPY, HapticPattern.CONFIRM)
            return CONSENT_GRANTED_RESPONSE
        self._emit(CONSENT_DECLINED_RESPONSE, EmotionState.NEUTRAL, HapticPattern.CONFIRM)
        return CONSENT_DECLINED_RESPONSE

    # Collaborator events

    def _on_connectivity_change(self, state: ConnectivityState) -> None:
        if state == ConnectivityState.ONLINE:
            self._emit("Connection restored", EmotionState.NEUTRAL)
        else:
            self._emit("Offline mode activated", EmotionState.NEUTRAL, HapticPattern.OFFLINE)

    def attach_capture(
        self,
        recognizer: Optional[SpeechRecognizer],
        recorder_factory=default_recorder_factory,
        on_interim: Optional[Callable] = None
    ) -> CaptureSession:
        """
        Create a capture session feeding this orchestrator.

        Final events hop onto the event loop; capture errors are announced
        once and the session is left idle for the user to re-activate.
        """
        self.capture = CaptureSession(
            recognizer=recognizer,
            consent=self.consent,
            recorder_factory=recorder_factory,
            on_final=self.submit_threadsafe,
            on_interim=on_interim,
            on_error=self._on_capture_error
        )
        return self.capture

    def _on_capture_error(self, error: CaptureError) -> None:
        if self._loop is not None and self._running:
            self._loop.call_soon_threadsafe(self._emit, error.user_message, EmotionState.NEUTRAL, HapticPattern.ERROR)
        else:
            self._emit(error.user_message, EmotionState.NEUTRAL, HapticPattern.ERROR)

    # Interactive mode

    async def run_interactive(self, use_voice: bool = False, recognizer: Optional[SpeechRecognizer] = None) -> None:
        """
        Run the assistant in interactive mode.

        Args:
            use_voice: If True, listen continuously on the microphone
            recognizer: Speech recognizer for voice mode
        """
        mode = "Voice" if use_voice else "Text"
        print("\n" + "=" * 50)
        print(f"VoiceCart - Interactive Mode ({mode})")
        print("=" * 50)
        print(f"Session ID: {self.session_id}")
        print("Commands: 'consent on|off', 'online', 'offline', 'cart', 'quit'")
        if use_voice:
            print("Speak into your microphone. Type 'mic' to re-activate listening.")
        print("=" * 50 + "\n")

        await self.start()
        loop = asyncio.get_running_loop()

        if self.consent_prompt_needed:
            print(f"Assistant: {self.request_consent()}")
            answer = await loop.run_in_executor(None, input, "Allow voice tone analysis? [y/N]: ")
            print(f"Assistant: {self.set_consent(answer.strip().lower() in ('y', 'yes'))}")

        if use_voice:
            self.attach_capture(
                recognizer,
                on_interim=lambda event: print(f"  ... {event.text}", end="\r")
            )
            self.capture.start()

        while self._running:
            try:
                user_input = (await loop.run_in_executor(None, input, "\nYou: ")).strip()
            except (EOFError, KeyboardInterrupt):
                print("\n\nInterrupted. Shutting down...")
                break

            command = user_input.lower()
            if not command:
                continue
            if command in ("quit", "exit", "q"):
                print("\nGoodbye!")
                break
            if command in ("consent on", "consent off"):
                print(f"Assistant: {self.set_consent(command.endswith('on'))}")
                continue
            if command in ("online", "offline"):
                self.connectivity.set_online(command == "online")
                continue
            if command == "mic" and self.capture is not None:
                self.capture.start()
                continue
            if command == "cart":
                for line in self._cart:
                    print(f"  {line.name} x{line.quantity} @ ${line.unit_price:.2f}")
                continue

            result = await self.process_text(user_input)
            if not self.on_response:
                print(f"\nAssistant: {result.assistant_response}")
            print(f"  [emotion: {result.emotion.value}, mood: {self._mood.value}, "
                  f"latency: {result.latency_ms:.0f}ms]")

        await self.shutdown()
