"""Tests for the async orchestrator pipeline."""

import asyncio

import pytest

from voicecart.capture import CaptureErrorKind, CaptureState
from voicecart.models import CaptureEvent, EmotionState
from voicecart.orchestrator import (
    CLARIFY_RESPONSE,
    CONSENT_DECLINED_RESPONSE,
    CONSENT_GRANTED_RESPONSE,
    GENERIC_ERROR_RESPONSE,
    OrchestratorError,
    PipelineState,
)
from voicecart.payment import PaymentError
from voicecart.router import CommandRouter, RoutingError

from conftest import FakePayment, FakeRecognizer, FakeRecorder

CONFIRM = [100]
ERROR = [100, 50, 100]
OFFLINE = [200, 100, 200, 100, 200]


class SlowClassifier:
    """Classifier that takes longer for earlier utterances and logs its calls."""

    def __init__(self, delays: dict):
        self.delays = delays
        self.log: list[str] = []

    async def classify(self, transcript, audio_sample=None):
        self.log.append(f"start {transcript}")
        await asyncio.sleep(self.delays.get(transcript, 0))
        self.log.append(f"end {transcript}")
        return EmotionState.NEUTRAL


class FlakyRouter(CommandRouter):
    """Router that raises once, then routes normally."""

    def __init__(self, error: Exception):
        super().__init__()
        self.error = error

    def route(self, intent, emotion, cart):
        if self.error is not None:
            error, self.error = self.error, None
            raise error
        return super().route(intent, emotion, cart)


def final(text, sequence=0):
    return CaptureEvent(text=text, is_final=True, sequence=sequence)


class TestPipeline:
    """Tests for single-utterance processing."""

    @pytest.mark.asyncio
    async def test_add_earbuds(self, orchestrator, speech, haptics):
        result = await orchestrator.process_text("Add earbuds to cart")

        assert [line.product_id for line in result.cart] == [1]
        assert orchestrator.cart == result.cart
        assert "Wireless Earbuds" in result.assistant_response
        assert speech.spoken[-1][0] == result.assistant_response
        assert haptics.patterns[-1] == CONFIRM
        assert result.error is None

    @pytest.mark.asyncio
    async def test_state_transitions(self, make_orchestrator):
        states = []
        orch = make_orchestrator(on_state_change=states.append)
        await orch.start()
        try:
            await orch.process_text("show me electronics")
        finally:
            await orch.shutdown()

        assert states[:4] == [
            PipelineState.CLASSIFYING,
            PipelineState.ROUTING,
            PipelineState.SYNTHESIZING,
            PipelineState.AWAITING_FINAL_TRANSCRIPT,
        ]
        assert orch.state == PipelineState.AWAITING_FINAL_TRANSCRIPT

    @pytest.mark.asyncio
    async def test_response_and_transcription_callbacks(self, make_orchestrator):
        transcripts, responses = [], []
        orch = make_orchestrator(on_transcription=transcripts.append, on_response=responses.append)
        await orch.start()
        try:
            result = await orch.process_text("what's in my cart")
        finally:
            await orch.shutdown()

        assert transcripts == ["what's in my cart"]
        assert responses == [result.assistant_response]
        assert result.assistant_response == "Your cart is empty."

    @pytest.mark.asyncio
    async def test_frustration_earns_discount(self, orchestrator, speech):
        """Test that a complaint followed by a discount request gets 15% off."""
        complaint = await orchestrator.process_text("This is too expensive")
        assert complaint.emotion == EmotionState.FRUSTRATED
        assert orchestrator.mood == EmotionState.FRUSTRATED
        assert speech.spoken[-1][1] == EmotionState.FRUSTRATED

        result = await orchestrator.process_text("give me a discount")

        assert result.discount.percentage == 15
        assert "15% off" in result.assistant_response

    @pytest.mark.asyncio
    async def test_neutral_discount_request(self, orchestrator):
        result = await orchestrator.process_text("give me a discount")
        assert result.discount is None

    @pytest.mark.asyncio
    async def test_process_text_starts_worker(self, make_orchestrator):
        orch = make_orchestrator()
        try:
            result = await orch.process_text("show cart")
            assert orch.is_running is True
            assert result.assistant_response == "Your cart is empty."
        finally:
            await orch.shutdown()


class TestOrdering:
    """Tests for FIFO utterance processing."""

    @pytest.mark.asyncio
    async def test_utterances_processed_in_arrival_order(self, make_orchestrator):
        classifier = SlowClassifier({"add earbuds": 0.05})
        orch = make_orchestrator(classifier=classifier)
        await orch.start()
        try:
            first = orch.submit(final("add earbuds", 0))
            second = orch.submit(final("add a desk lamp", 1))
            assert orch.pending == 2
            results = await asyncio.gather(first, second)
        finally:
            await orch.shutdown()

        assert classifier.log == [
            "start add earbuds",
            "end add earbuds",
            "start add a desk lamp",
            "end add a desk lamp",
        ]
        assert [line.product_id for line in results[0].cart] == [1]
        assert [line.product_id for line in results[1].cart] == [1, 4]

    @pytest.mark.asyncio
    async def test_interim_events_ignored(self, orchestrator):
        event = CaptureEvent(text="add ear", is_final=False, sequence=0)
        assert orchestrator.submit(event) is None
        assert orchestrator.pending == 0

    def test_submit_before_start_raises(self, make_orchestrator):
        with pytest.raises(OrchestratorError):
            make_orchestrator().submit(final("checkout"))


class TestCheckout:
    """Tests for checkout, payment and connectivity."""

    @pytest.mark.asyncio
    async def test_successful_checkout_clears_cart(self, orchestrator, payment):
        await orchestrator.process_text("This is too expensive")
        await orchestrator.process_text("Add earbuds to cart")

        result = await orchestrator.process_text("checkout")

        assert payment.calls == [(42.49, "Wireless Earbuds x1")]
        assert result.payment_reference == "ref-1"
        assert "ref-1" in result.assistant_response
        assert result.cart == ()
        assert orchestrator.cart == ()
        assert orchestrator.mood == EmotionState.NEUTRAL

    @pytest.mark.asyncio
    async def test_empty_checkout_does_not_charge(self, orchestrator, payment):
        result = await orchestrator.process_text("checkout")

        assert payment.calls == []
        assert "nothing to check out" in result.assistant_response

    @pytest.mark.asyncio
    async def test_offline_checkout_blocked(self, orchestrator, connectivity, payment, speech, haptics):
        await orchestrator.process_text("Add earbuds to cart")
        cart = orchestrator.cart

        connectivity.set_online(False)
        assert speech.spoken[-1][0] == "Offline mode activated"
        assert haptics.patterns[-1] == OFFLINE

        result = await orchestrator.process_text("checkout")

        assert result.error == "offline"
        assert "offline" in result.assistant_response
        assert payment.calls == []
        assert orchestrator.cart == cart
        assert haptics.patterns[-1] == ERROR

    @pytest.mark.asyncio
    async def test_offline_does_not_block_cart_edits(self, orchestrator, connectivity):
        connectivity.set_online(False)

        result = await orchestrator.process_text("Add earbuds to cart")

        assert result.error is None
        assert len(orchestrator.cart) == 1

    @pytest.mark.asyncio
    async def test_connection_restored_announced(self, orchestrator, connectivity, speech):
        connectivity.set_online(False)
        connectivity.set_online(True)

        assert speech.spoken[-1][0] == "Connection restored"

    @pytest.mark.asyncio
    async def test_payment_error_keeps_cart(self, make_orchestrator, haptics):
        payment = FakePayment(error=PaymentError("Card declined", reason_code="card_declined"))
        orch = make_orchestrator(payment=payment)
        await orch.start()
        try:
            await orch.process_text("Add earbuds to cart")
            result = await orch.process_text("checkout")
        finally:
            await orch.shutdown()

        assert len(payment.calls) == 1
        assert result.error == "payment:card_declined"
        assert "card_declined" in result.assistant_response
        assert [line.product_id for line in orch.cart] == [1]
        assert haptics.patterns[-1] == ERROR


class TestErrorBoundary:
    """Tests that utterance failures become spoken replies."""

    @pytest.mark.asyncio
    async def test_routing_error_asks_to_clarify(self, make_orchestrator, haptics):
        orch = make_orchestrator(router=FlakyRouter(RoutingError("bad intent")))
        await orch.start()
        try:
            result = await orch.process_text("Add earbuds to cart")
            follow_up = await orch.process_text("Add earbuds to cart")
        finally:
            await orch.shutdown()

        assert result.assistant_response == CLARIFY_RESPONSE
        assert result.error == "routing"
        assert haptics.patterns[0] == ERROR
        assert follow_up.error is None
        assert len(follow_up.cart) == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_keeps_loop_alive(self, make_orchestrator, speech):
        orch = make_orchestrator(router=FlakyRouter(RuntimeError("boom")))
        await orch.start()
        try:
            result = await orch.process_text("show cart")
            follow_up = await orch.process_text("show cart")
        finally:
            await orch.shutdown()

        assert result.assistant_response == GENERIC_ERROR_RESPONSE
        assert result.error == "pipeline"
        assert speech.spoken[0][0] == GENERIC_ERROR_RESPONSE
        assert follow_up.assistant_response == "Your cart is empty."

    @pytest.mark.asyncio
    async def test_failing_host_callbacks_keep_loop_alive(self, make_orchestrator, speech):
        def broken(*args):
            raise RuntimeError("display went away")

        orch = make_orchestrator(
            on_response=broken, on_state_change=broken, on_transcription=broken
        )
        await orch.start()
        try:
            first = await asyncio.wait_for(orch.process_text("show cart"), 1)
            second = await asyncio.wait_for(orch.process_text("Add earbuds to cart"), 1)
        finally:
            await orch.shutdown()

        assert first.assistant_response == "Your cart is empty."
        assert len(second.cart) == 1
        assert len(speech.spoken) == 2

    @pytest.mark.asyncio
    async def test_worker_survives_error_outside_boundary(self, make_orchestrator, monkeypatch):
        orch = make_orchestrator()
        process = orch._process

        async def explode_once(text, audio):
            monkeypatch.setattr(orch, "_process", process)
            raise RuntimeError("worker fault")

        monkeypatch.setattr(orch, "_process", explode_once)
        await orch.start()
        try:
            result = await asyncio.wait_for(orch.process_text("show cart"), 1)
            follow_up = await asyncio.wait_for(orch.process_text("show cart"), 1)
        finally:
            await orch.shutdown()

        assert result.assistant_response == GENERIC_ERROR_RESPONSE
        assert result.error == "pipeline"
        assert orch.state == PipelineState.AWAITING_FINAL_TRANSCRIPT
        assert follow_up.assistant_response == "Your cart is empty."


class TestConsentFlow:
    """Tests for the consent prompt and acknowledgements."""

    @pytest.mark.asyncio
    async def test_prompt_needed_until_decision(self, orchestrator):
        assert orchestrator.consent_prompt_needed is True
        orchestrator.request_consent()

        assert orchestrator.set_consent(True) == CONSENT_GRANTED_RESPONSE
        assert orchestrator.consent.granted is True
        assert orchestrator.consent_prompt_needed is False

    @pytest.mark.asyncio
    async def test_decline(self, orchestrator, speech):
        assert orchestrator.set_consent(False) == CONSENT_DECLINED_RESPONSE
        assert orchestrator.consent.granted is False
        assert speech.spoken[-1][0] == CONSENT_DECLINED_RESPONSE


class TestCaptureIntegration:
    """Tests for capture events flowing into the pipeline."""

    @pytest.mark.asyncio
    async def test_final_transcript_reaches_pipeline(self, orchestrator):
        recognizer = FakeRecognizer()
        capture = orchestrator.attach_capture(recognizer, recorder_factory=FakeRecorder)
        capture.start()

        recognizer.emit("add earbuds", is_final=False)
        recognizer.emit("add earbuds to cart", is_final=True)
        await asyncio.sleep(0.01)
        await orchestrator.drain()

        assert [line.product_id for line in orchestrator.cart] == [1]

    @pytest.mark.asyncio
    async def test_capture_error_announced_once(self, orchestrator, speech, haptics):
        recognizer = FakeRecognizer()
        capture = orchestrator.attach_capture(recognizer, recorder_factory=FakeRecorder)
        capture.start()

        recognizer.fail(CaptureErrorKind.NETWORK)
        await asyncio.sleep(0.01)

        assert capture.state == CaptureState.IDLE
        assert recognizer.start_calls == 1
        assert [text for text, _ in speech.spoken].count(
            "Voice recognition lost its connection. Turn the microphone on again to retry."
        ) == 1
        assert haptics.patterns[-1] == ERROR
