"""Service layer between the FastAPI routes and the VoiceCart orchestrator."""

import logging
from typing import Optional

from voicecart.config import AssistantConfig
from voicecart.models import ConsentState
from voicecart.orchestrator import Orchestrator, PipelineResult

logger = logging.getLogger(__name__)


class OrchestratorService:
    """Owns the process-wide orchestrator used by the HTTP API."""

    def __init__(self):
        self._orchestrator: Optional[Orchestrator] = None

    @property
    def orchestrator(self) -> Orchestrator:
        if self._orchestrator is None:
            raise RuntimeError("Orchestrator service not initialized")
        return self._orchestrator

    def use(self, orchestrator: Orchestrator) -> None:
        """Install a pre-built orchestrator (used by tests and embedders)."""
        self._orchestrator = orchestrator

    async def initialize(self, config: Optional[AssistantConfig] = None) -> None:
        """Build the orchestrator from configuration (if none installed) and start it."""
        if self._orchestrator is None:
            self._orchestrator = Orchestrator.from_config(config or AssistantConfig.from_env())
        await self._orchestrator.start()
        logger.info(f"Orchestrator service ready ({self._orchestrator.session_id})")

    async def shutdown(self) -> None:
        if self._orchestrator is not None:
            await self._orchestrator.shutdown()

    async def process_utterance(self, text: str) -> PipelineResult:
        return await self.orchestrator.process_text(text)

    def get_consent(self) -> ConsentState:
        return self.orchestrator.consent.get_consent()

    def set_consent(self, granted: bool) -> tuple[ConsentState, str]:
        message = self.orchestrator.set_consent(granted)
        return self.orchestrator.consent.get_consent(), message

    def set_online(self, online: bool) -> bool:
        return self.orchestrator.connectivity.set_online(online)

    async def get_health_status(self) -> dict:
        orchestrator = self.orchestrator
        return {
            "pipeline": orchestrator.state.value,
            "connectivity": orchestrator.connectivity.state.value,
            "speech_output": "available" if orchestrator.synthesizer.has_speech else "text_only",
            "fallback": orchestrator.classifier.fallback.get_summary(),
            "pending_utterances": orchestrator.pending,
        }


orchestrator_service = OrchestratorService()
