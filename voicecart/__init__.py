"""
VoiceCart - Voice-driven shopping assistant with emotion-adaptive responses.
"""

from .orchestrator import Orchestrator, PipelineResult, PipelineState, OrchestratorError
from .catalog import Catalog
from .config import AssistantConfig
from .consent import ConsentGate
from .connectivity import ConnectivityMonitor, ConnectivityError
from .models import EmotionState, ConnectivityState, DiscountOffer
from .nlp import EmotionClassifier, IntentParser, ClassificationError
from .pricing import compute_discount
from .router import CommandRouter, RoutingError
from .payment import PaymentError
from .capture import CaptureSession, CaptureError
from .fallback import FallbackManager, FallbackConfig, ServiceType, ServiceMode

__version__ = "0.1.0"

__all__ = [
    "Orchestrator",
    "PipelineResult",
    "PipelineState",
    "OrchestratorError",
    "Catalog",
    "AssistantConfig",
    "ConsentGate",
    "ConnectivityMonitor",
    "ConnectivityError",
    "EmotionState",
    "ConnectivityState",
    "DiscountOffer",
    "EmotionClassifier",
    "IntentParser",
    "ClassificationError",
    "compute_discount",
    "CommandRouter",
    "RoutingError",
    "PaymentError",
    "CaptureSession",
    "CaptureError",
    "FallbackManager",
    "FallbackConfig",
    "ServiceType",
    "ServiceMode",
]
