"""
Configuration for VoiceCart.

Values come from environment variables (a .env file is loaded by the
entry points). Missing optional credentials switch the matching
capability off instead of failing.
"""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class AssistantConfig:
    """Runtime configuration for the assistant."""

    azure_speech_key: Optional[str] = None
    azure_speech_region: Optional[str] = None
    azure_voice: str = "en-US-JennyNeural"
    speech_language: str = "en-US"
    redis_host: str = "localhost"
    redis_port: int = 6379
    hume_api_key: Optional[str] = None
    # Seconds to wait for the external emotion service before falling back
    emotion_timeout_s: float = 3.0
    payment_api_url: Optional[str] = None
    payment_api_key: Optional[str] = None
    connectivity_check_url: Optional[str] = None
    consent_version: str = "1.0"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "AssistantConfig":
        """Build configuration from environment variables."""
        return cls(
            azure_speech_key=os.getenv("AZURE_SPEECH_KEY"),
            azure_speech_region=os.getenv("AZURE_SPEECH_REGION"),
            azure_voice=os.getenv("AZURE_SPEECH_VOICE", "en-US-JennyNeural"),
            speech_language=os.getenv("SPEECH_LANGUAGE", "en-US"),
            redis_host=os.getenv("REDIS_HOST", "localhost"),
            redis_port=int(os.getenv("REDIS_PORT", "6379")),
            hume_api_key=os.getenv("HUME_API_KEY"),
            emotion_timeout_s=float(os.getenv("EMOTION_TIMEOUT_S", "3.0")),
            payment_api_url=os.getenv("PAYMENT_API_URL"),
            payment_api_key=os.getenv("PAYMENT_API_KEY"),
            connectivity_check_url=os.getenv("CONNECTIVITY_CHECK_URL"),
            consent_version=os.getenv("CONSENT_VERSION", "1.0"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    @property
    def azure_enabled(self) -> bool:
        """Check if Azure Speech credentials are present."""
        return bool(self.azure_speech_key and self.azure_speech_region)

    @property
    def prosody_enabled(self) -> bool:
        """Check if the external prosody service is configured."""
        return bool(self.hume_api_key)
