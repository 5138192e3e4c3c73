"""
Service health tracking for VoiceCart.

The prosody service and the speech output device are optional. When either
keeps failing, callers take the local path (keyword emotion rules, text-only
replies) until enough requests have gone by to try the service again.
"""

import logging
from typing import Callable, Optional
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class ServiceType(Enum):
    """Optional services whose health is tracked."""
    EMOTION = "emotion"
    SPEECH = "speech"


class ServiceMode(Enum):
    """Which path currently serves requests."""
    CLOUD = "cloud"
    LOCAL = "local"
    UNAVAILABLE = "unavailable"


@dataclass
class ServiceStatus:
    """Health of one service."""
    mode: ServiceMode = ServiceMode.CLOUD
    cloud_available: bool = True
    # Both services have a local path (keyword rules, text-only output)
    local_available: bool = True
    consecutive_failures: int = 0
    local_uses: int = 0
    last_error: Optional[str] = None


@dataclass
class FallbackConfig:
    """Thresholds for switching paths."""
    # Consecutive failures before requests go to the local path
    failure_threshold: int = 2
    # Retry the service after recovery_threshold local requests
    auto_recover: bool = True
    recovery_threshold: int = 5


ModeChangeCallback = Callable[[ServiceType, ServiceMode], None]


class FallbackManager:
    """
    Per-service circuit between the optional service and its local path.

    Callers check should_use_local() before each request and report the
    outcome with report_success(), report_failure() or report_local_use().
    """

    def __init__(self, config: Optional[FallbackConfig] = None):
        self.config = config or FallbackConfig()
        self._services = {service: ServiceStatus() for service in ServiceType}
        self._on_mode_change: Optional[ModeChangeCallback] = None

    def set_mode_change_callback(self, callback: ModeChangeCallback) -> None:
        self._on_mode_change = callback

    def get_status(self, service: ServiceType) -> ServiceStatus:
        return self._services[service]

    def get_mode(self, service: ServiceType) -> ServiceMode:
        return self._services[service].mode

    def should_use_local(self, service: ServiceType) -> bool:
        """True when the request should skip the service."""
        status = self._services[service]
        return not status.cloud_available or status.mode != ServiceMode.CLOUD

    def set_cloud_available(self, service: ServiceType, available: bool) -> None:
        """Mark the service as configured/reachable or not."""
        status = self._services[service]
        status.cloud_available = available
        if not available and status.mode == ServiceMode.CLOUD:
            self._transition(service, ServiceMode.LOCAL)

    def report_success(self, service: ServiceType) -> None:
        status = self._services[service]
        status.consecutive_failures = 0
        status.last_error = None

    def report_failure(self, service: ServiceType, error: Optional[str] = None) -> ServiceMode:
        """
        Record a failed service call.

        Args:
            service: Service that failed
            error: Short description for logs and health output

        Returns:
            The service mode after the failure was counted.
        """
        status = self._services[service]
        status.consecutive_failures += 1
        status.last_error = error
        logger.warning(f"{service.value} service failure #{status.consecutive_failures}: {error}")

        tripped = status.consecutive_failures >= self.config.failure_threshold
        if status.mode == ServiceMode.CLOUD and tripped:
            if status.local_available:
                self._transition(service, ServiceMode.LOCAL)
            else:
                self._transition(service, ServiceMode.UNAVAILABLE)
        return status.mode

    def report_local_use(self, service: ServiceType) -> None:
        """Count a request served locally; retries the service once enough have passed."""
        status = self._services[service]
        if status.mode != ServiceMode.LOCAL:
            return
        status.local_uses += 1
        if not self.config.auto_recover or not status.cloud_available:
            return
        if status.local_uses >= self.config.recovery_threshold:
            self._transition(service, ServiceMode.CLOUD)

    def reset(self, service: Optional[ServiceType] = None) -> None:
        """Forget recorded health for one service, or all of them."""
        for target in ([service] if service else list(ServiceType)):
            self._services[target] = ServiceStatus()

    def get_summary(self) -> dict:
        """Health of every service, for the health endpoint."""
        return {
            service.value: {
                "mode": status.mode.value,
                "cloud_available": status.cloud_available,
                "consecutive_failures": status.consecutive_failures,
                "last_error": status.last_error,
            }
            for service, status in self._services.items()
        }

    def _transition(self, service: ServiceType, mode: ServiceMode) -> None:
        status = self._services[service]
        previous = status.mode
        status.mode = mode
        status.local_uses = 0
        if mode == ServiceMode.CLOUD:
            status.consecutive_failures = 0

        if mode == ServiceMode.UNAVAILABLE:
            logger.error(f"{service.value} service unavailable and no local path")
        else:
            logger.info(f"{service.value} service moved from {previous.value} to {mode.value}")

        if self._on_mode_change:
            self._on_mode_change(service, mode)
