"""
Connectivity tracking for VoiceCart.

ConnectivityMonitor caches the online/offline state and notifies
listeners on transitions. Reads never touch the network; the optional
ConnectivityProbe updates the cache from the background.
"""

import asyncio
import logging
from typing import Callable, Optional

import requests

from .models import ConnectivityState

logger = logging.getLogger(__name__)


class ConnectivityError(Exception):
    """Exception raised when an action needs the network while offline."""

    def __init__(self, message: str = "This action needs an internet connection."):
        super().__init__(message)


class ConnectivityMonitor:
    """Cached process-wide connectivity state."""

    def __init__(self, state: ConnectivityState = ConnectivityState.ONLINE):
        self._state = state
        self._listeners: list[Callable[[ConnectivityState], None]] = []

    @property
    def state(self) -> ConnectivityState:
        return self._state

    @property
    def is_online(self) -> bool:
        return self._state == ConnectivityState.ONLINE

    def add_listener(self, callback: Callable[[ConnectivityState], None]) -> None:
        """Register a callback invoked on every online/offline transition."""
        self._listeners.append(callback)

    def require_online(self) -> None:
        """
        Raises:
            ConnectivityError: If currently offline
        """
        if not self.is_online:
            raise ConnectivityError("You're offline, so I can't complete the purchase right now.")

    def set_state(self, state: ConnectivityState) -> bool:
        """
        Update the cached state.

        Returns:
            True if the state changed (listeners were notified).
        """
        if state == self._state:
            return False
        self._state = state
        logger.info(f"Connectivity changed to {state.value}")
        for callback in self._listeners:
            callback(state)
        return True

    def set_online(self, online: bool) -> bool:
        return self.set_state(ConnectivityState.ONLINE if online else ConnectivityState.OFFLINE)


class ConnectivityProbe:
    """
    Polls a URL in the background and feeds the monitor.

    Any HTTP response counts as online; connection errors and timeouts
    count as offline.
    """

    def __init__(
        self,
        monitor: ConnectivityMonitor,
        url: str,
        interval: float = 10.0,
        timeout: float = 3.0
    ):
        self.monitor = monitor
        self.url = url
        self.interval = interval
        self.timeout = timeout
        self._task: Optional[asyncio.Task] = None

    def check(self) -> bool:
        """Perform one blocking reachability check."""
        try:
            requests.head(self.url, timeout=self.timeout)
            return True
        except requests.RequestException as e:
            logger.debug(f"Connectivity check failed: {e}")
            return False

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            online = await loop.run_in_executor(None, self.check)
            self.monitor.set_online(online)
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        """Start polling on the running event loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
