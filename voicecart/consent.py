"""
Consent gate for biometric voice analysis.

Tracks whether the user allowed voice-tone analysis. The decision is
persisted through a key-value store; persistence failures are logged
and the in-memory decision still applies for the current session.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol, Any

from .models import ConsentState

logger = logging.getLogger(__name__)

CONSENT_KEY = "voiceConsentData"


class KeyValueStore(Protocol):
    """Persistence collaborator interface."""

    def get_json(self, key: str) -> Optional[Any]: ...

    def set_json(self, key: str, value: Any) -> None: ...


class ConsentGate:
    """
    Owns the current ConsentState.

    The stored decision is loaded once, on first read. Only
    set_consent() changes the state.
    """

    def __init__(self, store: Optional[KeyValueStore] = None, version: str = "1.0"):
        """
        Initialize the consent gate.

        Args:
            store: Key-value persistence. None keeps consent in memory only.
            version: Consent text version recorded with each decision.
        """
        self._store = store
        self._version = version
        self._state: Optional[ConsentState] = None
        self._has_decision = False
        self._listeners: list[Callable[[ConsentState], None]] = []

    def add_listener(self, callback: Callable[[ConsentState], None]) -> None:
        """Register a callback invoked after every consent change."""
        self._listeners.append(callback)

    @property
    def has_decision(self) -> bool:
        """True once the user decided (now or in an earlier session)."""
        self.get_consent()
        return self._has_decision

    @property
    def granted(self) -> bool:
        return self.get_consent().granted

    def get_consent(self) -> ConsentState:
        """Return the current consent, loading a stored decision on first use."""
        if self._state is None:
            self._state = self._load()
        return self._state

    def set_consent(self, granted: bool) -> ConsentState:
        """
        Record an explicit consent decision.

        Granting twice keeps the original grant time, so repeated calls
        persist the same state.

        Args:
            granted: True to allow voice-tone analysis, False to revoke.

        Returns:
            The updated ConsentState.
        """
        current = self.get_consent()
        if granted and current.granted and current.version == self._version:
            new_state = current
        elif granted:
            new_state = ConsentState(
                granted=True,
                granted_at=datetime.now(timezone.utc),
                version=self._version
            )
        else:
            new_state = ConsentState(granted=False, granted_at=None, version=self._version)

        self._state = new_state
        self._has_decision = True
        self._save(new_state)

        logger.info(f"Voice analysis consent {'granted' if granted else 'revoked'}")
        for callback in self._listeners:
            callback(new_state)
        return new_state

    def _load(self) -> ConsentState:
        default = ConsentState(granted=False, version=self._version)
        if self._store is None:
            return default
        try:
            data = self._store.get_json(CONSENT_KEY)
        except Exception as e:
            logger.error(f"Error loading consent: {e}")
            return default
        if data is None:
            return default
        if not isinstance(data, dict):
            logger.warning(f"Ignoring consent record of type {type(data).__name__}")
            return default
        try:
            state = ConsentState.from_dict(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Ignoring corrupt consent record: {e}")
            return default
        self._has_decision = True
        return state

    def _save(self, state: ConsentState) -> None:
        if self._store is None:
            return
        try:
            self._store.set_json(CONSENT_KEY, state.to_dict())
        except Exception as e:
            logger.error(f"Error storing consent: {e}")
