"""
Persistence for small JSON documents such as the consent decision.

A Redis server makes the values survive restarts and be shared between the
CLI and the API; without one they live in process memory for the session.
"""

import os
import json
import logging
from typing import Any, Optional

import redis

logger = logging.getLogger(__name__)


class SimpleRedis:
    """Dictionary-backed subset of the redis.Redis interface."""

    def __init__(self):
        self._values: dict[str, str] = {}

    def ping(self) -> bool:
        return True

    def get(self, name: str) -> Optional[str]:
        return self._values.get(name)

    def set(self, name: str, value: Any) -> bool:
        self._values[name] = str(value)
        return True

    def exists(self, *names: str) -> int:
        return len([name for name in names if name in self._values])

    def delete(self, *names: str) -> int:
        removed = [name for name in names if self._values.pop(name, None) is not None]
        return len(removed)

    def close(self) -> None:
        self._values.clear()


class RedisClient:
    """
    Namespaced JSON store on top of Redis.

    The server is contacted on first use. If it does not answer, the store
    switches to SimpleRedis for the rest of the process.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        db: int = 0,
        namespace: str = "voicecart",
        client: Optional[Any] = None
    ):
        """
        Args:
            host: Server host, REDIS_HOST or localhost when omitted
            port: Server port, REDIS_PORT or 6379 when omitted
            db: Database index
            namespace: Prefix joined to every key with a colon
            client: Ready client used as is (tests pass a SimpleRedis)
        """
        self.host = host or os.getenv("REDIS_HOST", "localhost")
        self.port = port or int(os.getenv("REDIS_PORT", "6379"))
        self.db = db
        self.namespace = namespace
        self._client = client
        self._use_fallback = isinstance(client, SimpleRedis)

    def _connect(self):
        server = redis.Redis(
            host=self.host,
            port=self.port,
            db=self.db,
            decode_responses=True,
            socket_connect_timeout=1
        )
        try:
            server.ping()
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.warning(f"Redis at {self.host}:{self.port} unreachable ({e}); keeping values in memory")
            self._use_fallback = True
            return SimpleRedis()
        logger.info(f"Using Redis at {self.host}:{self.port} db {self.db}")
        self._use_fallback = False
        return server

    @property
    def client(self):
        if self._client is None:
            self._client = self._connect()
        return self._client

    @property
    def is_fallback(self) -> bool:
        """True when values are not persisted beyond this process."""
        return self._use_fallback

    def is_connected(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.RedisError:
            return False

    def close(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            client.close()

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def get_json(self, key: str) -> Optional[Any]:
        """
        Read and decode a value.

        Returns:
            The decoded value, or None when nothing is stored under key.

        Raises:
            ValueError: The stored value is not JSON.
        """
        raw = self.client.get(self._key(key))
        return None if raw is None else json.loads(raw)

    def set_json(self, key: str, value: Any) -> None:
        self.client.set(self._key(key), json.dumps(value))

    def delete(self, key: str) -> bool:
        """Remove a key, True when something was stored under it."""
        return self.client.delete(self._key(key)) > 0
