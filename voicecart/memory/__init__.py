"""
Memory module for VoiceCart.
Provides Redis-based key-value persistence for the consent decision.
"""

from .redis_client import RedisClient, SimpleRedis

__all__ = ["RedisClient", "SimpleRedis"]
