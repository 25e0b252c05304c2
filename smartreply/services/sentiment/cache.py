"""
Redis-backed cache of sentiment verdicts.

Entries are keyed by the SHA-256 of the normalized message (lowercased,
whitespace collapsed) and expire after a fixed TTL. Redis failures are logged
and treated as cache misses; they never fail an analysis.
"""

import hashlib
import json
import re
from typing import Optional

import redis.asyncio as redis

from smartreply.common.logging import setup_logging
from smartreply.common.models import SentimentVerdict
from smartreply.common.results import Valid, validate

logger = setup_logging("sentiment-cache")

CACHE_PREFIX = "sentiment:cache:"

_WHITESPACE = re.compile(r"\s+")


def normalize_message(message: str) -> str:
    return _WHITESPACE.sub(" ", message.strip().lower())


def message_hash(message: str) -> str:
    return hashlib.sha256(normalize_message(message).encode("utf-8")).hexdigest()


class SentimentCache:
    """Verdict cache over a shared Redis client."""

    def __init__(self, redis_client: redis.Redis, ttl: int = 86400):
        self.redis_client = redis_client
        self.ttl = ttl

    def key_for(self, message: str) -> str:
        return f"{CACHE_PREFIX}{message_hash(message)}"

    async def get(self, message: str) -> Optional[SentimentVerdict]:
        try:
            raw = await self.redis_client.get(self.key_for(message))
        except redis.RedisError as e:
            logger.warning(f"Cache lookup failed: {e}")
            return None

        if raw is None:
            return None

        try:
            payload = json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            logger.warning("Discarding unreadable cache entry")
            return None

        result = validate(SentimentVerdict, payload)
        if isinstance(result, Valid):
            return result.value
        logger.warning(f"Discarding invalid cache entry: {result.reason}")
        return None

    async def save(self, message: str, verdict: SentimentVerdict):
        try:
            await self.redis_client.set(
                self.key_for(message),
                json.dumps(verdict.to_wire()),
                ex=self.ttl,
            )
        except redis.RedisError as e:
            logger.warning(f"Cache write failed: {e}")
