"""
Redis storage for writing samples, pattern frequencies and the style profile.

Keys:
- style:samples            list of sample JSON, newest first
- style:patterns:<type>    sorted set of pattern value -> frequency
- style:profile            hash of aggregated profile fields
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import redis.asyncio as redis

SAMPLES_KEY = "style:samples"
PATTERNS_PREFIX = "style:patterns:"
PROFILE_KEY = "style:profile"
PATTERN_TYPES = ("greeting", "signoff", "phrase")
MAX_SAMPLES = 1000


class StyleStore:
    """Style data over a shared Redis client."""

    def __init__(self, redis_client: redis.Redis):
        self.redis_client = redis_client

    async def save_sample(self, sample: Dict[str, Any]):
        sample = {**sample, "created_at": datetime.now(timezone.utc).isoformat()}
        await self.redis_client.lpush(SAMPLES_KEY, json.dumps(sample))
        await self.redis_client.ltrim(SAMPLES_KEY, 0, MAX_SAMPLES - 1)

    async def sample_count(self) -> int:
        return await self.redis_client.llen(SAMPLES_KEY)

    async def recent_samples(self, limit: int) -> List[Dict[str, Any]]:
        raw = await self.redis_client.lrange(SAMPLES_KEY, 0, limit - 1)
        return [json.loads(item) for item in raw]

    async def increment_pattern(self, pattern_type: str, value: str):
        await self.redis_client.zincrby(f"{PATTERNS_PREFIX}{pattern_type}", 1, value)

    async def top_patterns(self, pattern_type: str, limit: Optional[int] = None) -> List[Tuple[str, float]]:
        """Most frequent values first; all of them when limit is None."""
        end = -1 if limit is None else limit - 1
        return await self.redis_client.zrevrange(f"{PATTERNS_PREFIX}{pattern_type}", 0, end, withscores=True)

    async def all_patterns(self) -> List[Dict[str, Any]]:
        patterns = []
        for pattern_type in PATTERN_TYPES:
            for value, frequency in await self.top_patterns(pattern_type):
                patterns.append({"pattern_type": pattern_type, "value": value, "frequency": int(frequency)})
        return patterns

    async def save_profile(self, fields: Dict[str, Any]):
        mapping = {k: str(v) for k, v in fields.items()}
        mapping["updated_at"] = datetime.now(timezone.utc).isoformat()
        await self.redis_client.hset(PROFILE_KEY, mapping=mapping)

    async def load_profile(self) -> Dict[str, str]:
        return await self.redis_client.hgetall(PROFILE_KEY)

    async def clear(self):
        keys = [SAMPLES_KEY, PROFILE_KEY] + [f"{PATTERNS_PREFIX}{t}" for t in PATTERN_TYPES]
        await self.redis_client.delete(*keys)
