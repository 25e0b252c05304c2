"""Construction of the shared Redis and OpenAI client handles.

Services build these once in ``setup()`` and pass them to their engines.
"""

from typing import Optional

import redis.asyncio as redis
from openai import AsyncOpenAI

from smartreply.config import SmartReplyConfig
from smartreply.common.logging import setup_logging

logger = setup_logging("clients")


async def connect_redis(config: SmartReplyConfig) -> redis.Redis:
    """Connect to Redis and verify the connection with a ping."""
    client = redis.Redis(
        host=config.redis.host,
        port=config.redis.port,
        db=config.redis.db,
        decode_responses=True,
    )
    await client.ping()
    logger.info(f"Connected to Redis at {config.redis.host}:{config.redis.port}")
    return client


def openai_client(config: SmartReplyConfig) -> Optional[AsyncOpenAI]:
    """AsyncOpenAI client, or None when no API key is configured."""
    if not config.openai.api_key:
        logger.warning("OPENAI_API_KEY not set, LLM features disabled")
        return None
    return AsyncOpenAI(api_key=config.openai.api_key)
