"""
Redis storage for conversations, their generated replies and usage events.

Keys:
- relay:conversations                 sorted set of id -> created timestamp
- relay:conversation:<id>             hash of conversation fields
- relay:conversation:<id>:replies     JSON list of reply options
- relay:analytics                     list of event JSON, newest first
"""

import json
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import redis.asyncio as redis

from smartreply.common.logging import setup_logging
from smartreply.common.models import ReplyOption

logger = setup_logging("relay-store")

INDEX_KEY = "relay:conversations"
CONVERSATION_PREFIX = "relay:conversation:"
ANALYTICS_KEY = "relay:analytics"
MAX_REPLIES = 3
MAX_EVENTS = 10000


def _conversation_key(conversation_id: str) -> str:
    return f"{CONVERSATION_PREFIX}{conversation_id}"


def _replies_key(conversation_id: str) -> str:
    return f"{CONVERSATION_PREFIX}{conversation_id}:replies"


class ConversationStore:
    """Conversation history over a shared Redis client."""

    def __init__(self, redis_client: redis.Redis):
        self.redis_client = redis_client

    async def create_conversation(
        self,
        message: str,
        tone: str,
        context: Optional[str] = None,
        intent: Optional[str] = None,
    ) -> str:
        conversation_id = uuid.uuid4().hex
        fields = {
            "id": conversation_id,
            "original_message": message,
            "tone": tone,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        if context:
            fields["context"] = context
        if intent:
            fields["intent"] = intent

        pipe = self.redis_client.pipeline(transaction=True)
        pipe.hset(_conversation_key(conversation_id), mapping=fields)
        pipe.zadd(INDEX_KEY, {conversation_id: time.time()})
        await pipe.execute()
        return conversation_id

    async def save_replies(self, conversation_id: str, replies: Sequence[str]) -> Optional[List[ReplyOption]]:
        """Store at most three replies, replacing any saved earlier.

        Returns None when the conversation does not exist.
        """
        if not await self.redis_client.exists(_conversation_key(conversation_id)):
            return None

        options = [
            ReplyOption(id=uuid.uuid4().hex, content=content, reply_index=index)
            for index, content in enumerate(replies[:MAX_REPLIES])
        ]
        await self.redis_client.set(
            _replies_key(conversation_id),
            json.dumps([option.to_wire() for option in options]),
        )
        return options

    async def get_conversation(self, conversation_id: str) -> Optional[Dict[str, Any]]:
        fields = await self.redis_client.hgetall(_conversation_key(conversation_id))
        if not fields:
            return None

        raw_replies = await self.redis_client.get(_replies_key(conversation_id))
        conversation = dict(fields)
        conversation["replies"] = json.loads(raw_replies) if raw_replies else []
        return conversation

    async def history(self, limit: int = 50) -> List[Dict[str, Any]]:
        """Most recent conversations first."""
        ids = await self.redis_client.zrevrange(INDEX_KEY, 0, limit - 1)
        conversations = []
        for conversation_id in ids:
            conversation = await self.get_conversation(conversation_id)
            if conversation is not None:
                conversations.append(conversation)
        return conversations

    async def delete_conversation(self, conversation_id: str) -> bool:
        pipe = self.redis_client.pipeline(transaction=True)
        pipe.zrem(INDEX_KEY, conversation_id)
        pipe.delete(_conversation_key(conversation_id), _replies_key(conversation_id))
        removed, deleted = await pipe.execute()
        return bool(removed or deleted)

    async def log_event(
        self,
        event_type: str,
        conversation_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        event = {
            "id": uuid.uuid4().hex,
            "event_type": event_type,
            "conversation_id": conversation_id,
            "metadata": metadata,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            await self.redis_client.lpush(ANALYTICS_KEY, json.dumps(event))
            await self.redis_client.ltrim(ANALYTICS_KEY, 0, MAX_EVENTS - 1)
        except redis.RedisError as e:
            logger.warning(f"Failed to log {event_type} event: {e}")
