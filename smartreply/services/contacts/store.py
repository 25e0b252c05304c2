"""
Redis storage for contacts and their interaction history.

Keys:
- contacts:all            hash of contact id -> contact JSON
- contacts:interactions:<id>  list of interaction JSON, newest first
"""

import json
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List

import redis.asyncio as redis

from smartreply.common.logging import setup_logging
from smartreply.common.models import Contact
from .engine import ContactNotFound

logger = setup_logging("contacts-store")

CONTACTS_KEY = "contacts:all"
INTERACTIONS_PREFIX = "contacts:interactions:"
MAX_INTERACTIONS = 100


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ContactStore:
    """Contact CRUD over a shared Redis client."""

    def __init__(self, redis_client: redis.Redis):
        self.redis_client = redis_client

    async def create(self, **fields: Any) -> Contact:
        now = _now()
        contact = Contact(id=uuid.uuid4().hex, created_at=now, updated_at=now, **fields)
        await self.redis_client.hset(CONTACTS_KEY, contact.id, contact.model_dump_json())
        logger.info(f"Created contact: {contact.name} ({contact.id})")
        return contact

    async def all(self) -> List[Contact]:
        raw = await self.redis_client.hgetall(CONTACTS_KEY)
        contacts = [Contact.model_validate_json(value) for value in raw.values()]
        return sorted(contacts, key=lambda c: c.name)

    async def get(self, contact_id: str) -> Contact:
        raw = await self.redis_client.hget(CONTACTS_KEY, contact_id)
        if raw is None:
            raise ContactNotFound(contact_id)
        return Contact.model_validate_json(raw)

    async def update(self, contact_id: str, changes: Dict[str, Any]) -> Contact:
        """Apply field changes; an empty change set returns the contact untouched."""
        existing = await self.get(contact_id)
        if not changes:
            return existing

        data = existing.model_dump()
        data.update(changes)
        data["updated_at"] = _now()
        contact = Contact.model_validate(data)
        await self.redis_client.hset(CONTACTS_KEY, contact_id, contact.model_dump_json())
        logger.info(f"Updated contact: {contact.name} ({contact.id})")
        return contact

    async def delete(self, contact_id: str):
        removed = await self.redis_client.hdel(CONTACTS_KEY, contact_id)
        if not removed:
            raise ContactNotFound(contact_id)
        await self.redis_client.delete(f"{INTERACTIONS_PREFIX}{contact_id}")
        logger.info(f"Deleted contact: {contact_id}")

    async def record_interaction(self, contact_id: str, conversation_id: str, direction: str, summary: str) -> Dict[str, Any]:
        await self.get(contact_id)
        interaction = {
            "id": uuid.uuid4().hex,
            "contact_id": contact_id,
            "conversation_id": conversation_id,
            "direction": direction,
            "summary": summary,
            "created_at": _now(),
        }
        key = f"{INTERACTIONS_PREFIX}{contact_id}"
        await self.redis_client.lpush(key, json.dumps(interaction))
        await self.redis_client.ltrim(key, 0, MAX_INTERACTIONS - 1)
        return interaction

    async def interactions(self, contact_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        raw = await self.redis_client.lrange(f"{INTERACTIONS_PREFIX}{contact_id}", 0, limit - 1)
        return [json.loads(item) for item in raw]
