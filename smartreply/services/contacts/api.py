#!/usr/bin/env python3
"""
SmartReply - Contact Intelligence HTTP API

Endpoints:
- GET /health: Health check
- POST /api/contacts: Create a contact
- GET /api/contacts: List contacts
- GET /api/contacts/{id}: Contact with suggestions and recent interactions
- PUT /api/contacts/{id}: Update a contact
- DELETE /api/contacts/{id}: Delete a contact
- POST /api/contacts/match: Match a message to a known contact
- POST /api/contacts/{id}/interactions: Record an interaction
"""

from typing import Any, Dict, Literal, Optional

import redis.asyncio as redis
from fastapi import FastAPI
from pydantic import BaseModel, ConfigDict, Field

from smartreply.config import SmartReplyConfig
from smartreply.common.clients import connect_redis
from smartreply.common.models import RELATIONSHIPS, Formality
from smartreply.common.service_base import SmartReplyService, error_response
from .engine import ContactNotFound, contact_suggestions, match_message
from .store import ContactStore

INVALID_RELATIONSHIP = f"Invalid relationship. Must be one of: {', '.join(RELATIONSHIPS)}"
NULLABLE_FIELDS = ("email", "company", "notes", "preferred_tone")


class ContactPreferences(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    formality: Optional[Formality] = None
    use_emojis: Optional[bool] = Field(None, alias="useEmojis")
    preferred_tone: Optional[str] = Field(None, alias="preferredTone")


class ContactRequest(BaseModel):
    """Create/update payload. Every field is optional on update."""
    name: Optional[str] = None
    email: Optional[str] = None
    relationship: Optional[str] = None
    company: Optional[str] = None
    notes: Optional[str] = None
    preferences: Optional[ContactPreferences] = None

    def changes(self) -> Dict[str, Any]:
        """Fields that were actually sent, flattened onto Contact field names.

        Blank strings clear the nullable fields; nulls for required fields are dropped.
        """
        sent = {name: getattr(self, name) for name in self.model_fields_set if name != "preferences"}
        if self.preferences is not None:
            sent.update({name: getattr(self.preferences, name) for name in self.preferences.model_fields_set})

        changes: Dict[str, Any] = {}
        for name, value in sent.items():
            if isinstance(value, str):
                value = value.strip() or None
            if value is not None or name in NULLABLE_FIELDS:
                changes[name] = value
        return changes


class MatchRequest(BaseModel):
    message: Optional[str] = None


class InteractionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    conversation_id: str = Field("", alias="conversationId")
    direction: Literal["inbound", "outbound"] = "inbound"
    summary: str = ""


class ContactsService(SmartReplyService):
    """Contact intelligence service with FastAPI HTTP interface."""

    def __init__(self, config: Optional[SmartReplyConfig] = None, store: Optional[ContactStore] = None):
        super().__init__(name="contacts", config=config)
        self.http_port = self.config.contacts.port
        self.store = store
        self.redis_client: Optional[redis.Redis] = None

    async def setup(self):
        if self.store is None:
            self.redis_client = await connect_redis(self.config)
            self.store = ContactStore(self.redis_client)

    async def teardown(self):
        if self.redis_client is not None:
            await self.redis_client.aclose()

    def register_routes(self, app: FastAPI):

        @app.post("/api/contacts", status_code=201)
        async def create_contact(request: ContactRequest):
            if not request.name or not request.name.strip():
                return error_response(400, "Name is required")
            if request.relationship not in RELATIONSHIPS:
                return error_response(400, INVALID_RELATIONSHIP)

            contact = await self.store.create(**request.changes())
            return {"id": contact.id, "created": True, "contact": contact.to_wire()}

        @app.get("/api/contacts")
        async def list_contacts():
            contacts = await self.store.all()
            return {"contacts": [c.to_wire() for c in contacts], "count": len(contacts)}

        @app.post("/api/contacts/match")
        async def match_contact(request: MatchRequest):
            if not request.message or not request.message.strip():
                return error_response(400, "Message is required")

            contacts = await self.store.all()
            result = match_message(
                request.message.strip(),
                contacts,
                min_confidence=self.config.contacts.min_match_confidence,
            )
            return result.to_wire()

        @app.get("/api/contacts/{contact_id}")
        async def get_contact(contact_id: str):
            try:
                contact = await self.store.get(contact_id)
            except ContactNotFound:
                return error_response(404, "Contact not found")

            interactions = await self.store.interactions(contact_id, limit=5)
            return {
                "contact": contact.to_wire(),
                "suggestions": contact_suggestions(contact),
                "recentInteractions": interactions,
            }

        @app.put("/api/contacts/{contact_id}")
        async def update_contact(contact_id: str, request: ContactRequest):
            if "relationship" in request.model_fields_set and request.relationship not in RELATIONSHIPS:
                return error_response(400, INVALID_RELATIONSHIP)

            try:
                contact = await self.store.update(contact_id, request.changes())
            except ContactNotFound:
                return error_response(404, "Contact not found")
            return {"contact": contact.to_wire(), "updated": True}

        @app.delete("/api/contacts/{contact_id}")
        async def delete_contact(contact_id: str):
            try:
                await self.store.delete(contact_id)
            except ContactNotFound:
                return error_response(404, "Contact not found")
            return {"deleted": True}

        @app.post("/api/contacts/{contact_id}/interactions")
        async def record_interaction(contact_id: str, request: InteractionRequest):
            try:
                await self.store.record_interaction(
                    contact_id, request.conversation_id, request.direction, request.summary
                )
            except ContactNotFound:
                return error_response(404, "Contact not found")
            return {"recorded": True}
