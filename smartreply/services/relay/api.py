#!/usr/bin/env python3
"""
SmartReply - Reply Relay HTTP API

Turns a received message into three reply options by streaming an OpenAI
completion, with the prompt enriched by the sentiment, contacts and style
services.

Endpoints:
- GET /health: Health check
- GET /health/services: Reachability of the auxiliary services
- POST /api/replies/generate: Stream reply options as server-sent events
- POST /api/replies/save: Persist the replies parsed by the client
- POST /api/replies/learn: Forward a chosen reply to the style service
- GET /api/history: Recent conversations with their replies
- GET /api/history/{id}: One conversation
- DELETE /api/history/{id}: Delete a conversation

Stream format (one JSON object per ``data:`` line):
    data: {"type": "content", "delta": "...", "content": "<accumulated>"}
    data: {"type": "done"}
    data: {"type": "error", "error": {"message": "..."}}
    data: [DONE]

Context aggregation finishes before the first byte is streamed. A client
that cancels mid-stream only closes the stream; service calls already made
for that request are not aborted.
"""

import json
import time
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional

import aiohttp
from fastapi import FastAPI, Query
from fastapi.responses import StreamingResponse
from openai import AsyncOpenAI
from pydantic import BaseModel, ConfigDict, Field

from smartreply.config import SmartReplyConfig
from smartreply.common.clients import connect_redis, openai_client
from smartreply.common.models import SAMPLE_TYPES, TONES
from smartreply.common.service_base import SmartReplyService, error_response
from .clients import ServiceGateway
from .context import ContextAggregator
from .prompts import build_system_prompt, build_user_message
from .store import ConversationStore

INVALID_TONE = f"Invalid tone. Must be one of: {', '.join(TONES)}"
STREAM_END = "data: [DONE]\n\n"


def sse_event(payload: Dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


class GenerateRequest(BaseModel):
    message: Optional[str] = None
    tone: Optional[str] = None
    context: Optional[str] = None
    intent: Optional[str] = None


class SaveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    conversation_id: Optional[str] = Field(None, alias="conversationId")
    replies: Optional[List[str]] = None


class LearnRequest(BaseModel):
    content: Optional[str] = None
    type: Optional[str] = None


def _optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


class RelayService(SmartReplyService):
    """Reply relay with FastAPI HTTP interface.

    The aiohttp session, Redis and OpenAI clients are created in setup()
    unless they were injected.
    """

    def __init__(
        self,
        config: Optional[SmartReplyConfig] = None,
        gateway: Optional[ServiceGateway] = None,
        store: Optional[ConversationStore] = None,
        llm: Optional[AsyncOpenAI] = None,
    ):
        super().__init__(name="relay", config=config)
        self.http_port = self.config.relay.port
        self.gateway = gateway
        self.store = store
        self.llm = llm
        self.aggregator: Optional[ContextAggregator] = None
        self.http_session: Optional[aiohttp.ClientSession] = None
        self.redis_client = None
        self._owned_llm: Optional[AsyncOpenAI] = None

    async def setup(self):
        if self.gateway is None:
            self.http_session = aiohttp.ClientSession(
                connector=aiohttp.TCPConnector(limit=20, limit_per_host=10)
            )
            self.gateway = ServiceGateway(self.http_session, self.config.services)
            self.logger.info("HTTP session initialized")

        if self.store is None:
            self.redis_client = await connect_redis(self.config)
            self.store = ConversationStore(self.redis_client)

        if self.llm is None:
            self.llm = self._owned_llm = openai_client(self.config)

        self.aggregator = ContextAggregator(self.gateway, self.config.style.min_samples)

    async def teardown(self):
        if self.http_session is not None:
            await self.http_session.close()
            self.logger.info("HTTP session closed")
        if self._owned_llm is not None:
            await self._owned_llm.close()
        if self.redis_client is not None:
            await self.redis_client.aclose()

    def health_details(self) -> Dict[str, Any]:
        return {"openai_configured": self.llm is not None}

    async def stream_replies(self, conversation_id: str, system_prompt: str, user_message: str) -> AsyncIterator[str]:
        """Relay the completion as SSE lines; failures become an error event."""
        accumulated = ""
        started = time.monotonic()
        try:
            stream = await self.llm.chat.completions.create(
                model=self.config.openai.reply_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_message},
                ],
                temperature=self.config.openai.reply_temperature,
                max_tokens=self.config.openai.reply_max_tokens,
                stream=True,
            )
            async with stream:
                async for chunk in stream:
                    if not chunk.choices:
                        continue
                    delta = chunk.choices[0].delta.content
                    if not delta:
                        continue
                    accumulated += delta
                    yield sse_event({"type": "content", "delta": delta, "content": accumulated})

            yield sse_event({"type": "done"})
            self.logger.info(
                "Generation complete",
                extra={
                    "conversation_id": conversation_id,
                    "duration_ms": round((time.monotonic() - started) * 1000),
                },
            )
        except Exception as e:
            self.logger.error(f"Generation failed: {e}", extra={"conversation_id": conversation_id})
            yield sse_event({"type": "error", "error": {"message": str(e) or "Generation failed"}})

        yield STREAM_END

    def register_routes(self, app: FastAPI):

        @app.get("/health/services")
        async def services_health():
            services = await self.gateway.check_health()
            return {
                "status": "ok" if all(services.values()) else "degraded",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "services": {name: "up" if up else "down" for name, up in services.items()},
            }

        @app.post("/api/replies/generate")
        async def generate(request: GenerateRequest):
            message = (request.message or "").strip()
            if not message:
                return error_response(400, "Message is required")
            if request.tone not in TONES:
                return error_response(400, INVALID_TONE)
            max_length = self.config.relay.max_message_length
            if len(request.message) > max_length:
                return error_response(400, f"Message too long. Maximum {max_length} characters.")
            if self.llm is None:
                return error_response(503, "OPENAI_API_KEY is not configured")

            context = _optional_text(request.context)
            intent = _optional_text(request.intent)

            conversation_id = await self.store.create_conversation(message, request.tone, context, intent)
            await self.store.log_event("generate", conversation_id, {
                "tone": request.tone,
                "messageLength": len(request.message),
                "hasContext": context is not None,
                "hasIntent": intent is not None,
            })

            enhanced = await self.aggregator.build(message)
            user_message = build_user_message(message, context, intent, enhanced.render())

            return StreamingResponse(
                self.stream_replies(conversation_id, build_system_prompt(request.tone), user_message),
                media_type="text/event-stream",
                headers={
                    "X-Conversation-Id": conversation_id,
                    "Access-Control-Expose-Headers": "X-Conversation-Id",
                    "Cache-Control": "no-cache",
                },
            )

        @app.post("/api/replies/save")
        async def save_replies(request: SaveRequest):
            if not request.conversation_id or request.replies is None:
                return error_response(400, "Invalid request body")

            saved = await self.store.save_replies(request.conversation_id, request.replies)
            if saved is None:
                return error_response(404, "Conversation not found")
            return {"success": True}

        @app.post("/api/replies/learn")
        async def learn(request: LearnRequest):
            if not request.content or not request.content.strip():
                return error_response(400, "Content is required")
            if request.type not in SAMPLE_TYPES:
                return error_response(400, "Invalid type")

            learned = await self.gateway.learn_from_reply(request.content.strip(), request.type)
            return {"success": learned, "learned": learned}

        @app.get("/api/history")
        async def history(limit: Optional[int] = Query(None, ge=1, le=500)):
            conversations = await self.store.history(limit or self.config.relay.history_limit)
            return {"success": True, "data": conversations, "count": len(conversations)}

        @app.get("/api/history/{conversation_id}")
        async def get_conversation(conversation_id: str):
            conversation = await self.store.get_conversation(conversation_id)
            if conversation is None:
                return error_response(404, "Conversation not found")
            return {"success": True, "data": conversation}

        @app.delete("/api/history/{conversation_id}")
        async def delete_conversation(conversation_id: str):
            if not await self.store.delete_conversation(conversation_id):
                return error_response(404, "Conversation not found")
            await self.store.log_event("delete", conversation_id)
            return {"success": True}
