#!/usr/bin/env python3
"""
SmartReply - Writing Style HTTP API

Endpoints:
- GET /health: Health check
- POST /api/learn: Learn from a writing sample
- GET /api/profile: Aggregated style profile
- POST /api/enhance: Personalise a reply with the learned style
- GET /api/patterns: All learned patterns with frequencies
- DELETE /api/profile: Clear all learned data
"""

from typing import Optional

import redis.asyncio as redis
from fastapi import FastAPI
from pydantic import BaseModel

from smartreply.config import SmartReplyConfig
from smartreply.common.clients import connect_redis
from smartreply.common.models import SAMPLE_TYPES
from smartreply.common.service_base import SmartReplyService, error_response
from .engine import StyleLearner
from .store import StyleStore

INVALID_TYPE = f"Invalid type. Must be one of: {', '.join(SAMPLE_TYPES)}"


class LearnRequest(BaseModel):
    content: Optional[str] = None
    type: Optional[str] = None


class EnhanceRequest(BaseModel):
    reply: Optional[str] = None


class StyleService(SmartReplyService):
    """Writing style service with FastAPI HTTP interface."""

    def __init__(self, config: Optional[SmartReplyConfig] = None, learner: Optional[StyleLearner] = None):
        super().__init__(name="style", config=config)
        self.http_port = self.config.style.port
        self.learner = learner
        self.redis_client: Optional[redis.Redis] = None

    async def setup(self):
        if self.learner is None:
            self.redis_client = await connect_redis(self.config)
            self.learner = StyleLearner(
                StyleStore(self.redis_client),
                min_samples=self.config.style.min_samples,
                window=self.config.style.profile_window,
            )

    async def teardown(self):
        if self.redis_client is not None:
            await self.redis_client.aclose()

    def register_routes(self, app: FastAPI):

        @app.post("/api/learn")
        async def learn(request: LearnRequest):
            if not request.content or not request.content.strip():
                return error_response(400, "Content is required")
            if request.type not in SAMPLE_TYPES:
                return error_response(400, INVALID_TYPE)

            result = await self.learner.learn(request.content, request.type)
            return result.to_wire()

        @app.get("/api/profile")
        async def get_profile():
            profile = await self.learner.profile()
            return profile.to_wire()

        @app.post("/api/enhance")
        async def enhance(request: EnhanceRequest):
            if not request.reply or not request.reply.strip():
                return error_response(400, "Reply is required")

            result = await self.learner.enhance(request.reply.strip())
            return result.to_wire()

        @app.get("/api/patterns")
        async def list_patterns():
            patterns = await self.learner.patterns()
            return {"patterns": patterns, "count": len(patterns)}

        @app.delete("/api/profile")
        async def clear_profile():
            await self.learner.clear()
            return {"cleared": True}
