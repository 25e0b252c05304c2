#!/usr/bin/env python3
"""
SmartReply - Sentiment Analysis HTTP API

Endpoints:
- GET /health: Health check
- POST /api/analyze: Analyze the sentiment of a message
"""

from typing import Any, Dict, Optional

import redis.asyncio as redis
from fastapi import FastAPI
from openai import AsyncOpenAI
from pydantic import BaseModel, Field

from smartreply.config import SmartReplyConfig
from smartreply.common.clients import connect_redis, openai_client
from smartreply.common.service_base import SmartReplyService, error_response
from .cache import SentimentCache
from .engine import SentimentAnalyzer


class AnalyzeRequest(BaseModel):
    """Request model for sentiment analysis."""
    message: Optional[str] = Field(None, description="Message to analyze")


class SentimentService(SmartReplyService):
    """Sentiment analysis service with FastAPI HTTP interface."""

    def __init__(
        self,
        config: Optional[SmartReplyConfig] = None,
        analyzer: Optional[SentimentAnalyzer] = None,
    ):
        super().__init__(name="sentiment", config=config)
        self.http_port = self.config.sentiment.port
        self.analyzer = analyzer
        self.redis_client: Optional[redis.Redis] = None
        self.llm: Optional[AsyncOpenAI] = None

    async def setup(self):
        if self.analyzer is not None:
            return

        cache = None
        try:
            self.redis_client = await connect_redis(self.config)
            cache = SentimentCache(self.redis_client, ttl=self.config.sentiment.cache_ttl)
        except (redis.RedisError, OSError) as e:
            self.logger.warning(f"Redis unavailable, analyzing without cache: {e}")

        self.llm = openai_client(self.config)
        self.analyzer = SentimentAnalyzer(
            llm=self.llm,
            cache=cache,
            model=self.config.openai.sentiment_model,
            temperature=self.config.openai.sentiment_temperature,
            max_tokens=self.config.openai.sentiment_max_tokens,
        )

    async def teardown(self):
        if self.llm is not None:
            await self.llm.close()
        if self.redis_client is not None:
            await self.redis_client.aclose()

    def health_details(self) -> Dict[str, Any]:
        return {
            "openai_configured": bool(self.analyzer and self.analyzer.llm),
            "cache_enabled": bool(self.analyzer and self.analyzer.cache),
        }

    def register_routes(self, app: FastAPI):

        @app.post("/api/analyze")
        async def analyze(request: AnalyzeRequest):
            if not request.message or not request.message.strip():
                return error_response(400, "Message is required")

            verdict = await self.analyzer.analyze(request.message)
            return verdict.to_wire()
