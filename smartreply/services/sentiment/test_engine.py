#!/usr/bin/env python3
"""
Tests for the sentiment analysis engine and cache

Tests cover:
- Fallback classifier (emotions, sentiment, urgency)
- LLM answer parsing and clamping
- Analyzer paths (cache, LLM, fallback)
- Cache keys and Redis failures
- HTTP endpoint validation
"""

import json
import logging
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
import redis.asyncio as redis
from fastapi.testclient import TestClient

from smartreply.config.models import SmartReplyConfig
from smartreply.common.models import SentimentVerdict
from smartreply.services.sentiment.api import SentimentService
from smartreply.services.sentiment.cache import SentimentCache, message_hash
from smartreply.services.sentiment.engine import (
    EMOTION_PATTERNS,
    EmotionPattern,
    SentimentAnalyzer,
    fallback_analysis,
    parse_analysis_response,
)

# Suppress logging during tests
logging.disable(logging.CRITICAL)


def completion(content):
    """Minimal stand-in for an OpenAI chat completion response."""
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
    )


def mock_llm(content=None, error=None):
    llm = MagicMock()
    if error is not None:
        llm.chat.completions.create = AsyncMock(side_effect=error)
    else:
        llm.chat.completions.create = AsyncMock(return_value=completion(content))
    return llm


class TestFallbackClassifier:
    """Test suite for the keyword fallback classifier"""

    def test_unmatched_message_is_neutral(self):
        verdict = fallback_analysis("The report is attached.")
        assert verdict.sentiment == "neutral"
        assert verdict.confidence == 0.6
        assert verdict.emotions == []
        assert verdict.urgency == "medium"
        assert verdict.key_points == []
        assert verdict.suggested_approach == "Address their concerns professionally."

    def test_frustrated_and_angry_is_negative(self):
        verdict = fallback_analysis("I am frustrated and ANGRY about this")
        assert verdict.sentiment == "negative"
        labels = [e.emotion for e in verdict.emotions]
        assert set(labels) == {"frustrated", "angry"}

    def test_mixed_when_both_polarities_present(self):
        verdict = fallback_analysis("I'm happy with the design but worried about the date")
        assert verdict.sentiment == "mixed"

    def test_positive_only(self):
        verdict = fallback_analysis("Thank you, I really appreciate it")
        assert verdict.sentiment == "positive"
        assert verdict.emotions[0].emotion == "grateful"
        assert verdict.emotions[0].score == 0.9

    def test_max_weight_kept_regardless_of_order(self):
        patterns = [
            EmotionPattern("furious", "angry", 1.0),
            EmotionPattern("angry", "angry", 0.9),
        ]
        forward = fallback_analysis("angry and furious", patterns)
        backward = fallback_analysis("angry and furious", list(reversed(patterns)))
        assert forward.emotions[0].score == 1.0
        assert backward.emotions[0].score == 1.0
        assert len(forward.emotions) == 1

    def test_top_three_by_descending_weight(self):
        verdict = fallback_analysis("furious, grateful, confused and worried")
        scores = [e.score for e in verdict.emotions]
        assert len(scores) == 3
        assert scores == sorted(scores, reverse=True)
        assert [e.emotion for e in verdict.emotions][:2] == ["angry", "grateful"]

    def test_urgent_keyword_is_high(self):
        assert fallback_analysis("Need this by the deadline").urgency == "high"
        assert fallback_analysis("Reply ASAP please").urgency == "high"

    @pytest.mark.parametrize("message", [
        "This is an emergency",
        "critical outage",
        "urgent and critical",
        "asap, emergency, deadline today",
    ])
    def test_emergency_or_critical_is_critical(self, message):
        assert fallback_analysis(message).urgency == "critical"

    def test_custom_patterns_replace_seed_table(self):
        verdict = fallback_analysis("I am frustrated", [EmotionPattern("meh", "disappointed", 0.5)])
        assert verdict.emotions == []
        assert len(EMOTION_PATTERNS) == 16


class TestParseAnalysisResponse:
    """Test suite for LLM answer parsing"""

    def test_parses_embedded_object(self):
        content = 'Here you go:\n{"sentiment": "negative", "confidence": 0.8, "urgency": "high", ' \
                  '"emotions": [{"emotion": "frustrated", "score": 0.7}], ' \
                  '"keyPoints": ["late delivery"], "suggestedApproach": "Apologize."}'
        verdict = parse_analysis_response(content)
        assert verdict.sentiment == "negative"
        assert verdict.confidence == 0.8
        assert verdict.urgency == "high"
        assert verdict.emotions[0].emotion == "frustrated"
        assert verdict.key_points == ["late delivery"]
        assert verdict.suggested_approach == "Apologize."

    def test_out_of_range_scores_are_clamped(self):
        content = json.dumps({
            "sentiment": "positive",
            "confidence": 1.7,
            "emotions": [{"emotion": "happy", "score": -0.2}, {"emotion": "excited", "score": 3}],
        })
        verdict = parse_analysis_response(content)
        assert verdict.confidence == 1.0
        assert verdict.emotions[0].score == 0.0
        assert verdict.emotions[1].score == 1.0

    def test_unknown_labels_fall_back_to_defaults(self):
        verdict = parse_analysis_response('{"sentiment": "ecstatic", "urgency": "whenever", "confidence": "high"}')
        assert verdict.sentiment == "neutral"
        assert verdict.urgency == "medium"
        assert verdict.confidence == 0.5

    def test_lists_are_truncated(self):
        content = json.dumps({
            "emotions": [{"emotion": f"e{i}", "score": 0.1} for i in range(8)],
            "keyPoints": ["a", "b", "c", "d"],
        })
        verdict = parse_analysis_response(content)
        assert len(verdict.emotions) == 5
        assert verdict.key_points == ["a", "b", "c"]

    @pytest.mark.parametrize("content", ["", "no json here", "{not json}", None])
    def test_malformed_yields_default_verdict(self, content):
        verdict = parse_analysis_response(content)
        assert verdict.sentiment == "neutral"
        assert verdict.confidence == 0.5
        assert verdict.urgency == "medium"
        assert verdict.suggested_approach == "Respond professionally and address their concerns."


class TestSentimentAnalyzer:
    """Test suite for SentimentAnalyzer"""

    @pytest.mark.asyncio
    async def test_no_llm_uses_fallback(self):
        analyzer = SentimentAnalyzer(llm=None)
        verdict = await analyzer.analyze("I'm so frustrated")
        assert verdict.sentiment == "negative"
        assert verdict.confidence == 0.6

    @pytest.mark.asyncio
    async def test_llm_verdict_is_cached(self):
        cache = AsyncMock()
        cache.get = AsyncMock(return_value=None)
        llm = mock_llm('{"sentiment": "positive", "confidence": 0.9}')
        analyzer = SentimentAnalyzer(llm=llm, cache=cache)

        verdict = await analyzer.analyze("Great work!")

        assert verdict.sentiment == "positive"
        cache.save.assert_awaited_once()
        kwargs = llm.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["temperature"] == 0.3
        assert kwargs["max_tokens"] == 500
        assert kwargs["messages"][1] == {"role": "user", "content": "Great work!"}

    @pytest.mark.asyncio
    async def test_cache_hit_skips_llm(self):
        cached = SentimentVerdict(sentiment="mixed", confidence=0.7)
        cache = AsyncMock()
        cache.get = AsyncMock(return_value=cached)
        llm = mock_llm("{}")
        analyzer = SentimentAnalyzer(llm=llm, cache=cache)

        assert await analyzer.analyze("anything") is cached
        llm.chat.completions.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_llm_failure_falls_back_without_caching(self):
        cache = AsyncMock()
        cache.get = AsyncMock(return_value=None)
        analyzer = SentimentAnalyzer(llm=mock_llm(error=RuntimeError("boom")), cache=cache)

        verdict = await analyzer.analyze("this is urgent")

        assert verdict.urgency == "high"
        assert verdict.confidence == 0.6
        cache.save.assert_not_awaited()


class TestSentimentCache:
    """Test suite for SentimentCache"""

    def test_key_uses_normalized_message(self):
        cache = SentimentCache(AsyncMock())
        assert cache.key_for("  Hello   World ") == cache.key_for("hello world")
        assert cache.key_for("hello") == f"sentiment:cache:{message_hash('hello')}"

    @pytest.mark.asyncio
    async def test_save_sets_ttl(self):
        client = AsyncMock()
        cache = SentimentCache(client, ttl=60)
        await cache.save("hi", SentimentVerdict())

        args, kwargs = client.set.call_args
        assert kwargs["ex"] == 60
        assert json.loads(args[1])["suggestedApproach"]

    @pytest.mark.asyncio
    async def test_round_trip_through_stored_json(self):
        stored = json.dumps(SentimentVerdict(sentiment="negative", key_points=["x"]).to_wire())
        client = AsyncMock()
        client.get = AsyncMock(return_value=stored)
        verdict = await SentimentCache(client).get("hi")
        assert verdict.sentiment == "negative"
        assert verdict.key_points == ["x"]

    @pytest.mark.asyncio
    async def test_redis_errors_are_misses(self):
        client = AsyncMock()
        client.get = AsyncMock(side_effect=redis.ConnectionError("down"))
        client.set = AsyncMock(side_effect=redis.ConnectionError("down"))
        cache = SentimentCache(client)

        assert await cache.get("hi") is None
        await cache.save("hi", SentimentVerdict())

    @pytest.mark.asyncio
    async def test_unreadable_entry_is_miss(self):
        client = AsyncMock()
        client.get = AsyncMock(return_value="not json")
        assert await SentimentCache(client).get("hi") is None


class TestSentimentAPI:
    """Test suite for the sentiment HTTP endpoints"""

    @pytest.fixture
    def client(self):
        service = SentimentService(config=SmartReplyConfig(), analyzer=SentimentAnalyzer(llm=None))
        with TestClient(service.get_app()) as client:
            yield client

    def test_analyze_returns_wire_verdict(self, client):
        response = client.post("/api/analyze", json={"message": "Thanks, I appreciate it"})
        assert response.status_code == 200
        body = response.json()
        assert body["sentiment"] == "positive"
        assert body["keyPoints"] == []
        assert "suggestedApproach" in body

    @pytest.mark.parametrize("payload", [{}, {"message": ""}, {"message": "   "}])
    def test_missing_message_is_rejected(self, client, payload):
        response = client.post("/api/analyze", json=payload)
        assert response.status_code == 400
        assert response.json() == {"error": "Message is required"}

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["service"] == "sentiment"
        assert body["status"] == "healthy"
        assert body["openai_configured"] is False
