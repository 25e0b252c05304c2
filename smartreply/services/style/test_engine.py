#!/usr/bin/env python3
"""
Tests for the writing style learner

Tests cover:
- Greeting, sign-off and phrase extraction
- Text statistics and vocabulary level
- Reply enhancement
- Learner/profile flow over the Redis store
- HTTP validation
"""

import logging
from typing import Dict

import pytest
from fastapi.testclient import TestClient

from smartreply.config.models import SmartReplyConfig
from smartreply.services.style.api import StyleService
from smartreply.services.style.engine import (
    StyleLearner,
    aggregate_profile,
    analyze_stats,
    enhance_reply,
    extract_greetings,
    extract_phrases,
    extract_signoffs,
    vocabulary_level,
)
from smartreply.services.style.store import StyleStore

# Suppress logging during tests
logging.disable(logging.CRITICAL)


class InMemoryRedis:
    """Just enough of the Redis list/zset/hash API for StyleStore."""

    def __init__(self):
        self.lists: Dict[str, list] = {}
        self.zsets: Dict[str, Dict[str, float]] = {}
        self.hashes: Dict[str, Dict[str, str]] = {}

    async def lpush(self, key, value):
        self.lists.setdefault(key, []).insert(0, value)

    async def ltrim(self, key, start, end):
        self.lists[key] = self.lists.get(key, [])[start:end + 1]

    async def llen(self, key):
        return len(self.lists.get(key, []))

    async def lrange(self, key, start, end):
        items = self.lists.get(key, [])
        return items[start:] if end == -1 else items[start:end + 1]

    async def zincrby(self, key, amount, member):
        zset = self.zsets.setdefault(key, {})
        zset[member] = zset.get(member, 0.0) + amount
        return zset[member]

    async def zrevrange(self, key, start, end, withscores=False):
        ranked = sorted(self.zsets.get(key, {}).items(), key=lambda kv: (kv[1], kv[0]), reverse=True)
        ranked = ranked[start:] if end == -1 else ranked[start:end + 1]
        return ranked if withscores else [member for member, _ in ranked]

    async def hset(self, key, mapping):
        self.hashes.setdefault(key, {}).update(mapping)

    async def hgetall(self, key):
        return dict(self.hashes.get(key, {}))

    async def delete(self, *keys):
        for key in keys:
            self.lists.pop(key, None)
            self.zsets.pop(key, None)
            self.hashes.pop(key, None)


class TestExtraction:
    """Test suite for per-sample pattern extraction"""

    def test_greeting_keeps_original_casing(self):
        assert extract_greetings("Hi there, how are you?\nMore text") == ["Hi there"]

    def test_greeting_needs_whole_word(self):
        assert extract_greetings("History is interesting") == []

    def test_no_greeting(self):
        assert extract_greetings("Please see attached.") == []

    def test_signoff_from_last_lines(self):
        text = "Thanks for the update.\n\nThe plan works for me.\n\nBest regards,\nSam"
        assert extract_signoffs(text) == ["Best regards"]

    def test_signoffs_deduplicated(self):
        assert extract_signoffs("Cheers!\nCheers!") == ["Cheers"]

    def test_phrases_capped_at_three(self):
        text = ("Thanks for reaching out! Let me know if this works. "
                "Feel free to call. I hope this helps.")
        assert extract_phrases(text) == ["Let me know if", "Thanks for reaching out", "I hope this helps"]


class TestStats:
    """Test suite for statistics and aggregation"""

    def test_analyze_stats(self):
        stats = analyze_stats("Hello world! How are you? \U0001F600")
        assert stats.word_count == 6
        assert stats.sentence_count == 3
        assert stats.avg_word_length == 3.17
        assert stats.avg_sentence_length == 2.0
        assert stats.emoji_count == 1
        assert stats.exclamation_count == 1
        assert stats.question_count == 1

    def test_empty_text(self):
        stats = analyze_stats("")
        assert stats.word_count == 0
        assert stats.avg_sentence_length == 0.0

    def test_vocabulary_level(self):
        assert vocabulary_level(3, 1) == "professional"
        assert vocabulary_level(2, 1) == "mixed"
        assert vocabulary_level(0, 1) == "casual"
        assert vocabulary_level(0, 0) == "mixed"

    def test_aggregate_profile(self):
        profile = aggregate_profile([
            "Regarding the implementation, I appreciate the update.",
            "Furthermore, we should proceed. Therefore, please confirm!",
        ])
        assert profile["vocabulary_level"] == "professional"
        assert profile["exclamation_frequency"] == 0.33
        assert profile["emoji_usage"] == 0.0


class TestEnhanceReply:
    """Test suite for enhance_reply"""

    def test_swaps_greeting_and_signoff(self):
        result = enhance_reply("Hello, thanks for the note.\nBest,", "Hey there", "Cheers")
        assert result.enhanced == "Hey there, thanks for the note.\nCheers,"
        assert [c.original for c in result.changes] == ["Hello", "Best"]
        assert result.changes[0].reason == 'You typically use "Hey there" as your greeting'

    def test_keeps_preferred_greeting(self):
        result = enhance_reply("Hey there, all good.", "Hey there", None)
        assert result.enhanced == "Hey there, all good."
        assert result.changes == []

    def test_greeting_must_be_a_word(self):
        result = enhance_reply("Hiking is fun", "Yo", None)
        assert result.changes == []

    def test_no_patterns(self):
        result = enhance_reply("Hello, world", None, None)
        assert result.enhanced == "Hello, world"


class TestStyleLearner:
    """Test suite for StyleLearner over the store"""

    @pytest.fixture
    def learner(self):
        return StyleLearner(StyleStore(InMemoryRedis()), min_samples=3, window=50)

    @pytest.mark.asyncio
    async def test_blank_sample_not_learned(self, learner):
        result = await learner.learn("   ", "sent_message")
        assert result.learned is False
        assert (await learner.profile()).total_samples == 0

    @pytest.mark.asyncio
    async def test_learn_updates_patterns_and_profile(self, learner):
        result = await learner.learn("Hey team,\nLet me know if you need anything.\nCheers", "selected_reply")
        assert result.learned is True
        assert result.greetings == ["Hey team"]
        assert result.signoffs == ["Cheers"]
        assert result.phrases == ["Let me know if"]
        assert result.patterns_updated == 3

        profile = await learner.profile()
        assert profile.total_samples == 1
        assert profile.common_greetings == ["Hey team"]
        assert profile.common_signoffs == ["Cheers"]
        assert profile.last_updated is not None

    @pytest.mark.asyncio
    async def test_profile_ranks_by_frequency(self, learner):
        await learner.learn("Hi all, see below.", "sent_message")
        await learner.learn("Hey team, done.", "sent_message")
        await learner.learn("Hey team, shipped.", "sent_message")
        profile = await learner.profile()
        assert profile.common_greetings == ["Hey team", "Hi all"]

    @pytest.mark.asyncio
    async def test_enhance_waits_for_enough_samples(self, learner):
        await learner.learn("Hey team, done.\nCheers", "sent_message")
        await learner.learn("Hey team, shipped.\nCheers", "sent_message")
        unchanged = await learner.enhance("Hello, here it is.\nBest")
        assert unchanged.changes == []

        await learner.learn("Hey team, merged.\nCheers", "sent_message")
        enhanced = await learner.enhance("Hello, here it is.\nBest")
        assert enhanced.enhanced == "Hey team, here it is.\nCheers"

    @pytest.mark.asyncio
    async def test_clear(self, learner):
        await learner.learn("Hey team, done.", "sent_message")
        await learner.clear()
        assert (await learner.profile()).total_samples == 0
        assert await learner.patterns() == []


class TestStyleAPI:
    """Test suite for the style HTTP endpoints"""

    @pytest.fixture
    def client(self):
        learner = StyleLearner(StyleStore(InMemoryRedis()))
        service = StyleService(config=SmartReplyConfig(), learner=learner)
        with TestClient(service.get_app()) as client:
            yield client

    def test_learn_requires_content(self, client):
        response = client.post("/api/learn", json={"content": "", "type": "sent_message"})
        assert response.status_code == 400
        assert response.json() == {"error": "Content is required"}

    def test_learn_rejects_unknown_type(self, client):
        response = client.post("/api/learn", json={"content": "Hi", "type": "draft"})
        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid type")

    def test_learn_and_profile(self, client):
        body = client.post("/api/learn", json={"content": "Hi Sam, ok!", "type": "custom_edit"}).json()
        assert body["learned"] is True
        assert body["extracted"]["stats"]["wordCount"] == 3

        profile = client.get("/api/profile").json()
        assert profile["totalSamples"] == 1
        assert profile["commonGreetings"] == ["Hi Sam"]
        assert profile["punctuationStyle"]["exclamationFrequency"] == 1.0
        assert profile["usesEmojis"] is False

        patterns = client.get("/api/patterns").json()
        assert patterns["count"] == 1
        assert patterns["patterns"][0] == {"pattern_type": "greeting", "value": "Hi Sam", "frequency": 1}

    def test_enhance_requires_reply(self, client):
        assert client.post("/api/enhance", json={}).status_code == 400

    def test_clear_profile(self, client):
        assert client.delete("/api/profile").json() == {"cleared": True}
