#!/usr/bin/env python3
"""
SmartReply - Sentiment Analysis Engine

Classifies the sentiment, emotions and urgency of a received message.

Paths:
- CACHE: previously analyzed message (normalized hash lookup)
- LLM: OpenAI chat completion returning a JSON verdict
- FALLBACK: weighted keyword patterns, used when no LLM client is configured
  or the LLM call fails

Fallback verdicts carry a fixed confidence of 0.6. They are heuristic and are
not comparable to model confidence.
"""

import json
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from openai import AsyncOpenAI

from smartreply.common.logging import setup_logging
from smartreply.common.models import EmotionScore, SentimentVerdict
from smartreply.common.results import Valid, validate
from .cache import SentimentCache

logger = setup_logging("sentiment")


@dataclass(frozen=True)
class EmotionPattern:
    """Keyword that signals an emotion with a given weight."""
    pattern: str
    emotion: str
    weight: float


EMOTION_PATTERNS: List[EmotionPattern] = [
    EmotionPattern("frustrated", "frustrated", 0.9),
    EmotionPattern("annoyed", "frustrated", 0.8),
    EmotionPattern("angry", "angry", 0.9),
    EmotionPattern("furious", "angry", 1.0),
    EmotionPattern("happy", "happy", 0.9),
    EmotionPattern("excited", "happy", 0.8),
    EmotionPattern("confused", "confused", 0.9),
    EmotionPattern("don't understand", "confused", 0.8),
    EmotionPattern("anxious", "anxious", 0.9),
    EmotionPattern("worried", "anxious", 0.8),
    EmotionPattern("urgent", "urgent", 0.9),
    EmotionPattern("asap", "urgent", 0.8),
    EmotionPattern("immediately", "urgent", 0.9),
    EmotionPattern("thank", "grateful", 0.8),
    EmotionPattern("appreciate", "grateful", 0.9),
    EmotionPattern("grateful", "grateful", 1.0),
]

NEGATIVE_EMOTIONS = frozenset({"frustrated", "angry", "anxious", "disappointed"})
POSITIVE_EMOTIONS = frozenset({"happy", "grateful", "excited", "hopeful"})

URGENT_KEYWORDS = ("urgent", "asap", "immediately", "emergency", "critical", "deadline")
CRITICAL_KEYWORDS = ("emergency", "critical")

FALLBACK_CONFIDENCE = 0.6
FALLBACK_APPROACH = "Address their concerns professionally."
TOP_EMOTIONS = 3

ANALYSIS_PROMPT = """You are a sentiment and emotion analyzer. Analyze the following message and return a JSON object with:

1. "sentiment": Overall sentiment - one of: "positive", "negative", "neutral", "mixed"
2. "confidence": Your confidence in the sentiment (0.0 to 1.0)
3. "emotions": Array of detected emotions with scores, e.g. [{"emotion": "frustrated", "score": 0.8}]
   Possible emotions: happy, frustrated, confused, angry, anxious, grateful, excited, disappointed, hopeful, urgent
4. "urgency": Urgency level - one of: "low", "medium", "high", "critical"
5. "keyPoints": Array of key concerns or topics mentioned (max 3)
6. "suggestedApproach": A brief suggestion on how to respond (1 sentence)

Return ONLY valid JSON, no markdown or explanation.

Message to analyze:"""

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def default_verdict() -> SentimentVerdict:
    """Neutral verdict used when a model answer cannot be parsed."""
    return SentimentVerdict()


def _overall_sentiment(emotions: Sequence[EmotionScore]) -> str:
    labels = {e.emotion for e in emotions}
    has_negative = bool(labels & NEGATIVE_EMOTIONS)
    has_positive = bool(labels & POSITIVE_EMOTIONS)
    if has_negative and has_positive:
        return "mixed"
    if has_negative:
        return "negative"
    if has_positive:
        return "positive"
    return "neutral"


def _urgency(lower_message: str) -> str:
    urgency = "medium"
    if any(keyword in lower_message for keyword in URGENT_KEYWORDS):
        urgency = "high"
        if any(keyword in lower_message for keyword in CRITICAL_KEYWORDS):
            urgency = "critical"
    return urgency


def fallback_analysis(message: str, patterns: Sequence[EmotionPattern] = EMOTION_PATTERNS) -> SentimentVerdict:
    """Pattern-weighted heuristic verdict."""
    lower_message = message.lower()

    detected: Dict[str, float] = {}
    for p in patterns:
        if p.pattern.lower() in lower_message:
            detected[p.emotion] = max(detected.get(p.emotion, 0.0), p.weight)

    emotions = sorted(
        (EmotionScore(emotion=label, score=weight) for label, weight in detected.items()),
        key=lambda e: e.score,
        reverse=True,
    )[:TOP_EMOTIONS]

    return SentimentVerdict(
        sentiment=_overall_sentiment(emotions),
        confidence=FALLBACK_CONFIDENCE,
        emotions=emotions,
        urgency=_urgency(lower_message),
        key_points=[],
        suggested_approach=FALLBACK_APPROACH,
    )


def parse_analysis_response(content: str) -> SentimentVerdict:
    """Extract and validate the JSON verdict from a model answer.

    Anything unparseable yields the neutral default verdict.
    """
    match = _JSON_OBJECT.search(content or "")
    if match:
        try:
            payload = json.loads(match.group())
        except json.JSONDecodeError as e:
            logger.warning(f"Analysis response is not valid JSON: {e}")
        else:
            result = validate(SentimentVerdict, payload)
            if isinstance(result, Valid):
                return result.value
            logger.warning(f"Analysis response rejected: {result.reason}")

    return default_verdict()


class SentimentAnalyzer:
    """Cache-first sentiment analysis with an LLM primary path.

    Both clients are injected; either may be None. Without an LLM client every
    uncached message goes through the fallback classifier.
    """

    def __init__(
        self,
        llm: Optional[AsyncOpenAI] = None,
        cache: Optional[SentimentCache] = None,
        model: str = "gpt-4o-mini",
        temperature: float = 0.3,
        max_tokens: int = 500,
        patterns: Sequence[EmotionPattern] = EMOTION_PATTERNS,
    ):
        self.llm = llm
        self.cache = cache
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.patterns = patterns

    async def analyze(self, message: str) -> SentimentVerdict:
        if self.cache is not None:
            cached = await self.cache.get(message)
            if cached is not None:
                logger.debug("Cache hit")
                return cached

        if self.llm is None:
            logger.info("No OpenAI client configured, using fallback analysis")
            return fallback_analysis(message, self.patterns)

        logger.info("Analyzing with OpenAI...")
        try:
            response = await self.llm.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": ANALYSIS_PROMPT},
                    {"role": "user", "content": message},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except Exception as e:
            logger.error(f"OpenAI analysis failed, using fallback: {e}")
            return fallback_analysis(message, self.patterns)

        content = ""
        if response.choices:
            content = response.choices[0].message.content or ""

        verdict = parse_analysis_response(content)

        if self.cache is not None:
            await self.cache.save(message, verdict)

        return verdict
