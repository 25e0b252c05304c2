"""
SmartReply - Sentiment Analysis Service

LLM sentiment verdicts with a keyword fallback classifier and a Redis cache.
"""
from .engine import SentimentAnalyzer, EmotionPattern, fallback_analysis, parse_analysis_response
from .cache import SentimentCache
from .api import SentimentService

__all__ = [
    "SentimentAnalyzer",
    "EmotionPattern",
    "fallback_analysis",
    "parse_analysis_response",
    "SentimentCache",
    "SentimentService",
]
