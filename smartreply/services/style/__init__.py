"""
SmartReply - Writing Style Service

Learns the user's greetings, sign-offs, phrases and tone from their replies.
"""
from .engine import StyleLearner, analyze_stats, aggregate_profile, enhance_reply
from .store import StyleStore
from .api import StyleService

__all__ = ["StyleLearner", "analyze_stats", "aggregate_profile", "enhance_reply", "StyleStore", "StyleService"]
