"""
Enhanced context aggregation.

Queries the three auxiliary services concurrently for one message and turns
whatever came back into a plain-text block for the reply prompt. Sections
always appear in the order sentiment, relationship, style, whichever call
finished first. A service that is unavailable or timed out simply leaves its
section out.
"""

import asyncio
from dataclasses import dataclass
from typing import List, Optional

from smartreply.common.logging import setup_logging
from smartreply.common.models import ContactMatch, SentimentVerdict, StyleProfile, round_half_up
from smartreply.common.results import ServiceResult, Unavailable, present
from .clients import ServiceGateway

logger = setup_logging("relay-context")

MIN_STYLE_SAMPLES = 3
TOP_EMOTIONS = 3
TOP_GREETINGS = 3
TOP_SIGNOFFS = 3
TOP_PHRASES = 2


def percent(value: float) -> int:
    return int(round_half_up(value * 100))


@dataclass
class EnhancedContext:
    sentiment: Optional[str] = None
    relationship: Optional[str] = None
    style: Optional[str] = None

    def sections(self) -> List[str]:
        return [s for s in (self.sentiment, self.relationship, self.style) if s]

    def render(self) -> str:
        return "\n\n".join(self.sections())


def format_sentiment_section(verdict: SentimentVerdict) -> str:
    emotions = sorted(verdict.emotions, key=lambda e: e.score, reverse=True)[:TOP_EMOTIONS]
    emotion_list = ", ".join(f"{e.emotion} ({percent(e.score)}%)" for e in emotions)

    lines = [
        "SENTIMENT ANALYSIS:",
        f"- Overall sentiment: {verdict.sentiment} (confidence: {percent(verdict.confidence)}%)",
        f"- Detected emotions: {emotion_list or 'none detected'}",
        f"- Urgency level: {verdict.urgency}",
    ]
    if verdict.key_points:
        lines.append(f"- Key points: {', '.join(verdict.key_points)}")
    lines.append(f"- Suggested approach: {verdict.suggested_approach}")
    return "\n".join(lines)


def format_relationship_section(match: ContactMatch) -> Optional[str]:
    if match.matched_contact is None:
        return None
    return f"RELATIONSHIP CONTEXT:\n{match.relationship_context}"


def format_style_section(profile: StyleProfile, min_samples: int = MIN_STYLE_SAMPLES) -> Optional[str]:
    if profile.total_samples < min_samples:
        return None

    hints = []
    if profile.common_greetings:
        hints.append(f"Preferred greetings: {', '.join(profile.common_greetings[:TOP_GREETINGS])}")
    if profile.common_signoffs:
        hints.append(f"Preferred sign-offs: {', '.join(profile.common_signoffs[:TOP_SIGNOFFS])}")
    if profile.vocabulary_level != "mixed":
        hints.append(f"Writing style: {profile.vocabulary_level}")
    if profile.uses_emojis:
        hints.append("User likes to use emojis")
    if profile.common_phrases:
        quoted = ", ".join(f'"{p}"' for p in profile.common_phrases[:TOP_PHRASES])
        hints.append(f"Common phrases: {quoted}")

    if not hints:
        return None
    return "USER'S WRITING STYLE:\n" + "\n".join(hints)


class ContextAggregator:
    """Builds EnhancedContext from the auxiliary services."""

    def __init__(self, gateway: ServiceGateway, min_style_samples: int = MIN_STYLE_SAMPLES):
        self.gateway = gateway
        self.min_style_samples = min_style_samples

    async def build(self, message: str) -> EnhancedContext:
        results = await asyncio.gather(
            self.gateway.analyze_sentiment(message),
            self.gateway.match_contact(message),
            self.gateway.get_style_profile(),
            return_exceptions=True,
        )
        sentiment, contact, style = (self._settled(r) for r in results)

        context = EnhancedContext()
        verdict = present(sentiment)
        if verdict is not None:
            context.sentiment = format_sentiment_section(verdict)

        match = present(contact)
        if match is not None:
            context.relationship = format_relationship_section(match)

        profile = present(style)
        if profile is not None:
            context.style = format_style_section(profile, self.min_style_samples)

        logger.info(f"Enhanced context built with {len(context.sections())} section(s)")
        return context

    @staticmethod
    def _settled(result) -> ServiceResult:
        # The gateway never raises; anything that slips through counts as absent.
        if isinstance(result, BaseException):
            logger.error(f"Service call raised: {result!r}")
            return Unavailable(repr(result))
        return result
