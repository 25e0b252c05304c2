#!/usr/bin/env python3
"""
SmartReply - Writing Style Learner

Learns how the user writes from the replies they pick or edit, and uses it
to personalise future replies.

Per sample:
- greeting from the first line, sign-offs from the last three lines
- known stock phrases (max 3)
- word/sentence/emoji/punctuation statistics

The aggregated profile is recomputed over the most recent samples after
every learned sample. Replies are only personalised once enough samples
exist to trust the profile.
"""

import re
from dataclasses import dataclass, asdict, field
from typing import Any, Dict, List, Optional, Sequence

from smartreply.common.logging import setup_logging
from smartreply.common.models import PunctuationStyle, StyleProfile, round_half_up
from .store import StyleStore

logger = setup_logging("style")

COMMON_GREETINGS = [
    "hi", "hey", "hello", "dear", "good morning", "good afternoon", "good evening",
    "greetings", "hiya", "howdy", "sup", "yo",
]

COMMON_SIGNOFFS = [
    "best", "thanks", "thank you", "regards", "cheers", "sincerely", "warmly",
    "take care", "best regards", "kind regards", "warm regards", "many thanks",
    "talk soon", "later", "bye", "ciao", "xo", "love",
]

PROFESSIONAL_WORDS = [
    "regarding", "furthermore", "therefore", "accordingly", "pursuant",
    "subsequently", "henceforth", "aforementioned", "herewith", "notwithstanding",
    "acknowledge", "appreciate", "consideration", "implementation",
]

CASUAL_INDICATORS = [
    "gonna", "wanna", "kinda", "gotta", "yeah", "nope", "yup", "cool",
    "awesome", "stuff", "things", "btw", "fyi", "asap", "lol", "haha",
]

COMMON_PHRASES = [
    "I'd be happy to",
    "Let me know if",
    "Thanks for reaching out",
    "I hope this helps",
    "Please let me know",
    "Looking forward to",
    "Feel free to",
    "Don't hesitate to",
    "I wanted to",
    "Just wanted to",
    "Hope you're doing well",
    "Hope this finds you well",
]

# Generic openers/closers that may be swapped for the user's own
GENERIC_GREETINGS = ["Hello", "Hi", "Hey", "Dear"]
GENERIC_SIGNOFFS = ["Best", "Thanks", "Regards", "Cheers", "Sincerely"]

MAX_PATTERN_LENGTH = 30
MAX_PHRASES_PER_SAMPLE = 3
EMOJI_USAGE_THRESHOLD = 0.01

_EMOJI = re.compile("[\U0001F300-\U0001F9FF\u2600-\u26FF\u2700-\u27BF]")
_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_GREETING_END = re.compile(r"[,!\n]")
_TRAILING_PUNCT = re.compile(r"[,!.]+$")
_NON_LETTER = re.compile(r"[^a-zA-Z]")


def _starts_with_word(text: str, word: str) -> bool:
    return re.match(rf"{re.escape(word)}\b", text) is not None


@dataclass
class TextStats:
    word_count: int = 0
    sentence_count: int = 0
    avg_word_length: float = 0.0
    avg_sentence_length: float = 0.0
    emoji_count: int = 0
    exclamation_count: int = 0
    question_count: int = 0

    def to_wire(self) -> Dict[str, Any]:
        return {
            "wordCount": self.word_count,
            "sentenceCount": self.sentence_count,
            "avgWordLength": self.avg_word_length,
            "avgSentenceLength": self.avg_sentence_length,
            "emojiCount": self.emoji_count,
            "exclamationCount": self.exclamation_count,
            "questionCount": self.question_count,
        }


@dataclass
class LearnResult:
    learned: bool
    patterns_updated: int = 0
    greetings: List[str] = field(default_factory=list)
    signoffs: List[str] = field(default_factory=list)
    phrases: List[str] = field(default_factory=list)
    stats: TextStats = field(default_factory=TextStats)

    def to_wire(self) -> Dict[str, Any]:
        return {
            "learned": self.learned,
            "patterns_updated": self.patterns_updated,
            "extracted": {
                "greetings": self.greetings,
                "signoffs": self.signoffs,
                "phrases": self.phrases,
                "stats": self.stats.to_wire(),
            },
        }


@dataclass
class StyleChange:
    original: str
    replacement: str
    reason: str


@dataclass
class EnhanceResult:
    enhanced: str
    changes: List[StyleChange] = field(default_factory=list)

    def to_wire(self) -> Dict[str, Any]:
        return {"enhanced": self.enhanced, "changes": [asdict(c) for c in self.changes]}


def extract_greetings(text: str) -> List[str]:
    """Greeting opening the first line, with the user's own casing."""
    first_line = text.split("\n")[0].strip()
    lower_first = first_line.lower()

    for greeting in COMMON_GREETINGS:
        if _starts_with_word(lower_first, greeting):
            match = _GREETING_END.split(first_line[:len(greeting) + 20])[0].strip()
            if match and len(match) < MAX_PATTERN_LENGTH:
                return [match]
    return []


def extract_signoffs(text: str) -> List[str]:
    """Sign-offs found in the last three non-empty lines."""
    lines = [line for line in text.split("\n") if line.strip()]
    found: List[str] = []

    for line in lines[-3:]:
        lower_line = line.strip().lower()
        for signoff in COMMON_SIGNOFFS:
            if _starts_with_word(lower_line, signoff):
                clean = _TRAILING_PUNCT.sub("", line.strip()).strip()
                if clean and len(clean) < MAX_PATTERN_LENGTH and clean not in found:
                    found.append(clean)
                break
    return found


def extract_phrases(text: str) -> List[str]:
    lower_text = text.lower()
    phrases = [p for p in COMMON_PHRASES if p.lower() in lower_text]
    return phrases[:MAX_PHRASES_PER_SAMPLE]


def analyze_stats(text: str) -> TextStats:
    words = text.split()
    sentences = [s for s in _SENTENCE_SPLIT.split(text) if s.strip()]

    total_word_length = sum(len(_NON_LETTER.sub("", w)) for w in words)
    total_sentence_length = sum(len(s.split()) for s in sentences)

    return TextStats(
        word_count=len(words),
        sentence_count=len(sentences),
        avg_word_length=round_half_up(total_word_length / len(words), 2) if words else 0.0,
        avg_sentence_length=round_half_up(total_sentence_length / len(sentences), 2) if sentences else 0.0,
        emoji_count=len(_EMOJI.findall(text)),
        exclamation_count=text.count("!"),
        question_count=text.count("?"),
    )


def vocabulary_level(professional_score: int, casual_score: int) -> str:
    if professional_score > casual_score * 2:
        return "professional"
    if casual_score > professional_score * 2:
        return "casual"
    return "mixed"


def aggregate_profile(samples: Sequence[str]) -> Dict[str, Any]:
    """Profile fields computed over a window of sample texts."""
    words = sentences = emojis = exclamations = questions = 0
    professional_score = casual_score = 0

    for content in samples:
        stats = analyze_stats(content)
        words += stats.word_count
        sentences += stats.sentence_count
        emojis += stats.emoji_count
        exclamations += stats.exclamation_count
        questions += stats.question_count

        lower = content.lower()
        professional_score += sum(1 for w in PROFESSIONAL_WORDS if w in lower)
        casual_score += sum(1 for w in CASUAL_INDICATORS if w in lower)

    return {
        "avg_sentence_length": round_half_up(words / sentences, 2) if sentences else 0.0,
        "vocabulary_level": vocabulary_level(professional_score, casual_score),
        "emoji_usage": round_half_up(emojis / words, 3) if words else 0.0,
        "exclamation_frequency": round_half_up(exclamations / sentences, 2) if sentences else 0.0,
        "question_frequency": round_half_up(questions / sentences, 2) if sentences else 0.0,
    }


def enhance_reply(reply: str, top_greeting: Optional[str], top_signoff: Optional[str]) -> EnhanceResult:
    """Swap a generic greeting and sign-off for the user's preferred ones."""
    result = EnhanceResult(enhanced=reply)

    if top_greeting and not reply.startswith(top_greeting):
        for pattern in GENERIC_GREETINGS:
            opener = re.compile(rf"^{pattern}(\s|,|!)")
            if opener.match(result.enhanced):
                result.enhanced = opener.sub(lambda m: f"{top_greeting}{m.group(1)}", result.enhanced, count=1)
                result.changes.append(StyleChange(
                    original=pattern,
                    replacement=top_greeting,
                    reason=f'You typically use "{top_greeting}" as your greeting',
                ))
                break

    if top_signoff:
        lines = result.enhanced.split("\n")
        last = lines[-1]
        stripped = last.strip()
        for pattern in GENERIC_SIGNOFFS:
            if stripped.startswith(pattern) and not stripped.startswith(top_signoff):
                indent = last[:len(last) - len(last.lstrip())]
                lines[-1] = indent + top_signoff + last.lstrip()[len(pattern):]
                result.changes.append(StyleChange(
                    original=pattern,
                    replacement=top_signoff,
                    reason=f'Your preferred sign-off is "{top_signoff}"',
                ))
                result.enhanced = "\n".join(lines)
                break

    return result


class StyleLearner:
    """Learns from samples and serves the aggregated profile."""

    def __init__(self, store: StyleStore, min_samples: int = 3, window: int = 50):
        self.store = store
        self.min_samples = min_samples
        self.window = window

    async def learn(self, content: str, sample_type: str) -> LearnResult:
        trimmed = content.strip()
        if not trimmed:
            return LearnResult(learned=False)

        stats = analyze_stats(trimmed)
        await self.store.save_sample({
            "content": trimmed,
            "type": sample_type,
            "word_count": stats.word_count,
            "sentence_count": stats.sentence_count,
        })

        result = LearnResult(
            learned=True,
            greetings=extract_greetings(trimmed),
            signoffs=extract_signoffs(trimmed),
            phrases=extract_phrases(trimmed),
            stats=stats,
        )
        for pattern_type, values in (
            ("greeting", result.greetings),
            ("signoff", result.signoffs),
            ("phrase", result.phrases),
        ):
            for value in values:
                await self.store.increment_pattern(pattern_type, value)
                result.patterns_updated += 1

        await self.refresh_profile()
        logger.info(f"Learned from {sample_type}: {result.patterns_updated} patterns updated")
        return result

    async def refresh_profile(self):
        samples = await self.store.recent_samples(self.window)
        if not samples:
            return
        fields = aggregate_profile([s["content"] for s in samples])
        fields["total_samples"] = await self.store.sample_count()
        await self.store.save_profile(fields)

    async def profile(self) -> StyleProfile:
        stored = await self.store.load_profile()
        greetings = await self.store.top_patterns("greeting", 5)
        signoffs = await self.store.top_patterns("signoff", 5)
        phrases = await self.store.top_patterns("phrase", 10)

        emoji_usage = float(stored.get("emoji_usage", 0.0))
        return StyleProfile(
            total_samples=int(stored.get("total_samples", 0)),
            average_sentence_length=float(stored.get("avg_sentence_length", 0.0)),
            common_greetings=[value for value, _ in greetings],
            common_signoffs=[value for value, _ in signoffs],
            vocabulary_level=stored.get("vocabulary_level", "mixed"),
            uses_emojis=emoji_usage > EMOJI_USAGE_THRESHOLD,
            emoji_frequency=emoji_usage,
            common_phrases=[value for value, _ in phrases],
            punctuation_style=PunctuationStyle(
                exclamation_frequency=float(stored.get("exclamation_frequency", 0.0)),
                question_frequency=float(stored.get("question_frequency", 0.0)),
            ),
            last_updated=stored.get("updated_at"),
        )

    async def enhance(self, reply: str) -> EnhanceResult:
        stored = await self.store.load_profile()
        if int(stored.get("total_samples", 0)) < self.min_samples:
            return EnhanceResult(enhanced=reply)

        greetings = await self.store.top_patterns("greeting", 1)
        signoffs = await self.store.top_patterns("signoff", 1)
        return enhance_reply(
            reply,
            greetings[0][0] if greetings else None,
            signoffs[0][0] if signoffs else None,
        )

    async def patterns(self) -> List[Dict[str, Any]]:
        return await self.store.all_patterns()

    async def clear(self):
        await self.store.clear()
        logger.info("Style profile cleared")
