"""
Wire models shared by the relay, the auxiliary services and the client.

Everything that crosses an HTTP boundary is parsed through these schemas.
Scores and confidences are clamped to [0, 1] on the way in, and labels outside
their vocabulary fall back to the neutral defaults, so one noisy field never
discards the whole payload. A payload that is not an object at all is still
rejected (see smartreply.common.results.validate).
"""
import math
from typing import Any, List, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Sentiment = Literal["positive", "negative", "neutral", "mixed"]
Urgency = Literal["low", "medium", "high", "critical"]
Tone = Literal["professional", "friendly", "apologetic", "assertive", "neutral"]
Relationship = Literal["colleague", "manager", "client", "vendor", "friend", "family", "other"]
Formality = Literal["formal", "casual", "adaptive"]
VocabularyLevel = Literal["professional", "casual", "mixed"]
SampleType = Literal["selected_reply", "custom_edit", "sent_message"]

SENTIMENTS = get_args(Sentiment)
URGENCIES = get_args(Urgency)
TONES = get_args(Tone)
RELATIONSHIPS = get_args(Relationship)
FORMALITIES = get_args(Formality)
SAMPLE_TYPES = get_args(SampleType)

DEFAULT_APPROACH = "Respond professionally and address their concerns."
MAX_EMOTIONS = 5
MAX_KEY_POINTS = 3


def clamp_unit(value: float) -> float:
    """Clamp a score into [0, 1]."""
    return max(0.0, min(1.0, value))


def round_half_up(value: float, digits: int = 0) -> float:
    """Round with halves going up (0.125 -> 0.13), unlike the builtin banker's rounding."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class WireModel(BaseModel):
    """Base for JSON payloads; accepts both camelCase aliases and field names."""

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class EmotionScore(WireModel):
    emotion: str = "unknown"
    score: float = 0.5

    @model_validator(mode="before")
    @classmethod
    def _entry_object(cls, data: Any) -> Any:
        # A bare string or number in the emotions list still yields an entry.
        return data if isinstance(data, dict) else {}

    @field_validator("emotion", mode="before")
    @classmethod
    def _label(cls, value: Any) -> str:
        return str(value) if value else "unknown"

    @field_validator("score", mode="before")
    @classmethod
    def _score(cls, value: Any) -> float:
        return clamp_unit(float(value)) if _is_number(value) else 0.5


class SentimentVerdict(WireModel):
    """Sentiment, emotions and urgency of a received message."""

    sentiment: Sentiment = "neutral"
    confidence: float = 0.5
    emotions: List[EmotionScore] = Field(default_factory=list)
    urgency: Urgency = "medium"
    key_points: List[str] = Field(default_factory=list, alias="keyPoints")
    suggested_approach: str = Field(DEFAULT_APPROACH, alias="suggestedApproach")

    @field_validator("sentiment", mode="before")
    @classmethod
    def _sentiment(cls, value: Any) -> str:
        return value if value in SENTIMENTS else "neutral"

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, value: Any) -> float:
        return clamp_unit(float(value)) if _is_number(value) else 0.5

    @field_validator("emotions", mode="before")
    @classmethod
    def _emotions(cls, value: Any) -> list:
        return list(value[:MAX_EMOTIONS]) if isinstance(value, list) else []

    @field_validator("urgency", mode="before")
    @classmethod
    def _urgency(cls, value: Any) -> str:
        return value if value in URGENCIES else "medium"

    @field_validator("key_points", mode="before")
    @classmethod
    def _key_points(cls, value: Any) -> List[str]:
        return [str(v) for v in value[:MAX_KEY_POINTS]] if isinstance(value, list) else []

    @field_validator("suggested_approach", mode="before")
    @classmethod
    def _approach(cls, value: Any) -> str:
        return value if isinstance(value, str) else DEFAULT_APPROACH


class Contact(WireModel):
    id: str
    name: str
    email: Optional[str] = None
    relationship: Relationship = "other"
    company: Optional[str] = None
    notes: Optional[str] = None
    formality: Formality = "adaptive"
    use_emojis: bool = False
    preferred_tone: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class ContactMatch(WireModel):
    """Result of matching a message against known contacts."""

    matched_contact: Optional[Contact] = Field(None, alias="matchedContact")
    confidence: float = 0.0
    relationship_context: str = Field("", alias="relationshipContext")

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, value: Any) -> float:
        return clamp_unit(float(value)) if _is_number(value) else 0.0


class PunctuationStyle(WireModel):
    exclamation_frequency: float = Field(0.0, alias="exclamationFrequency")
    question_frequency: float = Field(0.0, alias="questionFrequency")


class StyleProfile(WireModel):
    """Aggregated writing style learned from the user's own replies."""

    total_samples: int = Field(0, alias="totalSamples")
    average_sentence_length: float = Field(0.0, alias="averageSentenceLength")
    common_greetings: List[str] = Field(default_factory=list, alias="commonGreetings")
    common_signoffs: List[str] = Field(default_factory=list, alias="commonSignoffs")
    vocabulary_level: VocabularyLevel = Field("mixed", alias="vocabularyLevel")
    uses_emojis: bool = Field(False, alias="usesEmojis")
    emoji_frequency: float = Field(0.0, alias="emojiFrequency")
    common_phrases: List[str] = Field(default_factory=list, alias="commonPhrases")
    punctuation_style: PunctuationStyle = Field(default_factory=PunctuationStyle, alias="punctuationStyle")
    last_updated: Optional[str] = Field(None, alias="lastUpdated")


class ReplyOption(WireModel):
    id: str
    content: str
    reply_index: int = Field(ge=0, le=2)
