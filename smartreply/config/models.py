"""
Configuration dataclass models for SmartReply.
"""
from dataclasses import dataclass, field


@dataclass
class RedisConfig:
    """Redis server configuration."""
    host: str = "localhost"
    port: int = 6379
    db: int = 0


@dataclass
class OpenAIConfig:
    """OpenAI model configuration."""
    api_key: str = ""  # loaded from env
    reply_model: str = "gpt-4o"
    reply_temperature: float = 0.8
    reply_max_tokens: int = 2000
    sentiment_model: str = "gpt-4o-mini"
    sentiment_temperature: float = 0.3
    sentiment_max_tokens: int = 500


@dataclass
class ServicesConfig:
    """Auxiliary service endpoints consumed by the relay."""
    sentiment_url: str = "http://localhost:3002"
    contacts_url: str = "http://localhost:3003"
    style_url: str = "http://localhost:3004"
    timeout: float = 3.0  # per call, seconds


@dataclass
class RelayConfig:
    """Reply relay configuration."""
    port: int = 3001
    max_message_length: int = 5000
    history_limit: int = 50


@dataclass
class SentimentConfig:
    """Sentiment analysis service configuration."""
    port: int = 3002
    cache_ttl: int = 86400  # 24 hours in seconds


@dataclass
class ContactsConfig:
    """Contact intelligence service configuration."""
    port: int = 3003
    min_match_confidence: float = 0.3


@dataclass
class StyleConfig:
    """Writing style service configuration."""
    port: int = 3004
    min_samples: int = 3
    profile_window: int = 50


@dataclass
class ClientConfig:
    """Reply client configuration."""
    relay_url: str = "http://localhost:3001"


@dataclass
class SmartReplyConfig:
    """Root configuration object containing all subsystem configs."""
    redis: RedisConfig = field(default_factory=RedisConfig)
    openai: OpenAIConfig = field(default_factory=OpenAIConfig)
    services: ServicesConfig = field(default_factory=ServicesConfig)
    relay: RelayConfig = field(default_factory=RelayConfig)
    sentiment: SentimentConfig = field(default_factory=SentimentConfig)
    contacts: ContactsConfig = field(default_factory=ContactsConfig)
    style: StyleConfig = field(default_factory=StyleConfig)
    client: ClientConfig = field(default_factory=ClientConfig)
