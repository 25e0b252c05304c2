"""
SmartReply configuration management.

Provides centralized configuration loading from TOML files with environment variable overrides.

Usage:
    from smartreply.config import get_config

    config = get_config()
    sentiment_url = config.services.sentiment_url
    reply_model = config.openai.reply_model
"""
from .loader import load_config, get_config
from .models import SmartReplyConfig

__all__ = ["load_config", "get_config", "SmartReplyConfig"]
