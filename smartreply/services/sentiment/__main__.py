"""Entry point for: python3 -m smartreply.services.sentiment"""
import asyncio
from smartreply.services.sentiment.api import SentimentService

service = SentimentService()
asyncio.run(service.run())
