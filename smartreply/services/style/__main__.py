"""Entry point for: python3 -m smartreply.services.style"""
import asyncio
from smartreply.services.style.api import StyleService

service = StyleService()
asyncio.run(service.run())
