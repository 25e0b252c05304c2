"""Entry point for: python3 -m smartreply.services.relay"""
import asyncio
from smartreply.services.relay.api import RelayService

service = RelayService()
asyncio.run(service.run())
