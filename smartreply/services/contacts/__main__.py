"""Entry point for: python3 -m smartreply.services.contacts"""
import asyncio
from smartreply.services.contacts.api import ContactsService

service = ContactsService()
asyncio.run(service.run())
