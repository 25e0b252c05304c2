"""
SmartReply - Contact Intelligence Service

Contact records, message-to-contact matching and relationship context.
"""
from .engine import ContactNotFound, match_message, build_relationship_context, contact_suggestions
from .store import ContactStore
from .api import ContactsService

__all__ = [
    "ContactNotFound",
    "match_message",
    "build_relationship_context",
    "contact_suggestions",
    "ContactStore",
    "ContactsService",
]
