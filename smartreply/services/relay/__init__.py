"""
SmartReply - Reply Relay Service

Streams three reply options per received message, enriched with sentiment,
relationship and writing-style context from the auxiliary services.
"""
from .clients import ServiceClient, ServiceGateway
from .context import ContextAggregator, EnhancedContext
from .store import ConversationStore
from .api import RelayService

__all__ = [
    "ServiceClient",
    "ServiceGateway",
    "ContextAggregator",
    "EnhancedContext",
    "ConversationStore",
    "RelayService",
]
