"""
SmartReply - Reply Client

Consumes the relay's reply stream and manages saved conversations.
"""
from .stream import (
    StreamingReplyConsumer,
    StreamAccumulator,
    StreamOutcome,
    UpstreamStreamError,
    parse_data_line,
    parse_replies,
)
from .session import GenerationResult, RelayError, ReplySession

__all__ = [
    "StreamingReplyConsumer",
    "StreamAccumulator",
    "StreamOutcome",
    "UpstreamStreamError",
    "parse_data_line",
    "parse_replies",
    "GenerationResult",
    "RelayError",
    "ReplySession",
]
