"""
Consumer for the relay's reply stream.

The relay answers a generate request with server-sent events, one JSON object
per ``data:`` line, closed by ``data: [DONE]``. The consumer rebuilds the
model's text from those events and, once the stream closes cleanly, pulls the
JSON array of reply options out of the final text.

Event kinds:
- ``text``: append ``content`` to the accumulated text
- ``content``: replace the accumulated text with ``content``
- ``error``: stop reading and fail with ``error.message``

Any other well-formed kind (the relay's ``done`` marker, for instance) is
ignored.
"""

import asyncio
import codecs
import json
import re
import time
from dataclasses import dataclass, field
from typing import Any, AsyncIterable, AsyncIterator, Callable, List, Optional, Union

from smartreply.common.logging import setup_logging
from smartreply.common.models import ReplyOption

logger = setup_logging("client")

DATA_PREFIX = "data: "
SENTINEL = "[DONE]"
MAX_REPLIES = 3
DEFAULT_STREAM_ERROR = "Stream error"

_ARRAY_PATTERN = re.compile(r"\[[\s\S]*\]")


class UpstreamStreamError(Exception):
    """The stream carried an explicit error event."""


@dataclass(frozen=True)
class TextDelta:
    content: str


@dataclass(frozen=True)
class ContentSnapshot:
    content: str


@dataclass(frozen=True)
class StreamFailure:
    message: str


@dataclass(frozen=True)
class RawText:
    """A data line that was not JSON, kept as literal text."""
    text: str


@dataclass(frozen=True)
class Ignored:
    kind: Optional[str] = None


StreamEvent = Union[TextDelta, ContentSnapshot, StreamFailure, RawText, Ignored]


def parse_data_line(line: str) -> Optional[StreamEvent]:
    """Turn one line of the stream into an event.

    Returns None for lines that carry nothing: non-data lines, the end
    sentinel and object-looking payloads that fail to parse (a JSON object
    split across reads).
    """
    if not line.startswith(DATA_PREFIX):
        return None

    payload = line[len(DATA_PREFIX):].strip()
    if not payload or payload == SENTINEL:
        return None

    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        if payload.startswith("{"):
            return None
        return RawText(payload)

    if not isinstance(data, dict):
        return Ignored()

    kind = data.get("type")
    content = data.get("content")

    if kind == "text" and isinstance(content, str) and content:
        return TextDelta(content)
    if kind == "content" and isinstance(content, str) and content:
        return ContentSnapshot(content)
    if kind == "error":
        error = data.get("error")
        message = error.get("message") if isinstance(error, dict) else None
        return StreamFailure(message or DEFAULT_STREAM_ERROR)
    return Ignored(kind if isinstance(kind, str) else None)


def _reply_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


def parse_replies(text: str) -> List[ReplyOption]:
    """Extract up to three reply options from the model's final text.

    The first bracketed span (greedy, so it reaches the last ``]``) is
    parsed as JSON. No array, or an unparseable one, gives an empty list.
    """
    match = _ARRAY_PATTERN.search(text)
    if match is None:
        return []

    try:
        values = json.loads(match.group(0))
    except json.JSONDecodeError:
        logger.warning("Reply text contained an unparseable array")
        return []

    if not isinstance(values, list):
        return []

    stamp = int(time.time() * 1000)
    return [
        ReplyOption(id=f"reply-{stamp}-{index}", content=_reply_text(value), reply_index=index)
        for index, value in enumerate(values[:MAX_REPLIES])
    ]


class StreamAccumulator:
    """Text rebuilt from the stream for a single generation."""

    def __init__(self):
        self.text = ""

    def apply(self, event: StreamEvent):
        if isinstance(event, TextDelta):
            self.text += event.content
        elif isinstance(event, ContentSnapshot):
            self.text = event.content
        elif isinstance(event, RawText):
            self.text += event.text
        elif isinstance(event, StreamFailure):
            raise UpstreamStreamError(event.message)
        elif isinstance(event, Ignored):
            return
        else:
            raise TypeError(f"Unhandled stream event: {event!r}")


@dataclass
class StreamOutcome:
    """Result of consuming one stream."""
    replies: List[ReplyOption] = field(default_factory=list)
    text: str = ""
    cancelled: bool = False


async def _next_chunk(chunks: AsyncIterator[bytes], cancel: Optional[asyncio.Event]) -> Optional[bytes]:
    """Read one chunk, or None when the stream ended or cancel was set."""
    if cancel is None:
        try:
            return await chunks.__anext__()
        except StopAsyncIteration:
            return None

    if cancel.is_set():
        return None

    read = asyncio.ensure_future(chunks.__anext__())
    cancelled = asyncio.ensure_future(cancel.wait())
    done, _ = await asyncio.wait({read, cancelled}, return_when=asyncio.FIRST_COMPLETED)

    if read not in done:
        read.cancel()
        try:
            await read
        except (asyncio.CancelledError, StopAsyncIteration):
            pass
        return None

    cancelled.cancel()
    try:
        return read.result()
    except StopAsyncIteration:
        return None


class StreamingReplyConsumer:
    """Reads a reply stream one chunk at a time.

    Setting ``cancel`` stops reading at the next suspension point; the
    outcome is then marked cancelled and carries no replies. ``on_text`` is
    called with the accumulated text after every change.
    """

    def __init__(
        self,
        cancel: Optional[asyncio.Event] = None,
        on_text: Optional[Callable[[str], None]] = None,
    ):
        self.cancel = cancel
        self.on_text = on_text

    def _process_line(self, line: str, accumulator: StreamAccumulator):
        event = parse_data_line(line.rstrip("\r"))
        if event is None:
            return
        before = accumulator.text
        accumulator.apply(event)
        if self.on_text is not None and accumulator.text != before:
            self.on_text(accumulator.text)

    async def consume(self, chunks: AsyncIterable[bytes]) -> StreamOutcome:
        """Consume the stream; raises UpstreamStreamError on an error event."""
        accumulator = StreamAccumulator()
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        pending = ""
        iterator = chunks.__aiter__()

        while True:
            chunk = await _next_chunk(iterator, self.cancel)
            if chunk is None:
                break

            pending += decoder.decode(chunk)
            *lines, pending = pending.split("\n")
            for line in lines:
                self._process_line(line, accumulator)

        if self.cancel is not None and self.cancel.is_set():
            logger.info("Stream cancelled by caller")
            return StreamOutcome(text=accumulator.text, cancelled=True)

        pending += decoder.decode(b"", final=True)
        if pending:
            self._process_line(pending, accumulator)

        return StreamOutcome(replies=parse_replies(accumulator.text), text=accumulator.text)
