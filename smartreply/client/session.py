"""
Client session against the reply relay.

Wraps one aiohttp session and drives a whole generation: the generate
request, the reply stream and saving the parsed replies back to the relay.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import aiohttp

from smartreply.common.logging import setup_logging
from smartreply.common.models import ReplyOption
from .stream import StreamingReplyConsumer, UpstreamStreamError

logger = setup_logging("client")

CONVERSATION_HEADER = "X-Conversation-Id"
GENERATION_FAILED = "Failed to generate replies"


class RelayError(Exception):
    """The relay answered with an error status."""

    def __init__(self, status: int, message: str):
        super().__init__(message)
        self.status = status


@dataclass
class GenerationResult:
    replies: List[ReplyOption] = field(default_factory=list)
    conversation_id: Optional[str] = None
    text: str = ""
    cancelled: bool = False
    error: Optional[str] = None


async def _error_message(response: aiohttp.ClientResponse) -> str:
    try:
        body = await response.json(content_type=None)
    except (aiohttp.ContentTypeError, ValueError):
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"HTTP {response.status}"


class ReplySession:
    """Generates replies through the relay, one generation at a time.

    ``stop()`` cancels the running generation. The generation then ends
    quietly with ``cancelled`` set and no replies; the relay's context calls
    for that request are not aborted.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        base_url: str = "http://localhost:3001",
        on_text: Optional[Callable[[str], None]] = None,
    ):
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.on_text = on_text
        self._cancel: Optional[asyncio.Event] = None

    @property
    def generating(self) -> bool:
        return self._cancel is not None

    def stop(self):
        if self._cancel is not None:
            self._cancel.set()

    async def generate(
        self,
        message: str,
        tone: str,
        context: Optional[str] = None,
        intent: Optional[str] = None,
    ) -> GenerationResult:
        payload: Dict[str, Any] = {"message": message, "tone": tone}
        if context:
            payload["context"] = context
        if intent:
            payload["intent"] = intent

        cancel = asyncio.Event()
        self._cancel = cancel
        conversation_id = None
        try:
            async with self.session.post(f"{self.base_url}/api/replies/generate", json=payload) as response:
                if response.status >= 400:
                    return GenerationResult(error=await _error_message(response))

                conversation_id = response.headers.get(CONVERSATION_HEADER)
                consumer = StreamingReplyConsumer(cancel=cancel, on_text=self.on_text)
                outcome = await consumer.consume(response.content.iter_any())
        except UpstreamStreamError as e:
            logger.error(f"Generation error: {e}", extra={"conversation_id": conversation_id})
            return GenerationResult(conversation_id=conversation_id, error=str(e))
        except aiohttp.ClientError as e:
            if cancel.is_set():
                return GenerationResult(cancelled=True)
            logger.error(f"Generation error: {e}")
            return GenerationResult(conversation_id=conversation_id, error=str(e) or GENERATION_FAILED)
        except asyncio.TimeoutError:
            if cancel.is_set():
                return GenerationResult(cancelled=True)
            logger.error("Generation timed out", extra={"conversation_id": conversation_id})
            return GenerationResult(conversation_id=conversation_id, error=GENERATION_FAILED)
        finally:
            if self._cancel is cancel:
                self._cancel = None

        if outcome.cancelled:
            return GenerationResult(conversation_id=conversation_id, cancelled=True)

        if conversation_id and outcome.replies:
            await self.save_replies(conversation_id, [reply.content for reply in outcome.replies])

        return GenerationResult(
            replies=outcome.replies,
            conversation_id=conversation_id,
            text=outcome.text,
        )

    async def save_replies(self, conversation_id: str, replies: List[str]) -> bool:
        """Persist replies; failures are logged and reported as False."""
        try:
            await self._request("POST", "/api/replies/save", {"conversationId": conversation_id, "replies": replies})
            return True
        except (RelayError, aiohttp.ClientError) as e:
            logger.warning(f"Failed to save replies: {e}", extra={"conversation_id": conversation_id})
            return False

    async def learn(self, content: str, sample_type: str = "selected_reply") -> bool:
        body = await self._request("POST", "/api/replies/learn", {"content": content, "type": sample_type})
        return bool(body.get("learned"))

    async def get_history(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        params = {"limit": str(limit)} if limit is not None else None
        body = await self._request("GET", "/api/history", params=params)
        return body.get("data", [])

    async def get_conversation(self, conversation_id: str) -> Optional[Dict[str, Any]]:
        try:
            body = await self._request("GET", f"/api/history/{conversation_id}")
        except RelayError as e:
            if e.status == 404:
                return None
            raise
        return body.get("data")

    async def delete_conversation(self, conversation_id: str) -> bool:
        try:
            await self._request("DELETE", f"/api/history/{conversation_id}")
        except RelayError as e:
            if e.status == 404:
                return False
            raise
        return True

    async def _request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        async with self.session.request(method, f"{self.base_url}{path}", json=payload, params=params) as response:
            if response.status >= 400:
                raise RelayError(response.status, await _error_message(response))
            return await response.json()
