"""
HTTP clients for the auxiliary services consumed by the relay.

Every call is a single attempt bounded by its own timeout. Failures never
raise: a non-2xx status, a network or decode error, or a payload that does
not match its schema all come back as Unavailable, and an expired deadline
as Timeout.
"""

import asyncio
from typing import Any, Dict, Optional, Type

import aiohttp
from pydantic import BaseModel

from smartreply.config.models import ServicesConfig
from smartreply.common.logging import setup_logging
from smartreply.common.models import ContactMatch, SentimentVerdict, StyleProfile
from smartreply.common.results import (
    Invalid,
    ServiceResult,
    Success,
    Timeout,
    Unavailable,
    validate,
)

logger = setup_logging("relay-clients")


class ServiceClient:
    """Bounded-timeout JSON calls against one service base URL."""

    def __init__(self, name: str, base_url: str, session: aiohttp.ClientSession, timeout: float = 3.0):
        self.name = name
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.timeout = timeout

    async def call(self, path: str, payload: Optional[Dict[str, Any]] = None) -> ServiceResult[Any]:
        """POST ``payload`` as JSON, or GET when there is no payload."""
        method = "GET" if payload is None else "POST"
        url = f"{self.base_url}{path}"

        try:
            async with self.session.request(
                method,
                url,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as resp:
                if resp.status < 200 or resp.status >= 300:
                    logger.warning(f"{self.name} {path} failed: HTTP {resp.status}")
                    return Unavailable(f"HTTP {resp.status}")
                return Success(await resp.json())

        except asyncio.TimeoutError:
            logger.warning(f"{self.name} {path} timed out after {self.timeout}s")
            return Timeout(self.timeout)
        except (aiohttp.ClientError, ValueError) as e:
            logger.warning(f"{self.name} {path} error: {e}")
            return Unavailable(str(e))


def _typed(result: ServiceResult[Any], model: Type[BaseModel]) -> ServiceResult[Any]:
    if not isinstance(result, Success):
        return result
    checked = validate(model, result.value)
    if isinstance(checked, Invalid):
        logger.warning(f"Discarding malformed payload: {checked.reason}")
        return Unavailable(checked.reason)
    return Success(checked.value)


class ServiceGateway:
    """Typed access to the sentiment, contacts and style services."""

    def __init__(self, session: aiohttp.ClientSession, config: ServicesConfig):
        self.sentiment = ServiceClient("sentiment", config.sentiment_url, session, config.timeout)
        self.contacts = ServiceClient("contacts", config.contacts_url, session, config.timeout)
        self.style = ServiceClient("style", config.style_url, session, config.timeout)

    async def analyze_sentiment(self, message: str) -> ServiceResult[SentimentVerdict]:
        result = await self.sentiment.call("/api/analyze", {"message": message})
        return _typed(result, SentimentVerdict)

    async def match_contact(self, message: str) -> ServiceResult[ContactMatch]:
        result = await self.contacts.call("/api/contacts/match", {"message": message})
        return _typed(result, ContactMatch)

    async def get_style_profile(self) -> ServiceResult[StyleProfile]:
        result = await self.style.call("/api/profile")
        return _typed(result, StyleProfile)

    async def learn_from_reply(self, content: str, sample_type: str) -> bool:
        result = await self.style.call("/api/learn", {"content": content, "type": sample_type})
        return isinstance(result, Success)

    async def check_health(self) -> Dict[str, bool]:
        results = await asyncio.gather(
            self.sentiment.call("/health"),
            self.contacts.call("/health"),
            self.style.call("/health"),
        )
        return {
            name: isinstance(result, Success)
            for name, result in zip(("sentiment", "contacts", "style"), results)
        }
