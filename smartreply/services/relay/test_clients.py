#!/usr/bin/env python3
"""
Tests for the relay's service clients

Runs real HTTP round trips against an aiohttp test server standing in for
the sentiment, contacts and style services.
"""

import asyncio
import logging

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer as HTTPTestServer

from smartreply.config.models import ServicesConfig
from smartreply.common.models import ContactMatch, SentimentVerdict
from smartreply.common.results import Success, Timeout, Unavailable, present
from smartreply.services.relay.clients import ServiceClient, ServiceGateway, _typed

# Suppress logging during tests
logging.disable(logging.CRITICAL)


def build_app(profile_status: int = 200, slow_contacts: bool = False) -> web.Application:
    async def analyze(request):
        body = await request.json()
        return web.json_response({
            "sentiment": "negative",
            "confidence": 1.4,
            "emotions": [{"emotion": "frustrated", "score": 0.9}],
            "urgency": "high",
            "keyPoints": [body["message"]],
            "suggestedApproach": "Apologize.",
        })

    async def match(request):
        if slow_contacts:
            await asyncio.sleep(0.5)
        return web.json_response({"matchedContact": None, "confidence": 0, "relationshipContext": "none"})

    async def profile(request):
        if profile_status != 200:
            return web.json_response({"error": "boom"}, status=profile_status)
        return web.json_response({"totalSamples": 4, "commonGreetings": ["Hey"]})

    async def learn(request):
        return web.json_response({"learned": True})

    async def health(request):
        return web.json_response({"status": "healthy"})

    async def not_json(request):
        return web.Response(text="<html>", content_type="text/html")

    async def not_object(request):
        return web.json_response(["not", "a", "verdict"])

    app = web.Application()
    app.router.add_post("/api/analyze", analyze)
    app.router.add_post("/api/contacts/match", match)
    app.router.add_get("/api/profile", profile)
    app.router.add_post("/api/learn", learn)
    app.router.add_get("/health", health)
    app.router.add_get("/html", not_json)
    app.router.add_post("/list", not_object)
    return app


async def start(app: web.Application) -> HTTPTestServer:
    server = HTTPTestServer(app)
    await server.start_server()
    return server


class TestServiceClient:
    """Test suite for ServiceClient.call"""

    @pytest.mark.asyncio
    async def test_success_and_status_mapping(self):
        server = await start(build_app(profile_status=503))
        try:
            async with aiohttp.ClientSession() as session:
                client = ServiceClient("test", f"http://{server.host}:{server.port}/", session, timeout=1.0)

                ok = await client.call("/health")
                assert ok == Success({"status": "healthy"})

                failed = await client.call("/api/profile")
                assert isinstance(failed, Unavailable)
                assert failed.reason == "HTTP 503"

                missing = await client.call("/nope")
                assert isinstance(missing, Unavailable)
        finally:
            await server.close()

    @pytest.mark.asyncio
    async def test_timeout(self):
        server = await start(build_app(slow_contacts=True))
        try:
            async with aiohttp.ClientSession() as session:
                client = ServiceClient("contacts", f"http://{server.host}:{server.port}", session, timeout=0.1)
                result = await client.call("/api/contacts/match", {"message": "hi"})
                assert result == Timeout(0.1)
        finally:
            await server.close()

    @pytest.mark.asyncio
    async def test_decode_error_is_unavailable(self):
        server = await start(build_app())
        try:
            async with aiohttp.ClientSession() as session:
                client = ServiceClient("test", f"http://{server.host}:{server.port}", session)
                assert isinstance(await client.call("/html"), Unavailable)
        finally:
            await server.close()

    @pytest.mark.asyncio
    async def test_connection_refused_is_unavailable(self):
        async with aiohttp.ClientSession() as session:
            client = ServiceClient("down", "http://127.0.0.1:9", session, timeout=1.0)
            assert isinstance(await client.call("/health"), Unavailable)


class TestServiceGateway:
    """Test suite for the typed service wrappers"""

    @pytest.fixture
    async def gateway(self):
        server = await start(build_app(slow_contacts=True))
        url = f"http://{server.host}:{server.port}"
        session = aiohttp.ClientSession()
        config = ServicesConfig(sentiment_url=url, contacts_url=url, style_url=url, timeout=0.2)
        yield ServiceGateway(session, config)
        await session.close()
        await server.close()

    @pytest.mark.asyncio
    async def test_sentiment_is_validated_and_clamped(self, gateway):
        result = await gateway.analyze_sentiment("late again")
        verdict = present(result)
        assert isinstance(verdict, SentimentVerdict)
        assert verdict.confidence == 1.0
        assert verdict.key_points == ["late again"]

    @pytest.mark.asyncio
    async def test_timeout_is_absent(self, gateway):
        result = await gateway.match_contact("hello")
        assert isinstance(result, Timeout)
        assert present(result) is None

    @pytest.mark.asyncio
    async def test_style_profile(self, gateway):
        profile = present(await gateway.get_style_profile())
        assert profile.total_samples == 4
        assert profile.common_greetings == ["Hey"]

    @pytest.mark.asyncio
    async def test_learn_and_health(self, gateway):
        assert await gateway.learn_from_reply("Thanks!", "selected_reply") is True
        assert await gateway.check_health() == {"sentiment": True, "contacts": True, "style": True}

    @pytest.mark.asyncio
    async def test_malformed_payload_is_unavailable(self, gateway):
        result = await gateway.sentiment.call("/list", {"message": "x"})
        assert isinstance(result, Success)

        assert isinstance(_typed(result, ContactMatch), Unavailable)
