"""
NoteForge Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Tests must never call the real Gemini API (costs money, needs network).
How:   FakeClient implements ProviderClient with scripted replies/failures;
       services are built with fast settings (no settle delay, no backoff).

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── test_settings: Settings with zero delays and no default key
    ├── fake_factory:  ClientFactory recording every client it builds
    ├── store:         StaticCredentialStore (empty by default)
    ├── make_client:   the FakeClient class itself
    ├── ai_service:    AIService wired to the fakes above
    └── test_client:   HTTPX AsyncClient for API endpoint testing
"""

import asyncio
import os
from typing import List, Optional, Union

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Keep the module-level settings away from a developer's real key
os.environ["GEMINI_API_KEY"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

from noteforge.config import Settings
from noteforge.services.ai_service import AIService
from noteforge.services.credentials import StaticCredentialStore
from noteforge.services.provider_base import ProviderClient


Reply = Union[str, BaseException]


class FakeClient(ProviderClient):
    """
    Scripted ProviderClient.

    Each generate() call pops the next entry of `replies`: a string is
    returned, an exception instance is raised. When the script runs out the
    last entry repeats. `gate`, when set, is awaited before answering so
    tests can hold a call in flight.
    """

    def __init__(self, credential: str, replies: Optional[List[Reply]] = None, model: str = "fake"):
        self.credential = credential
        self.model = model
        self.replies: List[Reply] = list(replies or ["ok"])
        self.prompts: List[str] = []
        self.gate: Optional[asyncio.Event] = None
        self.closed = False

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.gate is not None:
            await self.gate.wait()
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, BaseException):
            raise reply
        return reply

    async def close(self) -> None:
        self.closed = True


class FakeFactory:
    """ClientFactory that records built clients and scripts their replies."""

    def __init__(self):
        self.built: List[FakeClient] = []
        self.replies: List[Reply] = ["ok"]
        self.fail_with: Optional[Exception] = None

    def __call__(self, credential: str) -> FakeClient:
        if self.fail_with is not None:
            raise self.fail_with
        client = FakeClient(credential, self.replies)
        self.built.append(client)
        return client

    @property
    def last(self) -> FakeClient:
        return self.built[-1]


@pytest.fixture
def test_settings() -> Settings:
    """Settings with no settle delay, no backoff and no default key."""
    return Settings(
        gemini_api_key="",
        rebind_settle_delay=0,
        request_timeout=5,
        retry_max_attempts=3,
        retry_min_wait=0,
        retry_max_wait=0,
        log_level="WARNING",
    )


@pytest.fixture
def fake_factory() -> FakeFactory:
    """Factory for bound generation clients."""
    return FakeFactory()


@pytest.fixture
def test_factory() -> FakeFactory:
    """Separate factory for throw-away credential test clients."""
    return FakeFactory()


@pytest.fixture
def store() -> StaticCredentialStore:
    """Credential store, empty until a test sets `store.credential`."""
    return StaticCredentialStore()


@pytest.fixture
def ai_service(test_settings, store, fake_factory, test_factory) -> AIService:
    """AIService wired to the fake factories and store."""
    return AIService(
        test_settings,
        store=store,
        client_factory=fake_factory,
        test_client_factory=test_factory,
    )


@pytest_asyncio.fixture
async def test_client(test_settings, ai_service):
    """
    HTTPX AsyncClient talking to an app wired to the fake provider.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    from noteforge.main import create_app

    app = create_app(test_settings, ai_service=ai_service)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def make_client():
    """The FakeClient class, for tests that drive a client directly."""
    return FakeClient
