"""
Shared fixtures.

Tests run against an in-memory SQLite database (aiosqlite) and a fake
OpenAI client, so no network access or Postgres is needed.
Run with: pytest -v
"""

import json
from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from agora.api.deps import get_argument_analyzer, get_rate_limiter, get_steelman_validator
from agora.database import Base, get_db
from agora.main import app
from agora.services.cache import TTLCache
from agora.services.quality.analyzer import ArgumentAnalyzer
from agora.services.quality.steelman import SteelManValidator
from agora.services.rate_limiter import RateLimiter


# =============================================================================
# FAKE OPENAI CLIENT
# =============================================================================

class FakeCompletions:
    """
    Stand-in for client.chat.completions.

    Replies are served in order; the last one repeats. A reply that is an
    Exception is raised, a dict is JSON-encoded, a str is returned as-is.
    """

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        content = reply if isinstance(reply, str) else json.dumps(reply)
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
        )


class FakeOpenAI:
    def __init__(self, *replies):
        self.chat = SimpleNamespace(completions=FakeCompletions(replies))

    @property
    def calls(self):
        return self.chat.completions.calls

    def respond_with(self, *replies):
        self.chat.completions.replies = list(replies)


def make_analysis_payload(
    relevance=5,
    evidence="Vorhanden",
    specificity="Konkret",
    fallacy="Keiner",
):
    """Analysis JSON in the German wire format the prompt asks for."""
    return {
        "relevanz": {"score": relevance, "begruendung": "Bezieht sich direkt auf das Thema."},
        "substantiierung": {"status": evidence, "begruendung": "Nennt eine Statistik."},
        "spezifitaet": {"status": specificity, "begruendung": "Konkrete Zahlen."},
        "fehlschluss": {"status": fallacy, "begruendung": "Keine Auffälligkeiten."},
    }


@pytest.fixture
def analysis_payload():
    return make_analysis_payload


@pytest.fixture
def fake_openai():
    return FakeOpenAI


# =============================================================================
# DATABASE
# =============================================================================

@pytest_asyncio.fixture
async def engine():
    # StaticPool: every session shares the one in-memory database
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# =============================================================================
# API CLIENT
# =============================================================================

@pytest.fixture
def rate_limiter():
    return RateLimiter()


@pytest.fixture
def analysis_client():
    """OpenAI fake behind the analyzer; defaults to a top-scoring analysis."""
    return FakeOpenAI(make_analysis_payload())


@pytest.fixture
def steelman_client():
    return FakeOpenAI({"accepted": True, "rationale": "Gibt die Kernaussage fair wieder."})


@pytest_asyncio.fixture
async def client(session_factory, rate_limiter, analysis_client, steelman_client):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    analyzer = ArgumentAnalyzer(cache=TTLCache(), client=analysis_client, model="test-model")
    validator = SteelManValidator(client=steelman_client, model="test-model")

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    app.dependency_overrides[get_argument_analyzer] = lambda: analyzer
    app.dependency_overrides[get_steelman_validator] = lambda: validator

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
