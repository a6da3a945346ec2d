# This project was developed with assistance from AI tools.
"""Shared fixtures: in-memory catalog, controllable clock, limiter and app client."""

from collections.abc import Sequence
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from navigator.core.config import settings
from navigator.main import app as real_app
from navigator.schemas.catalog import FaqEntry, NavigationEntry
from navigator.services.catalog import Catalog
from navigator.services.classification import (
    NOT_FOUND_SENTINEL,
    ClassificationPipeline,
    build_pipeline,
    get_pipeline,
)
from navigator.services.rate_limit import RateLimiter, RateLimitStore, get_rate_limiter

HOUR_MS = 60 * 60 * 1000
START_MS = 1_760_000_000_000


class FakeClock:
    """Millisecond clock the tests move by hand."""

    def __init__(self, now: int = START_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class StubClassifier:
    """AI classifier double returning a fixed answer and recording calls."""

    def __init__(self, answer: str = NOT_FOUND_SENTINEL, error: Exception | None = None):
        self.answer = answer
        self.error = error
        self.calls: list[tuple[str, Sequence[NavigationEntry]]] = []

    async def classify(self, query: str, sections: Sequence[NavigationEntry]) -> str:
        self.calls.append((query, sections))
        if self.error is not None:
            raise self.error
        return self.answer


@pytest.fixture
def faqs() -> tuple[FaqEntry, ...]:
    return (
        FaqEntry(
            id=1,
            question="Kompaniya qachon tashkil topgan?",
            answer="1962-yilda tashkil topgan.",
            category="kompaniya",
            keywords=("tashkil topgan", "tarix"),
        ),
        FaqEntry(
            id=2,
            question="Aksiyalar narxi qancha?",
            answer="Narxlar fond birjasida e'lon qilinadi.",
            category="aksiyadorlar",
            keywords=("narx qancha",),
        ),
    )


@pytest.fixture
def navigation() -> tuple[NavigationEntry, ...]:
    return (
        NavigationEntry(
            url="/corporativ/monitoring",
            intent="Korporativ boshqaruv monitoringi",
            keywords=("monitoring", "korporativ boshqaruv"),
        ),
        NavigationEntry(
            url="/aksiyadorlar/hisobotlar",
            intent="Aksiyadorlar uchun hisobotlar",
            keywords=("hisobot", "yillik hisobot", "dividend", "moliya", "chorak", "audit"),
        ),
        NavigationEntry(
            url="/aloqa",
            intent="Aloqa ma'lumotlari",
            keywords=("aloqa", "manzil"),
        ),
    )


@pytest.fixture
def catalog(faqs, navigation) -> Catalog:
    return Catalog(faqs=faqs, navigation=navigation)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def state_path(tmp_path):
    return tmp_path / "rate_limits.json"


@pytest.fixture
def make_limiter(state_path, clock):
    """Factory for limiters sharing the test's state file and clock."""

    def _make(max_requests: int = 30, window_ms: int = 12 * HOUR_MS, **kwargs) -> RateLimiter:
        return RateLimiter(
            RateLimitStore(state_path),
            max_requests=max_requests,
            window_ms=window_ms,
            clock=clock,
            **kwargs,
        )

    return _make


@pytest.fixture
def limiter(make_limiter) -> RateLimiter:
    return make_limiter()


@pytest.fixture
def classifier() -> StubClassifier:
    return StubClassifier()


@pytest.fixture
def pipeline(catalog, classifier) -> ClassificationPipeline:
    return build_pipeline(catalog, settings, classifier=classifier)


@pytest.fixture
def llm_reply():
    """Patch the responder's LLM call; yields the AsyncMock."""
    with patch(
        "navigator.services.responder.get_completion",
        new=AsyncMock(return_value="Marhamat, bu yerga bosing"),
    ) as mock:
        yield mock


@pytest.fixture
def client(limiter, pipeline, llm_reply):
    """TestClient with the limiter and pipeline swapped for test doubles."""
    real_app.dependency_overrides[get_rate_limiter] = lambda: limiter
    real_app.dependency_overrides[get_pipeline] = lambda: pipeline
    yield TestClient(real_app, raise_server_exceptions=False)
    real_app.dependency_overrides.clear()
