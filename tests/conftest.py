"""Shared test fixtures."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from src.gateway.conversation import ConversationGateway
from src.llm.client import Completion
from src.quota.tracker import QuotaTracker
from src.sessions.store import SessionStore


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 7, 15, 30, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> SessionStore:
    return SessionStore(max_history=20)


@pytest.fixture
def tracker(clock: FakeClock) -> QuotaTracker:
    return QuotaTracker(clock=clock)


@pytest.fixture
def inference() -> AsyncMock:
    """An InferenceClient stand-in that always replies "pong"."""
    client = AsyncMock()
    client.complete = AsyncMock(return_value=Completion(text="pong"))
    return client


@pytest.fixture
def make_gateway(store, tracker, inference):
    def _make(max_prompts: int = 10, charge_failed_calls: bool = True) -> ConversationGateway:
        return ConversationGateway(
            store,
            tracker,
            inference,
            max_prompts=max_prompts,
            system_prompt="You are a test assistant.",
            charge_failed_calls=charge_failed_calls,
        )

    return _make
