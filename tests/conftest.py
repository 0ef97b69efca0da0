import random
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from shadebot.config import Settings
from shadebot.services.catalog_service import StaticCatalogSource
from shadebot.services.completion_service import NORMAL_EDGE_CASE, Classification, CompletionService
from shadebot.services.conversation_service import InMemoryConversationStore
from shadebot.services.dispatcher import FlowDispatcher
from shadebot.services.flows import default_registry
from shadebot.services.intent_service import load_intent_definitions
from shadebot.services.result import Result
from shadebot.services.turn import BotServices, TurnContext


class FakeClock:
    """Controllable clock shared by the store and the dispatcher."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def mock_env(monkeypatch):
    """Set test environment variables."""
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 6, 3, 15, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings():
    return Settings(openai_api_key="test-key", persona_names="Paula")


@pytest.fixture
def catalog():
    return StaticCatalogSource.from_path()


@pytest.fixture
def store(clock):
    return InMemoryConversationStore(clock=clock)


@pytest.fixture
def completion():
    """Completion service that never trusts itself unless a test says so."""
    mock = Mock(spec=CompletionService)
    mock.classify.return_value = Result.success(Classification(intent="unknown", confidence=0.0))
    mock.detect_edge_case.return_value = Result.success(NORMAL_EDGE_CASE)
    mock.generate.return_value = Result.success("Con gusto te ayudo con tu malla sombra 🌿")
    return mock


@pytest.fixture
def services(store, catalog, completion, settings):
    return BotServices(
        store=store,
        catalog=catalog,
        completion=completion,
        intents=list(load_intent_definitions()),
        flows=default_registry(),
        settings=settings,
    )


@pytest.fixture
def dispatcher(services, clock):
    return FlowDispatcher(services, clock=clock, rng=random.Random(7))


@pytest.fixture
def make_ctx(services, store, clock):
    """Build a TurnContext for handler-level tests."""

    def _make(message: str, user_id: str = "5215550001111", raw_message: str = None, **record_updates):
        if record_updates:
            store.save(user_id, record_updates)
        return TurnContext(
            user_id=user_id,
            message=message,
            raw_message=raw_message if raw_message is not None else message,
            record=store.load(user_id),
            persona_name="Paula",
            now=clock(),
            services=services,
        )

    return _make
