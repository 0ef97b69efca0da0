from datetime import timedelta
from unittest.mock import Mock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shadebot.database import init_db
from shadebot.schemas.conversation import ProductSpec
from shadebot.services.conversation_service import InMemoryConversationStore, SqlConversationStore
from shadebot.services.state_machine import ConversationState


@pytest.fixture
def sql_store(clock):
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    return SqlConversationStore(sessionmaker(bind=engine, autoflush=False), clock=clock)


@pytest.fixture(params=["memory", "sql"])
def any_store(request, store, sql_store):
    return store if request.param == "memory" else sql_store


class TestLoad:
    def test_creates_default_record(self, any_store, clock):
        record = any_store.load("5215550001111")
        assert record.state == "new"
        assert record.greeted is False
        assert record.product_specs == ProductSpec()
        assert record.suggested_sizes == []
        assert record.created_at == clock()

    def test_load_is_stable(self, any_store):
        any_store.save("5215550001111", {"last_intent": "greeting"})
        assert any_store.load("5215550001111").last_intent == "greeting"


class TestSave:
    def test_partial_update_keeps_other_fields(self, any_store):
        any_store.save("5215550001111", {"greeted": True, "persona_name": "Paula"})
        result = any_store.save("5215550001111", {"last_intent": "shipping"})
        assert result.ok is True
        assert result.value.greeted is True
        assert result.value.persona_name == "Paula"

    def test_refreshes_last_message_at(self, any_store, clock):
        any_store.load("5215550001111")
        clock.advance(minutes=10)
        record = any_store.save("5215550001111", {"unknown_count": 1}).value
        assert record.last_message_at == clock()

    def test_product_specs_round_trip(self, any_store, clock):
        spec = ProductSpec(product_type="rollo", width=4.2, percentage=80, updated_at=clock())
        any_store.save("5215550001111", {"product_specs": spec, "suggested_sizes": ["4x6", "5x5"]})
        record = any_store.load("5215550001111")
        assert record.product_specs == spec
        assert record.suggested_sizes == ["4x6", "5x5"]

    def test_state_enum_is_stored_as_value(self, any_store):
        record = any_store.save("5215550001111", {"state": ConversationState.NEEDS_HUMAN}).value
        assert record.state == "needs_human"

    def test_unknown_field_rejected(self, any_store):
        with pytest.raises(ValueError):
            any_store.save("5215550001111", {"favourite_color": "azul"})

    def test_datetimes_are_utc_aware(self, any_store, clock):
        any_store.save("5215550001111", {"agent_took_over_at": clock() - timedelta(hours=3)})
        record = any_store.load("5215550001111")
        assert record.agent_took_over_at.tzinfo is not None
        assert clock() - record.agent_took_over_at == timedelta(hours=3)


class TestReset:
    def test_reset_removes_record(self, any_store):
        any_store.save("5215550001111", {"state": "closed"})
        assert any_store.reset("5215550001111") is True
        assert any_store.load("5215550001111").state == "new"

    def test_reset_missing(self, any_store):
        assert any_store.reset("nadie") is False


class TestSqlFailures:
    def _failing_store(self, clock):
        session = Mock()
        session.get.side_effect = OperationalError("SELECT", {}, Exception("database is locked"))
        return SqlConversationStore(Mock(return_value=session), clock=clock), session

    def test_load_falls_back_to_default(self, clock):
        store, session = self._failing_store(clock)
        record = store.load("5215550001111")
        assert record.state == "new"
        session.rollback.assert_called_once()
        session.close.assert_called_once()

    def test_save_returns_store_error(self, clock):
        store, _ = self._failing_store(clock)
        result = store.save("5215550001111", {"last_intent": "greeting"})
        assert result.ok is False
        assert result.error_code == "store_error"


class TestInMemoryIsolation:
    def test_loaded_record_is_a_copy(self, clock):
        store = InMemoryConversationStore(clock=clock)
        record = store.load("5215550001111")
        record.suggested_sizes.append("4x6")
        assert store.load("5215550001111").suggested_sizes == []
