"""Conversation store adapters: get-or-create, partial update and reset of per-user records."""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from shadebot.logging_config import get_logger
from shadebot.models import Conversation
from shadebot.schemas.conversation import ConversationRecord, ProductSpec
from shadebot.services.result import Result

logger = get_logger("conversation_service")

UPDATABLE_FIELDS = frozenset(ConversationRecord.model_fields) - {"user_id", "created_at"}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _validate_updates(updates: dict[str, Any]) -> dict[str, Any]:
    unknown = set(updates) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown conversation fields: {sorted(unknown)}")
    cleaned = dict(updates)
    specs = cleaned.get("product_specs")
    if isinstance(specs, ProductSpec):
        cleaned["product_specs"] = specs.model_dump(mode="json")
    if "state" in cleaned and hasattr(cleaned["state"], "value"):
        cleaned["state"] = cleaned["state"].value
    return cleaned


class ConversationStore(ABC):
    """Persistence boundary for conversation records.

    Writes are field-level merges with last-write-wins semantics; no locking
    across messages of the same user is attempted.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self.clock = clock or utcnow

    @abstractmethod
    def load(self, user_id: str) -> ConversationRecord:
        """Return the record for user_id, creating a default one if absent."""

    @abstractmethod
    def save(self, user_id: str, updates: dict[str, Any]) -> Result[ConversationRecord]:
        """Merge updates into the record and refresh last_message_at."""

    @abstractmethod
    def reset(self, user_id: str) -> bool:
        """Delete the record. Returns True if something was removed."""

    def default_record(self, user_id: str) -> ConversationRecord:
        now = self.clock()
        return ConversationRecord(user_id=user_id, created_at=now, last_message_at=now)


class InMemoryConversationStore(ConversationStore):
    """Dictionary-backed store used for local runs and tests."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        super().__init__(clock)
        self._records: dict[str, ConversationRecord] = {}

    def load(self, user_id: str) -> ConversationRecord:
        record = self._records.get(user_id)
        if record is None:
            record = self.default_record(user_id)
            self._records[user_id] = record
        return record.model_copy(deep=True)

    def save(self, user_id: str, updates: dict[str, Any]) -> Result[ConversationRecord]:
        cleaned = _validate_updates(updates)
        current = self._records.get(user_id) or self.default_record(user_id)
        data = current.model_dump()
        data.update(cleaned)
        data["last_message_at"] = self.clock()
        record = ConversationRecord.model_validate(data)
        self._records[user_id] = record
        return Result.success(record.model_copy(deep=True))

    def reset(self, user_id: str) -> bool:
        return self._records.pop(user_id, None) is not None


def _row_to_record(row: Conversation) -> ConversationRecord:
    data = {name: getattr(row, name) for name in ConversationRecord.model_fields}
    return ConversationRecord.model_validate(data)


class SqlConversationStore(ConversationStore):
    """SQLAlchemy-backed store; one row per user id."""

    def __init__(
        self,
        session_factory: sessionmaker,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(clock)
        self.session_factory = session_factory

    def _get_or_create(self, db: Session, user_id: str) -> Conversation:
        row = db.get(Conversation, user_id)
        if row is None:
            now = self.clock()
            row = Conversation(
                user_id=user_id,
                state="new",
                greeted=False,
                clarification_count=0,
                unknown_count=0,
                oversized_repeat_count=0,
                suggested_sizes=[],
                product_specs={},
                handoff_requested=False,
                created_at=now,
                last_message_at=now,
            )
            db.add(row)
            db.flush()
            logger.info("Conversation created", extra={"context": {"user_id": user_id}})
        return row

    def load(self, user_id: str) -> ConversationRecord:
        db = self.session_factory()
        try:
            row = self._get_or_create(db, user_id)
            record = _row_to_record(row)
            db.commit()
            return record
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error(
                "Conversation load failed, using default record",
                extra={"context": {"user_id": user_id, "error": str(exc)}},
            )
            return self.default_record(user_id)
        finally:
            db.close()

    def save(self, user_id: str, updates: dict[str, Any]) -> Result[ConversationRecord]:
        cleaned = _validate_updates(updates)
        db = self.session_factory()
        try:
            row = self._get_or_create(db, user_id)
            for field, value in cleaned.items():
                setattr(row, field, value)
            row.last_message_at = self.clock()
            db.commit()
            db.refresh(row)
            return Result.success(_row_to_record(row))
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error(
                "Conversation save failed",
                extra={"context": {"user_id": user_id, "fields": sorted(cleaned), "error": str(exc)}},
            )
            return Result.failure(str(exc), code="store_error")
        finally:
            db.close()

    def reset(self, user_id: str) -> bool:
        db = self.session_factory()
        try:
            row = db.get(Conversation, user_id)
            if row is None:
                return False
            db.delete(row)
            db.commit()
            logger.info("Conversation reset", extra={"context": {"user_id": user_id}})
            return True
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error(
                "Conversation reset failed",
                extra={"context": {"user_id": user_id, "error": str(exc)}},
            )
            return False
        finally:
            db.close()
