"""JSON logging configuration for the shadebot service."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any


def mask_user_id(user_id: Any) -> str:
    """Channel user ids are phone numbers; keep the country prefix and last four digits."""
    value = str(user_id)
    if len(value) <= 7:
        return value
    return value[:3] + "*" * (len(value) - 7) + value[-4:]


class JSONFormatter(logging.Formatter):
    """Format log records as JSON, with the conversation's user id masked at top level."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = dict(getattr(record, "context", None) or {})
        if "user_id" in context:
            log_data["user_id"] = mask_user_id(context.pop("user_id"))
        if context:
            log_data["context"] = context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO") -> None:
    """Route every logger through a single stdout JSON handler."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root_logger.addHandler(handler)

    for noisy in ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"shadebot.{name}")


class ConversationLogger(logging.LoggerAdapter):
    """Logger adapter that stamps every record with the conversation's user id."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        context = kwargs.pop("context", None)
        extra = kwargs.pop("extra", None) or {}
        combined_context = {**(self.extra or {}), **extra.get("context", {}), **(context or {})}
        if combined_context:
            kwargs["extra"] = {"context": combined_context}
        return msg, kwargs


def conversation_logger(name: str, user_id: str) -> ConversationLogger:
    return ConversationLogger(get_logger(name), {"user_id": user_id})
