from __future__ import annotations

import json
import logging
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any

from sheet_bot.config import get_log_path, load_config

# Webex ids of the event being handled; empty outside a webhook call.
_message_id: ContextVar[str] = ContextVar("message_id", default="")
_room_id: ContextVar[str] = ContextVar("room_id", default="")

PLAIN_FORMAT = "%(asctime)s %(levelname)s [msg=%(message_id)s room=%(room_id)s] %(name)s: %(message)s"


def current_event() -> tuple[str, str]:
    return _message_id.get(), _room_id.get()


@contextmanager
def event_context(message_id: str, room_id: str = "") -> Generator[None, None, None]:
    """Tag every log line emitted inside the block with the event's message and room ids."""
    msg_token = _message_id.set(message_id or "")
    room_token = _room_id.set(room_id or "")
    try:
        yield
    finally:
        _room_id.reset(room_token)
        _message_id.reset(msg_token)


class EventFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        message_id, room_id = current_event()
        record.message_id = message_id or "-"
        record.room_id = room_id or "-"
        return True


class PlainFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = getattr(record, "context", None)
        if context:
            line += " | " + " ".join(f"{key}={value!r}" for key, value in context.items())
        return line


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message_id": getattr(record, "message_id", "-"),
            "room_id": getattr(record, "room_id", "-"),
            "message": record.getMessage(),
        }
        context = getattr(record, "context", None)
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def configure_logging(config: dict[str, Any] | None = None) -> None:
    cfg = config or load_config()
    log_cfg = cfg.get("logging", {})
    level = getattr(logging, str(log_cfg.get("level", "INFO")).upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    if root.handlers:
        return

    formatter: logging.Formatter = JsonFormatter() if log_cfg.get("json_format") else PlainFormatter(PLAIN_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    log_path = get_log_path(cfg)
    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(log_path, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(EventFilter())
        root.addHandler(handler)

    # uvicorn's access log repeats what the webhook already logs per event.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def log_with_context(logger: logging.Logger, level: int, message: str, **context: Any) -> None:
    """Log ``message`` with structured key/value context."""
    logger.log(level, message, extra={"context": context}, stacklevel=2)
