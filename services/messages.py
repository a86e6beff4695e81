from __future__ import annotations

import logging
from typing import Optional

logger = logging.getLogger(__name__)


def is_self_message(person_id: Optional[str], bot_id: str) -> bool:
    return str(person_id or "").strip() == str(bot_id or "").strip()


def strip_mention(text: Optional[str], bot_name: str) -> str:
    """Drop a leading bot mention ("bot_small search x" -> "search x")."""
    raw = str(text or "").strip()
    name = str(bot_name or "").strip()
    if name and raw.lower().startswith(name.lower()):
        return raw[len(name):].strip()
    return raw


def fetch_command_text(transport, message_id: str, bot_name: str) -> str:
    """Fetch a message body by id and normalize it for the command parser."""
    text = transport.get_message_text(message_id)
    normalized = strip_mention(text, bot_name)
    logger.info("Received message %s: %r", message_id, normalized[:200])
    return normalized
