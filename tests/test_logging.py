import json
import logging

import pytest

from sheet_bot.logging import EventFilter, JsonFormatter, PlainFormatter, current_event, event_context, log_with_context


class _Capture(logging.Handler):
    def __init__(self, formatter):
        super().__init__()
        self.lines = []
        self.setFormatter(formatter)
        self.addFilter(EventFilter())

    def emit(self, record):
        self.lines.append(self.format(record))


@pytest.fixture
def capture_logger():
    logger = logging.getLogger("sheet_bot.test")
    logger.setLevel(logging.INFO)
    logger.propagate = False
    handlers = []

    def _attach(formatter):
        handler = _Capture(formatter)
        logger.addHandler(handler)
        handlers.append(handler)
        return handler

    yield logger, _attach
    for handler in handlers:
        logger.removeHandler(handler)


def test_event_context_binds_and_resets():
    assert current_event() == ("", "")
    with event_context("msg-1", "room-1"):
        assert current_event() == ("msg-1", "room-1")
    assert current_event() == ("", "")


def test_json_lines_carry_event_ids_and_context(capture_logger):
    logger, attach = capture_logger
    handler = attach(JsonFormatter())
    with event_context("msg-9", "room-2"):
        log_with_context(logger, logging.INFO, "Dispatching command", command="search", args=["งาน"])

    entry = json.loads(handler.lines[0])
    assert entry["message_id"] == "msg-9"
    assert entry["room_id"] == "room-2"
    assert entry["message"] == "Dispatching command"
    assert entry["context"] == {"command": "search", "args": ["งาน"]}


def test_plain_lines_outside_an_event_use_placeholders(capture_logger):
    logger, attach = capture_logger
    handler = attach(PlainFormatter("%(message_id)s %(room_id)s %(message)s"))
    log_with_context(logger, logging.INFO, "Sent reply", chunks=2)

    assert handler.lines == ["- - Sent reply | chunks=2"]
