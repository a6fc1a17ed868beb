"""
Tests for the JSON log formatter and the audit logger.
"""

import json
import logging

from unittest.mock import patch

from uproar.logging_config import JsonFormatter
from uproar.services.system_logger import SystemLogger


def _record(message="Game inventory reserved", level=logging.INFO, exc_info=None, **extra):
    record = logging.LogRecord(
        name="uproar.audit.inventory",
        level=level,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=exc_info,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_context_is_rendered(self):
        record = _record(context={"game_id": 7, "quantity": 2, "action": "inventory_reserved"})

        payload = json.loads(JsonFormatter("uproar-test").format(record))

        assert payload["service"] == "uproar-test"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "uproar.audit.inventory"
        assert payload["message"] == "Game inventory reserved"
        assert payload["context"] == {"game_id": 7, "quantity": 2, "action": "inventory_reserved"}
        assert "timestamp" in payload
        assert "error" not in payload

    def test_record_without_context(self):
        payload = json.loads(JsonFormatter("uproar-test").format(_record()))

        assert "context" not in payload

    def test_exception_is_rendered(self):
        try:
            raise RuntimeError("connection refused")
        except RuntimeError as e:
            record = _record("Error checking inventory availability", logging.ERROR, (type(e), e, e.__traceback__))

        payload = json.loads(JsonFormatter("uproar-test").format(record))

        assert payload["level"] == "ERROR"
        assert "RuntimeError: connection refused" in payload["error"]

    def test_non_json_context_values_are_stringified(self):
        record = _record(context={"order": object()})

        payload = json.loads(JsonFormatter("uproar-test").format(record))

        assert payload["context"]["order"].startswith("<object object")


class TestSystemLogger:
    """Tests for SystemLogger."""

    def test_context_travels_on_the_record(self, caplog):
        with caplog.at_level(logging.INFO, logger="uproar.audit.inventory"):
            SystemLogger("inventory").info("Game inventory reserved", {"game_id": 7})

        record = caplog.records[-1]
        assert record.context == {"game_id": 7}
        assert record.getMessage() == "Game inventory reserved game_id=7"

    def test_error_details_are_added_to_context(self, caplog):
        with caplog.at_level(logging.ERROR, logger="uproar.audit.inventory"):
            SystemLogger("inventory").error("Stock read failed", ValueError("bad row"), {"item_count": 2})

        record = caplog.records[-1]
        assert record.context["error"] == "bad row"
        assert record.context["error_type"] == "ValueError"
        assert record.exc_info is not None

    def test_logging_failures_do_not_propagate(self):
        with patch("logging.Logger.log", side_effect=RuntimeError("log sink down")) as log:
            SystemLogger("inventory").warning("Commit found no stock record", {"game_id": 404})

        log.assert_called_once()
