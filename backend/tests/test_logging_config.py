import json
import logging
import sys

from lk_documents.logging_config import JsonFormatter, setup_logging


class TestJsonFormatter:
    def test_emits_one_json_object(self):
        record = logging.LogRecord(
            "lk_documents.services.document_service", logging.INFO, __file__, 1,
            "Accepted document %s", (7,), None,
        )
        payload = json.loads(JsonFormatter().format(record))
        assert payload["level"] == "INFO"
        assert payload["logger"] == "lk_documents.services.document_service"
        assert payload["message"] == "Accepted document 7"
        assert "error" not in payload

    def test_includes_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
        payload = json.loads(JsonFormatter().format(record))
        assert "RuntimeError: boom" in payload["error"]


class TestSetupLogging:
    def test_sets_root_level(self):
        root = logging.getLogger()
        old_level, old_handlers = root.level, root.handlers[:]
        try:
            setup_logging("debug", "json")
            assert root.level == logging.DEBUG
            assert isinstance(root.handlers[-1].formatter, JsonFormatter)
        finally:
            root.handlers[:] = old_handlers
            root.setLevel(old_level)
