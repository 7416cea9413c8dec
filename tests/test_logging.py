"""
Tests for structured logging and the error hierarchy.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from blobfs.exceptions import BlobFSError, InvalidPositionError
from blobfs.logging import JSONFormatter, get_logger, log_context, setup_logging


class TestLogging:
    """Test context propagation into log records."""

    def test_log_context_is_scoped(self) -> None:
        from blobfs.logging import get_node_id, get_operation

        with log_context(node_id="f1", operation="write"):
            assert get_node_id() == "f1"
            assert get_operation() == "write"
        assert get_node_id() is None
        assert get_operation() is None

    def test_json_formatter_includes_context(self) -> None:
        record = logging.LogRecord("blobfs.test", logging.INFO, __file__, 1, "hello", (), None)
        record.extra = {"size": 10}

        with log_context(node_id="f1", operation="close"):
            payload = json.loads(JSONFormatter().format(record))

        assert payload["message"] == "hello"
        assert payload["node_id"] == "f1"
        assert payload["operation"] == "close"
        assert payload["extra"] == {"size": 10}

    def test_file_handler_writes_json_lines(self, temp_dir: Path) -> None:
        log_file = temp_dir / "logs" / "blobfs.jsonl"
        setup_logging("ERROR", log_file=log_file, console_output=False)
        try:
            logger = get_logger("cursor")
            assert logger.name == "blobfs.cursor"

            with log_context(node_id="f1"):
                logger.debug("Flushed block", index=2)

            for handler in logging.getLogger("blobfs").handlers:
                handler.flush()

            line = json.loads(log_file.read_text().splitlines()[-1])
            assert line["message"] == "Flushed block"
            assert line["extra"]["index"] == 2
            assert line["extra"]["node_id"] == "f1"
        finally:
            setup_logging()


class TestExceptions:
    """Test error rendering."""

    def test_str_includes_context(self) -> None:
        err = InvalidPositionError("Position outside blob", context={"position": 5, "size": 3})
        assert str(err) == "Position outside blob (position=5, size=3)"
        assert isinstance(err, BlobFSError)

    def test_str_without_context(self) -> None:
        err = BlobFSError("plain")
        assert str(err) == "plain"
        assert repr(err) == "BlobFSError('plain', context={})"
