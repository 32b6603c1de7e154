"""Tests for core logging module."""

import logging
from io import StringIO

import pytest

from .lib import get_logger, setup_logging


class TestLogging:
    """Test core logging API."""

    @pytest.mark.unit
    def test_get_logger(self) -> None:
        """Verify logger instance creation."""
        logger = get_logger("test")
        assert logger.name == "test"
        assert isinstance(logger, logging.Logger)

    @pytest.mark.unit
    def test_get_logger_default_name(self) -> None:
        """Verify default logger name."""
        logger = get_logger()
        assert logger.name == "genui-validator"

    @pytest.mark.unit
    def test_setup_logging_writes_to_stream(self) -> None:
        """Forced setup routes records to the given stream."""
        root = logging.getLogger()
        saved_handlers = root.handlers[:]
        saved_level = root.level
        stream = StringIO()
        try:
            setup_logging(level=logging.DEBUG, stream=stream, force=True)
            get_logger("test_setup").debug("parsed 3 components")
            assert "parsed 3 components" in stream.getvalue()
            assert "test_setup" in stream.getvalue()
        finally:
            for handler in root.handlers[:]:
                root.removeHandler(handler)
            for handler in saved_handlers:
                root.addHandler(handler)
            root.setLevel(saved_level)
