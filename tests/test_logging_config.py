"""
Tests for logging setup.
"""
import logging
from logging.handlers import RotatingFileHandler

from apkdepot.core.logging_config import LOG_FILE_NAME, setup_logging


def _own_handlers():
    return [h for h in logging.getLogger().handlers if getattr(h, "_apkdepot_handler", False)]


def test_setup_logging_does_not_stack_handlers(tmp_path):
    setup_logging(level="WARNING", log_dir=str(tmp_path))
    setup_logging(level="WARNING", log_dir=str(tmp_path))

    handlers = _own_handlers()
    assert len(handlers) == 2
    assert sum(isinstance(h, RotatingFileHandler) for h in handlers) == 1
    assert (tmp_path / LOG_FILE_NAME).exists()


def test_empty_log_dir_disables_file_logging():
    setup_logging(level="WARNING", log_dir="")

    handlers = _own_handlers()
    assert len(handlers) == 1
    assert not isinstance(handlers[0], RotatingFileHandler)
    assert logging.getLogger().level == logging.WARNING
