"""
Logging configuration.

Root logger gets a console handler and, when LOG_DIR is set, a size-rotated
file handler. Safe to call more than once.
"""
import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Optional

from apkdepot.core.config import settings

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
LOG_FILE_NAME = "apk_depot.log"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("multipart", "androguard")

_HANDLER_MARK = "_apkdepot_handler"


def _mark(handler: logging.Handler, level: int, fmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    setattr(handler, _HANDLER_MARK, True)
    return handler


def setup_logging(level: Optional[str] = None, log_dir: Optional[str] = None) -> None:
    """Configure the root logger from LOG_LEVEL / LOG_DIR unless overridden."""
    log_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)
    directory = settings.LOG_DIR if log_dir is None else log_dir

    root = logging.getLogger()
    root.setLevel(log_level)

    # Replace only our own handlers so reloads and test imports don't stack them
    for handler in [h for h in root.handlers if getattr(h, _HANDLER_MARK, False)]:
        root.removeHandler(handler)
        handler.close()

    root.addHandler(_mark(logging.StreamHandler(sys.stdout), log_level, CONSOLE_FORMAT))

    if directory:
        path = Path(directory)
        path.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path / LOG_FILE_NAME, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS
        )
        root.addHandler(_mark(file_handler, log_level, FILE_FORMAT))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))
