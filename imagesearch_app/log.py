import os
import sys
import json
import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

from flask import g

# Configure logging
logger = logging.getLogger("imagesearch")
logger.setLevel(logging.INFO)
logger.propagate = False

# Stream Handler (stdout)
stream_handler = logging.StreamHandler(sys.stdout)
stream_handler.setFormatter(logging.Formatter('%(message)s'))  # Keep stdout clean
logger.addHandler(stream_handler)

# Structured per-request events (JSON lines)
debug_logger = logging.getLogger("imagesearch.debug")
debug_logger.setLevel(logging.INFO)
debug_logger.propagate = False

_file_handler: Optional[RotatingFileHandler] = None
_debug_handler: Optional[RotatingFileHandler] = None


def configure_file_logging(log_dir: str) -> None:
    """Attach rotating file handlers under `log_dir` (idempotent)."""
    global _file_handler, _debug_handler
    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(log_dir, 'imagesearch.log')
    if _file_handler is not None and _file_handler.baseFilename == os.path.abspath(log_file):
        return

    if _file_handler is not None:
        logger.removeHandler(_file_handler)
        _file_handler.close()

    _file_handler = RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=5)
    _file_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))
    logger.addHandler(_file_handler)

    if _debug_handler is not None:
        debug_logger.removeHandler(_debug_handler)
        _debug_handler.close()

    _debug_handler = RotatingFileHandler(os.path.join(log_dir, 'debug.log'),
                                         maxBytes=10 * 1024 * 1024, backupCount=10)
    _debug_handler.setFormatter(logging.Formatter('%(message)s'))
    debug_logger.addHandler(_debug_handler)


def _request_prefix() -> str:
    """Return request id prefix if available."""
    try:
        if getattr(g, "request_id", None):
            return f"[{g.request_id}] "
    except RuntimeError:
        # Outside request context
        pass
    return ""


def log(msg: str, level: int = logging.INFO) -> None:
    """Log a message to console and file."""
    logger.log(level, f"{_request_prefix()}{msg}")


def debug_log_event(event: dict) -> None:
    """Write structured debug events to the JSON-lines log."""
    if debug_logger.disabled or not debug_logger.handlers:
        return
    try:
        debug_logger.info(json.dumps(event, ensure_ascii=True, separators=(',', ':')))
    except (TypeError, ValueError) as exc:
        logger.info(f"⚠️ Debug log failure: {exc}")
