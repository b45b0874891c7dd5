"""
BWS Logging Helpers

Elapsed-time log lines on stderr plus the request/response trace lines
written around every BWS call.
"""

import os
import sys
import logging
from typing import Optional

from bws_models import ResponseMetadata

logger = logging.getLogger("bws")


def format_elapsed(seconds: float) -> str:
    """
    Format elapsed seconds as mm:ss.mmm.

    Milliseconds are truncated and the hour field is dropped, so the
    display restarts at 00:00.000 every hour.
    """
    total_ms = int(seconds * 1000)
    millis = total_ms % 1000
    total_seconds = total_ms // 1000
    minutes = (total_seconds // 60) % 60
    secs = total_seconds % 60
    return f"{minutes:02d}:{secs:02d}.{millis:03d}"


class ElapsedTimeFormatter(logging.Formatter):
    """
    Prefixes each message with the time elapsed since the process started.

    relativeCreated is measured from when the logging module was loaded,
    which for a script is effectively process start.
    """

    def __init__(self):
        super().__init__("%(elapsed)s %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        record.elapsed = format_elapsed(record.relativeCreated / 1000.0)
        return super().format(record)


def configure_logging(level: str = None, stream=None) -> logging.Handler:
    """
    Attach an elapsed-time handler to the root logger.

    Args:
        level: Logging level name (defaults to BWS_LOG_LEVEL or INFO; unknown names fall back to INFO)
        stream: Output stream (defaults to stderr)

    Returns:
        The installed handler.
    """
    name = (level or os.getenv("BWS_LOG_LEVEL") or "INFO").strip().upper()
    numeric = logging.getLevelName(name)
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(ElapsedTimeFormatter())

    root = logging.getLogger()
    root.addHandler(handler)
    if isinstance(numeric, int):
        root.setLevel(numeric)
    else:
        root.setLevel(logging.INFO)
        logger.warning(f'Unknown log level "{name}", using INFO')
    return handler


# =====================================================
# Trace Helpers
# =====================================================

def log_message(message: str, *args) -> None:
    """Log a diagnostic line. Args are %-style formatted lazily."""
    logger.info(message, *args)


def log_request(api_name: str) -> None:
    """Log the start of a BWS call."""
    log_message(f"Calling {api_name}...")


def log_response(api_name: str, code: str, metadata: Optional[ResponseMetadata]) -> None:
    """
    Log the status code of a BWS response and, when present, its metadata.

    Execution time arrives in nanoseconds and is shown in seconds.
    """
    log_message(f'...{api_name} returned "{code}"')
    if metadata is not None:
        seconds = (metadata.execution_time or 0) * 1e-9
        log_message(f"Execution Time: {seconds:.4f} seconds")
        log_message(f"Request UID: {metadata.request_uid}")
