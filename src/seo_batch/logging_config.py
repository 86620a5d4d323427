"""Logging setup for batch runs."""

import logging
import sys
from pathlib import Path
from typing import List, Optional


# Worker threads log concurrently, so every line names its thread
DEFAULT_FORMAT = '%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s'

# Libraries whose INFO/DEBUG output drowns out per-URL progress
QUIET_LOGGERS = ('playwright', 'httpx', 'httpcore', 'asyncio')


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    format_string: Optional[str] = None
) -> None:
    """Configure the root logger for a batch run.

    Args:
        level: Level name; unknown names fall back to INFO
        log_file: Also write to this file (UTF-8), creating parent folders
        format_string: Replaces DEFAULT_FORMAT
    """
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=format_string or DEFAULT_FORMAT,
        handlers=handlers,
        force=True  # Replace handlers installed by an earlier call
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return the module logger for name (usually __name__)."""
    return logging.getLogger(name)
