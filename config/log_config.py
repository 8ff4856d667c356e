"""
Logging configuration.

The library modules only create loggers with logging.getLogger(__name__);
entry points (demo.py) call configure_logging() once at startup.
"""

import logging
import sys
from typing import Optional

from config.settings import get_settings


def configure_logging(level: Optional[str] = None) -> None:
    """Configure Python logging with ISO timestamp and structured format."""
    # Remove any existing handlers to avoid duplicates
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    root_logger.setLevel(level or get_settings().log_level)
    root_logger.addHandler(handler)

    # Reduce noise from the HTTP stack
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
