"""FlowCon Utilities: shared helpers and constants."""

from __future__ import annotations

import logging
import sys

MEMORIES_ENDPOINT = "/api/memories"
MAX_ATTEMPTS = 3
RETRY_DELAYS = (1, 2, 4)  # seconds, indexed by failed attempt
DEFAULT_TIMEOUT = 30  # seconds per HTTP attempt


def get_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """Create a consistently-formatted logger."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        formatter = logging.Formatter(
            "[%(asctime)s] %(name)s %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(level)
    return logger


def mask_secret(value: str, keep: int = 4) -> str:
    """Hide all but the last few characters of a token."""
    if not value:
        return ""
    if len(value) <= keep:
        return "*" * len(value)
    return "*" * (len(value) - keep) + value[-keep:]
