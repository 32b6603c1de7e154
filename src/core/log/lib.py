"""Core logging implementation for genui-validator."""

import logging
import sys
from typing import Optional

__all__ = ["get_logger", "setup_logging"]

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    level: int = logging.INFO, stream=sys.stderr, force: bool = False
) -> None:
    """Configure basic logging.

    Args:
        level: Logging level.
        stream: Output stream.
        force: Replace handlers installed by an earlier configuration.
    """
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        stream=stream,
        force=force,
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Name of the logger.

    Returns:
        Logger instance.
    """
    return logging.getLogger(name or "genui-validator")
