"""Logging micro API for genui-validator."""

from .lib import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
