"""
Utility helpers shared across the exporter.
"""

from .logging import ContextualLogger, get_logger, setup_logging

__all__ = ["ContextualLogger", "get_logger", "setup_logging"]
