"""Utility modules."""

from .logging_config import set_log_level, setup_logging
from .signals import deferred_interrupts

__all__ = ["setup_logging", "set_log_level", "deferred_interrupts"]
