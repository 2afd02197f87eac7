"""Package-wide logger for transom (handlers are left to the host application)."""
import logging

logger = logging.getLogger("transom")
logger.addHandler(logging.NullHandler())


__all__ = ("logger",)
