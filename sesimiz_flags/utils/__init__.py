"""
Utilities package for the feature flag service.

Exports shared logging helpers. Keep this package lightweight and free of
flag-specific logic.
"""

from sesimiz_flags.utils.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
]
