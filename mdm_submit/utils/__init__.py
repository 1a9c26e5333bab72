"""
Utilities package for MDM Submit.

Exports shared helpers for logging and run profiling.
Keep this package lightweight and free of domain-specific logic.
"""

from mdm_submit.utils.logging import TROUBLESHOOTING_LOGGER, configure_logging, get_logger
from mdm_submit.utils.profiler import ProfileStats, profile_block

__all__ = [
    "TROUBLESHOOTING_LOGGER",
    "configure_logging",
    "get_logger",
    "ProfileStats",
    "profile_block",
]
