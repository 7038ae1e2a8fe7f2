"""Core utilities for the FolioVault application."""

from foliovault.app.core.config import settings
from foliovault.app.core.logging import get_logger, setup_logging

__all__ = [
    "settings",
    "get_logger",
    "setup_logging",
]
