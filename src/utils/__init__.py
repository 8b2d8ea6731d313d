"""
websift utilities module.
"""

from src.utils.config import Settings, get_project_root, get_settings, load_settings
from src.utils.logging import (
    LogContext,
    bind_context,
    configure_logging,
    ensure_logging_configured,
    get_logger,
    unbind_context,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    "load_settings",
    "get_project_root",
    # Logging
    "get_logger",
    "configure_logging",
    "ensure_logging_configured",
    "bind_context",
    "unbind_context",
    "LogContext",
]
