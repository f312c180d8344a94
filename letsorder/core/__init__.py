"""
Core module initialization.
Exports configuration, logging and error taxonomy.
"""

from letsorder.core.config import get_settings, setup_logging, Settings, EnvironmentMode
from letsorder.core.exceptions import (
    LetsOrderError,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    ConflictError,
    RateLimitError,
    PersistenceError,
)

__all__ = [
    "get_settings",
    "setup_logging",
    "Settings",
    "EnvironmentMode",
    "LetsOrderError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "RateLimitError",
    "PersistenceError",
]
