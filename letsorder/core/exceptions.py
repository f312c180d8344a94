"""
Domain Error Taxonomy

Services raise these; the FastAPI exception handlers in ``letsorder.main``
turn them into JSON responses with the matching status code. ``message`` is
what the caller sees, so it must never contain internals.
"""

from typing import Optional


class LetsOrderError(Exception):
    """Base class for every error the API reports deliberately."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(LetsOrderError):
    """Malformed, missing or oversized input."""
    status_code = 400
    default_message = "Invalid request"


class AuthenticationError(LetsOrderError):
    """Missing, invalid or expired session token, or bad credentials."""
    status_code = 401
    default_message = "Authentication required"


class AuthorizationError(LetsOrderError):
    """Authenticated, but lacking the required role or capability."""
    status_code = 403
    default_message = "Access denied"


class NotFoundError(LetsOrderError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(LetsOrderError):
    status_code = 409
    default_message = "Resource already exists"


class RateLimitError(LetsOrderError):
    status_code = 429
    default_message = "Too many requests. Please try again later."


class PersistenceError(LetsOrderError):
    """Store failure or unclassified constraint violation."""
    status_code = 500
    default_message = "Internal server error"
