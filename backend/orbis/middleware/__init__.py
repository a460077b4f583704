"""
Middleware Package

Provides FastAPI middleware for error handling.

Usage:
    from orbis.middleware import setup_error_handling, NotFoundError

    setup_error_handling(app, debug=settings.DEBUG)
"""

from orbis.middleware.error_handling import (
    ErrorHandlingMiddleware,
    NotFoundError,
    ServiceError,
    ValidationError,
    create_error_response,
    setup_error_handling,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "ServiceError",
    "ValidationError",
    "NotFoundError",
    "create_error_response",
    "setup_error_handling",
]
