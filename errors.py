"""
Domain errors raised by the marketplace stores.

Each error carries the HTTP status it maps to; ``main`` renders every
``MarketplaceError`` as ``{"error": message}`` with that status.
"""
from typing import Optional


class MarketplaceError(Exception):
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(MarketplaceError):
    status_code = 400
    default_message = "Missing fields"


class ConflictError(MarketplaceError):
    status_code = 400
    default_message = "Already exists"


class AuthError(MarketplaceError):
    status_code = 401
    default_message = "Invalid token"


class InvalidCredentialsError(AuthError):
    # login failures are reported as a bad request, not a 401
    status_code = 400
    default_message = "Invalid credentials"


class PermissionDeniedError(AuthError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(MarketplaceError):
    status_code = 404
    default_message = "Not found"
