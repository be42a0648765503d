"""
Domain exceptions raised by the services and the auth dependency.

Each exception carries the HTTP status it maps to; the handlers registered in
``main.create_app`` render them as ``{"message": ..., "errors": [...]}``.
"""

from __future__ import annotations

from typing import Dict, List, Optional


class AppError(Exception):
    """Base class for expected failures that map onto a specific status code."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_body(self) -> Dict[str, object]:
        return {"message": self.message}


class ValidationFailed(AppError):
    status_code = 400
    default_message = "Validation failed"

    def __init__(self, errors: List[Dict[str, str]], message: Optional[str] = None) -> None:
        super().__init__(message)
        self.errors = errors

    def to_body(self) -> Dict[str, object]:
        return {"message": self.message, "errors": self.errors}


class DuplicateEmail(AppError):
    status_code = 400
    default_message = "User already exists with this email"


class InvalidCredentials(AppError):
    status_code = 401
    default_message = "Invalid email or password"


class Unauthenticated(AppError):
    status_code = 401
    default_message = "Not authorized, token failed"


class Forbidden(AppError):
    status_code = 403
    default_message = "Not authorized to access this todo"


class NotFound(AppError):
    status_code = 404
    default_message = "Todo not found"
