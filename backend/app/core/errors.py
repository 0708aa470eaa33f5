# app/core/errors.py
"""
Error taxonomy shared by services and the HTTP layer.

Services raise these exceptions; the exception handler registered in
`app.main` renders them into the standard response envelope using the
class attributes below. Handlers never inspect the message text.
"""
from typing import Any


class AppError(Exception):
    """Base class for every expected, client-facing failure."""
    status_code: int = 500
    message: str = "Internal Server Error"

    def __init__(self, message: str | None = None, errors: list[dict[str, Any]] | None = None):
        if message is not None:
            self.message = message
        self.errors = errors
        super().__init__(self.message)


# ---- 400 ----
class BadRequest(AppError):
    status_code = 400
    message = "Bad request"


class ValidationError(BadRequest):
    message = "Validation errors"


class CurrentPasswordIncorrect(BadRequest):
    message = "Current password is incorrect"


class InvalidOrExpiredToken(BadRequest):
    message = "Invalid or expired reset token"


class InvalidVerificationToken(BadRequest):
    message = "Invalid verification token"


class SelfActionForbidden(BadRequest):
    message = "You cannot perform this action on your own account"


# ---- 401 ----
class AuthError(AppError):
    status_code = 401
    message = "Unauthorized"


class InvalidCredentials(AuthError):
    message = "Invalid credentials"


class AccountDeactivated(AuthError):
    message = "Account is deactivated"


class TokenInvalid(AuthError):
    message = "Invalid token"


class TokenExpired(AuthError):
    message = "Token expired"


class AccessTokenRequired(AuthError):
    message = "Access token is required"


class IdentityNotFound(AuthError):
    message = "User not found"


class UserNotFoundOrInactive(AuthError):
    message = "User not found or inactive"


# ---- 403 ----
class InsufficientPermissions(AppError):
    status_code = 403
    message = "Insufficient permissions"


# ---- 404 ----
class ResourceNotFound(AppError):
    status_code = 404
    message = "Resource not found"


class UserNotFound(ResourceNotFound):
    message = "User not found"


# ---- 409 ----
class DuplicateEmail(AppError):
    status_code = 409
    message = "User already exists with this email"
