# app/services/credential_store.py
"""
Persistence layer for user credentials.

Wraps the Tortoise `User` model with the rules every caller relies on:
normalized, unique emails; passwords hashed before they are stored;
soft-deleted rows hidden from normal lookups; single-use tokens consumed
with a single conditional UPDATE so a token can never be used twice.
"""
import datetime as dt
import logging
import re
import uuid
from typing import Any

from tortoise.exceptions import IntegrityError
from tortoise.queryset import QuerySet

from app.core.errors import (
    DuplicateEmail,
    InvalidOrExpiredToken,
    InvalidVerificationToken,
    ValidationError,
)
from app.core.security import hash_password, utc_now
from app.models.user import Role, User

logger = logging.getLogger("uvicorn.error")

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6  # Storage floor; request schemas apply the stricter policy


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class CredentialStore:
    """Owns user rows: creation, lookup, password mutation, token consumption, soft delete."""

    def active_users(self) -> QuerySet[User]:
        """Base queryset for every normal lookup (soft-deleted rows excluded)."""
        return User.filter(deleted_at__isnull=True)

    def _validate(self, data: dict[str, Any]) -> None:
        errors = []
        for field, label in (("first_name", "First name"), ("last_name", "Last name")):
            value = (data.get(field) or "").strip()
            if not 2 <= len(value) <= 50:
                errors.append({"field": field, "message": f"{label} must be between 2 and 50 characters"})
        if not EMAIL_RE.match(normalize_email(data.get("email"))):
            errors.append({"field": "email", "message": "Please provide a valid email"})
        if len(data.get("password") or "") < MIN_PASSWORD_LENGTH:
            errors.append(
                {"field": "password", "message": f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"}
            )
        role = data.get("role", Role.USER)
        if role not in [r.value for r in Role]:
            errors.append({"field": "role", "message": "Role must be one of: user, admin, moderator"})
        if errors:
            raise ValidationError(errors=errors)

    async def create(self, data: dict[str, Any]) -> User:
        """
        Persist a new user.

        Args:
            data: Column values; `password` holds the plain text password and is
                hashed here, never stored as given.

        Raises:
            ValidationError: Required fields missing or malformed
            DuplicateEmail: Email already registered (also when a concurrent
                insert wins the race on the unique index)
        """
        self._validate(data)
        values = dict(data)
        values["email"] = normalize_email(values["email"])
        values["first_name"] = values["first_name"].strip()
        values["last_name"] = values["last_name"].strip()
        if await self.active_users().filter(email=values["email"]).exists():
            raise DuplicateEmail()
        values["password_hash"] = hash_password(values.pop("password"))
        try:
            user = await User.create(**values)
        except IntegrityError:
            raise DuplicateEmail()
        logger.info("[users] created id=%s email=%s", user.id, user.email)
        return user

    async def get_by_id(self, user_id, include_deleted: bool = False) -> User | None:
        """
        Look up a user by primary key.

        `include_deleted=True` is reserved for internal reconciliation and audit
        queries; every request path uses the default.
        """
        try:
            user_id = uuid.UUID(str(user_id))
        except ValueError:
            return None
        qs = User.all() if include_deleted else self.active_users()
        return await qs.get_or_none(id=user_id)

    async def get_by_email(self, email: str, include_deleted: bool = False) -> User | None:
        qs = User.all() if include_deleted else self.active_users()
        return await qs.get_or_none(email=normalize_email(email))

    async def set_password(self, user: User, new_password: str) -> None:
        """Re-hash and persist a new password for `user`."""
        user.password_hash = hash_password(new_password)
        await user.save(update_fields=["password_hash", "updated_at"])

    async def touch_last_login(self, user: User) -> None:
        user.last_login_at = utc_now()
        await user.save(update_fields=["last_login_at", "updated_at"])

    async def store_reset_token(self, user: User, token: str, expires_at: dt.datetime) -> None:
        user.password_reset_token = token
        user.password_reset_expires = expires_at
        await user.save(update_fields=["password_reset_token", "password_reset_expires", "updated_at"])

    async def store_verification_token(self, user: User, token: str) -> None:
        user.email_verification_token = token
        await user.save(update_fields=["email_verification_token", "updated_at"])

    async def consume_reset_token(self, token: str, new_password: str) -> User:
        """
        Atomically check and clear a password reset token, setting a new password.

        The UPDATE only matches while the token is still present and unexpired,
        so of two concurrent attempts exactly one changes a row.

        Raises:
            InvalidOrExpiredToken: Unknown, consumed or expired token
        """
        if not token:
            raise InvalidOrExpiredToken()
        now = utc_now()
        user = await self.active_users().get_or_none(password_reset_token=token, password_reset_expires__gt=now)
        if user is None:
            raise InvalidOrExpiredToken()
        updated = await self.active_users().filter(
            id=user.id,
            password_reset_token=token,
            password_reset_expires__gt=now,
        ).update(
            password_hash=hash_password(new_password),
            password_reset_token=None,
            password_reset_expires=None,
            updated_at=now,
        )
        if not updated:
            raise InvalidOrExpiredToken()
        return user

    async def consume_verification_token(self, token: str) -> User:
        """
        Atomically mark the owning user's email as verified and clear the token.

        Raises:
            InvalidVerificationToken: Unknown or already consumed token
        """
        if not token:
            raise InvalidVerificationToken()
        user = await self.active_users().get_or_none(email_verification_token=token)
        if user is None:
            raise InvalidVerificationToken()
        updated = await self.active_users().filter(id=user.id, email_verification_token=token).update(
            email_verified=True,
            email_verification_token=None,
            updated_at=utc_now(),
        )
        if not updated:
            raise InvalidVerificationToken()
        return user

    async def soft_delete(self, user: User) -> None:
        user.deleted_at = utc_now()
        await user.save(update_fields=["deleted_at", "updated_at"])
