# app/services/auth_service.py
"""
Authentication workflows built on the credential store and the token service.

Covers registration, login/logout, profile access, password change, the
forgot/reset password flow, email verification and access token refresh.
"""
import datetime as dt
import functools
import logging
from typing import Any

from app.core.errors import (
    AccountDeactivated,
    CurrentPasswordIncorrect,
    InvalidCredentials,
    UserNotFound,
    UserNotFoundOrInactive,
)
from app.core.security import (
    PASSWORD_RESET_EXPIRE_MINUTES,
    TokenService,
    generate_opaque_token,
    hash_password,
    utc_now,
    verify_password,
)
from app.models.user import User
from app.services.credential_store import CredentialStore
from app.services.user_service import UserService

logger = logging.getLogger("uvicorn.error")


@functools.lru_cache(maxsize=1)
def _dummy_password_hash() -> str:
    """Hash verified against on unknown-email logins so they cost the same as wrong passwords."""
    return hash_password(generate_opaque_token())


class AuthService:
    """
    Account/session lifecycle.

    Logout is advisory: issued access tokens stay valid until they expire,
    and refresh issues an additional token without revoking the old one.
    """

    def __init__(self, store: CredentialStore, tokens: TokenService, users: UserService):
        self.store = store
        self.tokens = tokens
        self.users = users

    async def register(self, data: dict[str, Any]) -> dict[str, Any]:
        """
        Create an account and sign the new user in.

        Args:
            data: Column values for the new user, including plain `password`

        Returns:
            dict with `user` (the User row) and `token` (access token)

        Raises:
            DuplicateEmail: Email already registered
            ValidationError: Malformed user data
        """
        user = await self.store.create(data)
        # Delivery of the verification token (e.g. email) happens outside this service
        await self.store.store_verification_token(user, generate_opaque_token())
        token = self.tokens.issue_for(user)
        logger.info("[auth] registered %s", user.email)
        return {"user": user, "token": token}

    async def login(self, email: str, password: str) -> dict[str, Any]:
        """
        Authenticate by email and password.

        Unknown email and wrong password raise the same `InvalidCredentials`.
        `AccountDeactivated` is only raised once the password has been verified.
        """
        user = await self.store.get_by_email(email)
        if user is None:
            verify_password(password, _dummy_password_hash())
            logger.info("[auth] failed login for %s", email)
            raise InvalidCredentials()
        if not verify_password(password, user.password_hash):
            logger.info("[auth] failed login for %s", email)
            raise InvalidCredentials()
        if not user.is_active:
            raise AccountDeactivated()

        await self.store.touch_last_login(user)
        token = self.tokens.issue_for(user)
        logger.info("[auth] logged in %s", user.email)
        return {"user": user, "token": token}

    async def logout(self, user_id) -> dict[str, str]:
        # The access token is not revoked server-side; it stays valid until expiry
        logger.info("[auth] logged out %s", user_id)
        return {"message": "Logout successful"}

    async def get_profile(self, user_id) -> User:
        return await self.users.get_user(user_id)

    async def update_profile(self, user_id, data: dict[str, Any]) -> User:
        user = await self.users.update_user(user_id, data)
        logger.info("[auth] profile updated for %s", user.email)
        return user

    async def change_password(self, user_id, current_password: str, new_password: str) -> dict[str, str]:
        user = await self.users.get_user(user_id)
        if not verify_password(current_password, user.password_hash):
            raise CurrentPasswordIncorrect()
        await self.store.set_password(user, new_password)
        logger.info("[auth] password changed for %s", user.email)
        return {"message": "Password changed successfully"}

    async def generate_password_reset_token(self, email: str) -> dict[str, str]:
        """
        Mint a single-use password reset token valid for 10 minutes.

        The token is returned to the caller; getting it to the user (email)
        is the job of an external delivery channel.

        Raises:
            UserNotFound: No non-deleted user with this email
        """
        user = await self.store.get_by_email(email)
        if user is None:
            raise UserNotFound()
        reset_token = generate_opaque_token()
        expires_at = utc_now() + dt.timedelta(minutes=PASSWORD_RESET_EXPIRE_MINUTES)
        await self.store.store_reset_token(user, reset_token, expires_at)
        logger.info("[auth] password reset token generated for %s", user.email)
        return {"resetToken": reset_token, "message": "Password reset token generated"}

    async def reset_password(self, reset_token: str, new_password: str) -> dict[str, str]:
        user = await self.store.consume_reset_token(reset_token, new_password)
        logger.info("[auth] password reset for %s", user.email)
        return {"message": "Password reset successful"}

    async def verify_email(self, verification_token: str) -> dict[str, str]:
        user = await self.store.consume_verification_token(verification_token)
        logger.info("[auth] email verified for %s", user.email)
        return {"message": "Email verified successfully"}

    async def refresh_token(self, old_token: str) -> dict[str, Any]:
        """
        Issue a fresh access token for a still-valid one.

        Raises:
            TokenInvalid / TokenExpired: `old_token` does not verify
            UserNotFoundOrInactive: User deleted or deactivated since issuance
        """
        payload = self.tokens.decode_access_token(old_token)
        user = await self.store.get_by_id(payload.get("sub"))
        if user is None or not user.is_active:
            raise UserNotFoundOrInactive()
        return {"user": user, "token": self.tokens.issue_for(user)}
