# app/api/v1/deps.py
"""
Request dependencies: service lookup and the access-control pipeline.

Protected routes compose these in order: identity resolution
(`get_current_user`) first, then an optional role gate (`require_roles`).
Each step either returns the context for the next one or raises an
`AppError` that short-circuits the request.
"""
import uuid

from fastapi import Depends, Header, Request

from app.core.errors import (
    AccessTokenRequired,
    AccountDeactivated,
    AppError,
    IdentityNotFound,
    InsufficientPermissions,
    SelfActionForbidden,
)
from app.core.security import TokenService
from app.models.user import Role, User
from app.services import AuthService, CredentialStore, UserService
from app.storage import AbstractStorage


# ---- service providers (built once in create_app, stored on app.state) ----
def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_credential_store(request: Request) -> CredentialStore:
    return request.app.state.credential_store


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_storage(request: Request) -> AbstractStorage:
    return request.app.state.storage


# ---- identity resolution ----
def _bearer_token(authorization: str | None) -> str | None:
    if authorization and authorization.lower().startswith("bearer "):
        return authorization.split(" ", 1)[1].strip() or None
    return None


async def _resolve_user(token: str, tokens: TokenService, store: CredentialStore) -> User:
    payload = tokens.decode_access_token(token)  # TokenInvalid / TokenExpired
    user = await store.get_by_id(payload.get("sub"))
    if user is None:
        raise IdentityNotFound()
    if not user.is_active:
        raise AccountDeactivated()
    return user


async def get_current_user(
    request: Request,
    authorization: str | None = Header(default=None),
    tokens: TokenService = Depends(get_token_service),
    store: CredentialStore = Depends(get_credential_store),
) -> User:
    """
    FastAPI dependency to get the current authenticated user.

    Extracts the JWT from the `Authorization: Bearer <token>` header, verifies
    it and loads the (non-deleted) user it names.

    Raises:
        AccessTokenRequired (401): Header missing or not a Bearer credential
        TokenInvalid / TokenExpired (401): Token does not verify
        IdentityNotFound (401): Token subject no longer exists
        AccountDeactivated (401): User has been deactivated

    Usage:
        @router.get("/protected")
        async def protected_route(user: User = Depends(get_current_user)):
            return {"user_id": str(user.id)}
    """
    token = _bearer_token(authorization)
    if not token:
        raise AccessTokenRequired()
    user = await _resolve_user(token, tokens, store)
    request.state.user = user  # Picked up by the error handler for logging
    return user


async def get_optional_user(
    request: Request,
    authorization: str | None = Header(default=None),
    tokens: TokenService = Depends(get_token_service),
    store: CredentialStore = Depends(get_credential_store),
) -> User | None:
    """
    Same resolution as `get_current_user`, but any failure means "anonymous"
    instead of a 401. For routes that serve both anonymous and signed-in callers.
    """
    token = _bearer_token(authorization)
    if not token:
        return None
    try:
        user = await _resolve_user(token, tokens, store)
    except AppError:
        return None
    request.state.user = user
    return user


# ---- role gates ----
def require_roles(*roles: Role, message: str | None = None):
    """
    Build a dependency that admits only users holding one of `roles`.

    Runs after identity resolution, so an anonymous caller gets 401 from
    `get_current_user` and never reaches the 403 raised here.
    """
    allowed = {Role(r) for r in roles}

    async def _require(current: User = Depends(get_current_user)) -> User:
        if Role(current.role) not in allowed:
            raise InsufficientPermissions(message)
        return current

    return _require


require_admin = require_roles(Role.ADMIN, message="Admin access required")
require_moderator = require_roles(Role.ADMIN, Role.MODERATOR, message="Moderator access required")


def is_self(current: User, user_id: str) -> bool:
    """
    Whether a `{user_id}` path parameter names the caller.

    Compared as UUIDs, so every spelling the user lookup accepts (upper case,
    bare hex, braces, `urn:uuid:`) matches. Malformed ids never name the caller.
    """
    try:
        return uuid.UUID(str(user_id)) == uuid.UUID(str(current.id))
    except ValueError:
        return False


def reject_self_target(message: str):
    """Dependency rejecting requests whose `{user_id}` path parameter is the caller."""

    async def _reject(user_id: str, current: User = Depends(get_current_user)) -> None:
        if is_self(current, user_id):
            raise SelfActionForbidden(message)

    return _reject
