# app/api/v1/routers/auth.py
from fastapi import APIRouter, Depends, Request, status

from app.api.v1.deps import get_auth_service, get_current_user
from app.api.v1.responses import ok
from app.core.errors import BadRequest
from app.models.user import User
from app.schemas.auth import (
    ChangePasswordIn,
    ForgotPasswordIn,
    LoginIn,
    ProfileUpdateIn,
    RefreshTokenIn,
    RegisterIn,
    ResetPasswordIn,
)
from app.services import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


def _session_payload(result: dict) -> dict:
    return {"user": result["user"].to_public(), "token": result["token"]}


# ===== Public routes =====
@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(body: RegisterIn, auth: AuthService = Depends(get_auth_service)):
    """
    Register a new user account.

    Creates the account (password hashed before storage) and returns the
    public user projection together with an access token.

    Errors:
        - 400: Validation errors (field list in `errors`)
        - 409: Email already registered
    """
    result = await auth.register(body.to_user_data())
    return ok("User registered successfully", _session_payload(result))


@router.post("/login")
async def login(body: LoginIn, auth: AuthService = Depends(get_auth_service)):
    """
    Authenticate user and create access token.

    Errors:
        - 401 "Invalid credentials": unknown email or wrong password
        - 401 "Account is deactivated": correct password, inactive account
    """
    result = await auth.login(body.email, body.password)
    return ok("Login successful", _session_payload(result))


@router.post("/forgot-password")
async def forgot_password(body: ForgotPasswordIn, request: Request, auth: AuthService = Depends(get_auth_service)):
    """
    Generate a single-use password reset token (valid for 10 minutes).

    The token is only echoed back when `EXPOSE_RESET_TOKEN` is enabled
    (development); otherwise it has to reach the user out of band.
    """
    result = await auth.generate_password_reset_token(body.email)
    data = {"message": result["message"]}
    if request.app.state.settings.expose_reset_token:
        data["resetToken"] = result["resetToken"]
    return ok("Password reset token generated. Check your email.", data)


@router.post("/reset-password")
async def reset_password(body: ResetPasswordIn, auth: AuthService = Depends(get_auth_service)):
    result = await auth.reset_password(body.resetToken, body.newPassword)
    return ok("Password reset successful", result)


@router.post("/refresh-token")
async def refresh_token(body: RefreshTokenIn, auth: AuthService = Depends(get_auth_service)):
    """
    Exchange a still-valid access token for a new one.
    The presented token is not revoked and stays valid until its own expiry.
    """
    if not body.token:
        raise BadRequest("Token is required")
    result = await auth.refresh_token(body.token)
    return ok("Token refreshed successfully", _session_payload(result))


@router.get("/verify-email/{verification_token}")
async def verify_email(verification_token: str, auth: AuthService = Depends(get_auth_service)):
    result = await auth.verify_email(verification_token)
    return ok("Email verified successfully", result)


# ===== Protected routes =====
@router.post("/logout")
async def logout(user: User = Depends(get_current_user), auth: AuthService = Depends(get_auth_service)):
    """
    Acknowledge a logout.

    Note:
        The JWT itself remains valid until it expires; clients are expected
        to discard it. There is no server-side revocation list.
    """
    result = await auth.logout(str(user.id))
    return ok("Logout successful", result)


@router.get("/profile")
async def get_profile(user: User = Depends(get_current_user), auth: AuthService = Depends(get_auth_service)):
    profile = await auth.get_profile(user.id)
    return ok("Profile retrieved successfully", {"user": profile.to_public()})


@router.put("/profile")
async def update_profile(
    body: ProfileUpdateIn,
    user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    """Update the caller's own profile. Role, email and active flag cannot be changed here."""
    updated = await auth.update_profile(user.id, body.to_update_data())
    return ok("Profile updated successfully", {"user": updated.to_public()})


@router.put("/change-password")
async def change_password(
    body: ChangePasswordIn,
    user: User = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    """
    Change password for the currently authenticated user.

    Errors:
        - 400 "Current password is incorrect" (stored hash left untouched)
    """
    result = await auth.change_password(user.id, body.currentPassword, body.newPassword)
    return ok("Password changed successfully", result)
