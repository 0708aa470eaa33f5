# app/schemas/user.py
"""
Pydantic schemas for user management endpoints.
"""
from typing import Optional

from pydantic import BaseModel, field_validator

from app.models.user import Role
from app.schemas.auth import ProfileUpdateIn


class UserUpdateIn(ProfileUpdateIn):
    """
    Request model for the admin user update endpoint.
    Role and email are not accepted here; role has its own endpoint.
    """
    isActive: Optional[bool] = None


class UserRoleIn(BaseModel):
    role: Role

    @field_validator("role", mode="before")
    @classmethod
    def _role(cls, v):
        if v in (None, ""):
            raise ValueError("Role is required")
        if v not in [r.value for r in Role]:
            raise ValueError("Role must be one of: user, admin, moderator")
        return v
