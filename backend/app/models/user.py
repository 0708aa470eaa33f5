# app/models/user.py
"""
Database model for users.
Represents a user account in the system, containing authentication credentials,
profile information, single-use token state and role-based access control.
"""
import uuid
from enum import Enum
from tortoise import fields, models


class Role(str, Enum):
    """Roles recognised by the access-control layer."""
    USER = "user"
    ADMIN = "admin"
    MODERATOR = "moderator"


def _iso(value) -> str | None:
    return value.isoformat() if value else None


class User(models.Model):
    """
    User database model.

    Security:
    - Password is stored as an Argon2 hash (never plain text) and never serialized
    - Email is stored lower-cased and is unique
    - Single-use tokens are cleared once consumed
    - Rows are soft-deleted through `deleted_at`; normal lookups filter them out
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)  # Primary key: unique user identifier
    first_name = fields.CharField(max_length=50)
    last_name = fields.CharField(max_length=50)
    email = fields.CharField(max_length=255, unique=True, index=True)  # Normalized (trimmed, lower-case)
    password_hash = fields.CharField(max_length=255)
    role = fields.CharEnumField(Role, max_length=16, default=Role.USER, index=True)
    is_active = fields.BooleanField(default=True, index=True)

    email_verified = fields.BooleanField(default=False)
    email_verification_token = fields.CharField(max_length=128, null=True, index=True)
    password_reset_token = fields.CharField(max_length=128, null=True, index=True)
    password_reset_expires = fields.DatetimeField(null=True)

    last_login_at = fields.DatetimeField(null=True)

    # Optional profile fields
    phone = fields.CharField(max_length=20, null=True)
    date_of_birth = fields.DateField(null=True)
    address = fields.TextField(null=True)
    avatar = fields.CharField(max_length=255, null=True)

    created_at = fields.DatetimeField(auto_now_add=True, index=True)
    updated_at = fields.DatetimeField(auto_now=True)
    deleted_at = fields.DatetimeField(null=True)  # Soft-delete marker

    class Meta:
        """Tortoise ORM metadata configuration."""
        table = "users"

    def __str__(self) -> str:
        return self.email

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def to_public(self) -> dict:
        """
        Externally visible projection of a user.
        Excludes the password hash, both single-use tokens and the soft-delete marker.
        """
        role = self.role.value if isinstance(self.role, Role) else self.role
        return {
            "id": str(self.id),
            "firstName": self.first_name,
            "lastName": self.last_name,
            "fullName": self.full_name,
            "email": self.email,
            "role": role,
            "isActive": self.is_active,
            "emailVerified": self.email_verified,
            "lastLoginAt": _iso(self.last_login_at),
            "phone": self.phone,
            "dateOfBirth": _iso(self.date_of_birth),
            "address": self.address,
            "avatar": self.avatar,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }
