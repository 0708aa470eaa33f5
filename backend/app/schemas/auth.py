# app/schemas/auth.py
"""
Pydantic schemas for authentication endpoints.
Defines request models for registration, login, profile and password flows.
"""
import datetime as dt
import re
from typing import Optional

from pydantic import BaseModel, EmailStr, ValidationInfo, field_validator

NAME_RE = re.compile(r"^[a-zA-Z\s]+$")
PHONE_RE = re.compile(r"^\+?[1-9]\d{0,15}$")
PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]")
PASSWORD_MIN_LENGTH = 8
ADDRESS_MAX_LENGTH = 500
MIN_AGE, MAX_AGE = 13, 120

# Request field name -> User model column
PROFILE_FIELDS = {
    "firstName": "first_name",
    "lastName": "last_name",
    "phone": "phone",
    "dateOfBirth": "date_of_birth",
    "address": "address",
    "avatar": "avatar",
    "isActive": "is_active",
}
NON_NULLABLE_COLUMNS = {"first_name", "last_name", "is_active"}


def check_name(value: str, label: str) -> str:
    value = value.strip()
    if not 2 <= len(value) <= 50:
        raise ValueError(f"{label} must be between 2 and 50 characters")
    if not NAME_RE.match(value):
        raise ValueError(f"{label} can only contain letters and spaces")
    return value


def check_password(value: str, label: str = "Password") -> str:
    if len(value) < PASSWORD_MIN_LENGTH:
        raise ValueError(f"{label} must be at least {PASSWORD_MIN_LENGTH} characters long")
    if not PASSWORD_RE.match(value):
        raise ValueError(
            f"{label} must contain at least one uppercase letter, one lowercase letter, "
            "one number, and one special character"
        )
    return value


def check_phone(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    if not PHONE_RE.match(value):
        raise ValueError("Please provide a valid phone number")
    return value


def check_date_of_birth(value: Optional[dt.date]) -> Optional[dt.date]:
    if value is None:
        return value
    today = dt.date.today()
    age = today.year - value.year - ((today.month, today.day) < (value.month, value.day))
    if age < MIN_AGE:
        raise ValueError(f"You must be at least {MIN_AGE} years old")
    if age > MAX_AGE:
        raise ValueError("Please provide a valid date of birth")
    return value


def check_address(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if len(value) > ADDRESS_MAX_LENGTH:
        raise ValueError(f"Address must not exceed {ADDRESS_MAX_LENGTH} characters")
    return value


def normalize_email(value: str) -> str:
    return value.strip().lower()


class RegisterIn(BaseModel):
    """Request model for account registration."""
    firstName: str
    lastName: str
    email: EmailStr
    password: str
    phone: Optional[str] = None
    dateOfBirth: Optional[dt.date] = None

    @field_validator("firstName")
    @classmethod
    def _first_name(cls, v: str) -> str:
        return check_name(v, "First name")

    @field_validator("lastName")
    @classmethod
    def _last_name(cls, v: str) -> str:
        return check_name(v, "Last name")

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return check_password(v)

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: Optional[str]) -> Optional[str]:
        return check_phone(v)

    @field_validator("dateOfBirth")
    @classmethod
    def _dob(cls, v: Optional[dt.date]) -> Optional[dt.date]:
        return check_date_of_birth(v)

    def to_user_data(self) -> dict:
        return {
            "first_name": self.firstName,
            "last_name": self.lastName,
            "email": self.email,
            "password": self.password,
            "phone": self.phone,
            "date_of_birth": self.dateOfBirth,
        }


class LoginIn(BaseModel):
    """Request model for user login endpoint."""
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required")
        return v


class ProfileUpdateIn(BaseModel):
    """
    Request model for updating the caller's own profile.
    All fields are optional - only provided fields will be updated.
    """
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    phone: Optional[str] = None
    dateOfBirth: Optional[dt.date] = None
    address: Optional[str] = None
    avatar: Optional[str] = None

    @field_validator("firstName")
    @classmethod
    def _first_name(cls, v: Optional[str]) -> Optional[str]:
        return v if v is None else check_name(v, "First name")

    @field_validator("lastName")
    @classmethod
    def _last_name(cls, v: Optional[str]) -> Optional[str]:
        return v if v is None else check_name(v, "Last name")

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: Optional[str]) -> Optional[str]:
        return check_phone(v)

    @field_validator("dateOfBirth")
    @classmethod
    def _dob(cls, v: Optional[dt.date]) -> Optional[dt.date]:
        return check_date_of_birth(v)

    @field_validator("address")
    @classmethod
    def _address(cls, v: Optional[str]) -> Optional[str]:
        return check_address(v)

    def to_update_data(self) -> dict:
        """Provided fields only, keyed by model column name. Explicit nulls on required columns are dropped."""
        data = {}
        for key, value in self.model_dump(exclude_unset=True).items():
            column = PROFILE_FIELDS.get(key)
            if column is None or (value is None and column in NON_NULLABLE_COLUMNS):
                continue
            data[column] = value
        return data


class ChangePasswordIn(BaseModel):
    currentPassword: str
    newPassword: str
    confirmPassword: Optional[str] = None

    @field_validator("currentPassword")
    @classmethod
    def _current(cls, v: str) -> str:
        if not v:
            raise ValueError("Current password is required")
        return v

    @field_validator("newPassword")
    @classmethod
    def _new(cls, v: str) -> str:
        return check_password(v, "New password")

    @field_validator("confirmPassword")
    @classmethod
    def _confirm(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        if v is not None and v != info.data.get("newPassword"):
            raise ValueError("Password confirmation does not match new password")
        return v


class ForgotPasswordIn(BaseModel):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return normalize_email(v)


class ResetPasswordIn(BaseModel):
    resetToken: str
    newPassword: str
    confirmPassword: Optional[str] = None

    @field_validator("resetToken")
    @classmethod
    def _token(cls, v: str) -> str:
        if not v:
            raise ValueError("Reset token is required")
        return v

    @field_validator("newPassword")
    @classmethod
    def _new(cls, v: str) -> str:
        return check_password(v, "New password")

    @field_validator("confirmPassword")
    @classmethod
    def _confirm(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        if v is not None and v != info.data.get("newPassword"):
            raise ValueError("Password confirmation does not match new password")
        return v


class RefreshTokenIn(BaseModel):
    token: Optional[str] = None
