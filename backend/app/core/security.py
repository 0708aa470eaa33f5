# app/core/security.py
"""
Security module for authentication and authorization.
Handles password hashing, JWT token creation/validation, and single-use token generation.
"""
import datetime as dt
import secrets

import jwt  # PyJWT
from passlib.context import CryptContext

from app.core.errors import TokenExpired, TokenInvalid

# Password hashing context
# Argon2 is a modern, memory-hard password hashing algorithm; each hash carries its own random salt.
# Cost parameters are fixed here rather than read from the environment.
ARGON2_TIME_COST = 3
ARGON2_MEMORY_COST = 65536  # KiB
ARGON2_PARALLELISM = 4

pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
    argon2__time_cost=ARGON2_TIME_COST,
    argon2__memory_cost=ARGON2_MEMORY_COST,
    argon2__parallelism=ARGON2_PARALLELISM,
)

JWT_ALG = "HS256"  # JWT signing algorithm (HMAC SHA-256)
PASSWORD_RESET_EXPIRE_MINUTES = 10  # Absolute lifetime of a password reset token
SINGLE_USE_TOKEN_BYTES = 32  # 256 bits of entropy


def hash_password(plain: str) -> str:
    """
    Hash a plain text password using Argon2.

    Args:
        plain: Plain text password to hash

    Returns:
        Hashed password string (safe to store in database)
    """
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    """
    Verify a plain text password against a hashed password.

    Returns False (instead of raising) when the stored hash is empty or unrecognized.
    """
    if not hashed:
        return False
    try:
        return pwd_context.verify(plain, hashed)
    except ValueError:
        return False


def generate_opaque_token() -> str:
    """Random hex string used for password reset and email verification tokens."""
    return secrets.token_hex(SINGLE_USE_TOKEN_BYTES)


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class TokenService:
    """
    Issues and verifies signed access tokens.

    One instance is built at startup from `Settings` and shared by the auth
    service and the access-control dependencies.
    """

    def __init__(self, secret: str, expire_minutes: int = 24 * 60, algorithm: str = JWT_ALG):
        self.secret = secret
        self.expire_minutes = expire_minutes
        self.algorithm = algorithm

    def create_access_token(self, user_id: str, email: str, role: str) -> str:
        """
        Create a JWT access token for user authentication.

        Token payload includes:
            - sub: Subject (user ID)
            - email: User email
            - role: User role for authorization
            - iat: Issued at timestamp
            - exp: Expiration timestamp
        """
        now = utc_now()
        payload = {
            "sub": str(user_id),
            "email": email,
            "role": role,
            "iat": now,
            "exp": now + dt.timedelta(minutes=self.expire_minutes),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def issue_for(self, user) -> str:
        return self.create_access_token(str(user.id), user.email, user.role)

    def decode_access_token(self, token: str) -> dict:
        """
        Decode and validate a JWT access token.

        Raises:
            TokenExpired: If the token is past its expiry
            TokenInvalid: On signature/format mismatch or missing claims
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpired()
        except jwt.InvalidTokenError:
            raise TokenInvalid()
        return payload
