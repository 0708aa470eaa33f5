"""
Services Module

Business logic behind the REST routers:
- CredentialStore: user persistence, password hashing, single-use token consumption
- UserService: user listing, search, updates, soft delete and statistics
- AuthService: registration, login, password flows, email verification, token refresh
"""
from .credential_store import CredentialStore
from .user_service import UserService
from .auth_service import AuthService

__all__ = [
    "CredentialStore",
    "UserService",
    "AuthService",
]
