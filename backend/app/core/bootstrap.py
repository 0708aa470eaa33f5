# app/core/bootstrap.py
"""
Bootstrap module for application initialization.
Handles initial setup tasks such as creating default admin user on first startup.
"""
import logging

from app.config import Settings
from app.models.user import Role
from app.services.credential_store import CredentialStore

logger = logging.getLogger("uvicorn.error")


async def ensure_default_admin(settings: Settings, store: CredentialStore) -> None:
    """
    If no admin exists in the database, create a default admin from settings.
    Only takes effect under the following conditions:
      - Currently no non-deleted user with role="admin"
      - And ADMIN_PASSWORD is set (to avoid using default weak password)
      - And ADMIN_EMAIL is not already taken by another account
    """
    has_admin = await store.active_users().filter(role=Role.ADMIN).exists()
    if has_admin:
        return  # Skip creation if admin already exists

    if not settings.admin_password:
        logger.warning("[bootstrap] No admin present, but ADMIN_PASSWORD not set -> skip creating default admin.")
        return  # Don't create admin without password (security requirement)

    if await store.get_by_email(settings.admin_email, include_deleted=True):
        logger.warning("[bootstrap] No admin present, but %s is already registered -> skip.", settings.admin_email)
        return

    u = await store.create({
        "first_name": "System",
        "last_name": "Administrator",
        "email": settings.admin_email,
        "password": settings.admin_password,
        "role": Role.ADMIN,
        "email_verified": True,
    })
    logger.warning("[bootstrap] Created default admin -> email=%s id=%s", u.email, u.id)
