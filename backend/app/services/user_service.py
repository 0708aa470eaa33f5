# app/services/user_service.py
"""
User management: listing, searching, updating, soft-deleting and statistics.

Authorization concerns (who may call what, self-protection rules) live in the
routers; this service only enforces data rules.
"""
import logging
import math
from typing import Any

from tortoise.expressions import Q

from app.core.errors import UserNotFound
from app.core.security import utc_now
from app.models.user import Role, User
from app.services.credential_store import CredentialStore

logger = logging.getLogger("uvicorn.error")

# Columns the generic update path may change. Role and email need privileged paths.
UPDATABLE_FIELDS = (
    "first_name",
    "last_name",
    "phone",
    "date_of_birth",
    "address",
    "avatar",
    "is_active",
)


class UserService:
    def __init__(self, store: CredentialStore):
        self.store = store

    def _search_filter(self, query: str) -> Q:
        return Q(first_name__icontains=query) | Q(last_name__icontains=query) | Q(email__icontains=query)

    async def _paginate(self, query: str, page: int, limit: int) -> dict[str, Any]:
        qs = self.store.active_users()
        if query:
            qs = qs.filter(self._search_filter(query))
        total = await qs.count()
        rows = await qs.order_by("-created_at").offset((page - 1) * limit).limit(limit)
        total_pages = math.ceil(total / limit) if limit else 0
        return {
            "users": [u.to_public() for u in rows],
            "totalUsers": total,
            "currentPage": page,
            "totalPages": total_pages,
            "hasNextPage": page < total_pages,
            "hasPrevPage": page > 1,
        }

    async def list_users(self, page: int = 1, limit: int = 10, search: str = "") -> dict[str, Any]:
        """
        Paginated list of non-deleted users, newest first.

        Args:
            page: 1-based page number
            limit: Page size
            search: Optional case-insensitive substring matched against
                first name, last name and email
        """
        return await self._paginate((search or "").strip(), page, limit)

    async def search_users(self, query: str, page: int = 1, limit: int = 10) -> dict[str, Any]:
        return await self._paginate(query.strip(), page, limit)

    async def get_user(self, user_id) -> User:
        user = await self.store.get_by_id(user_id)
        if user is None:
            raise UserNotFound()
        return user

    async def update_user(self, user_id, data: dict[str, Any]) -> User:
        """Apply allow-listed column updates; unknown or privileged keys are ignored."""
        user = await self.get_user(user_id)
        changes = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS}
        if changes:
            user.update_from_dict(changes)
            await user.save(update_fields=[*changes, "updated_at"])
            logger.info("[users] updated id=%s fields=%s", user.id, sorted(changes))
        return user

    async def set_role(self, user_id, role: Role | str) -> User:
        user = await self.get_user(user_id)
        user.role = Role(role)
        await user.save(update_fields=["role", "updated_at"])
        logger.info("[users] role changed id=%s role=%s", user.id, user.role.value)
        return user

    async def toggle_status(self, user_id) -> User:
        user = await self.get_user(user_id)
        return await self.update_user(user.id, {"is_active": not user.is_active})

    async def delete_user(self, user_id) -> None:
        """Soft delete; the row stays addressable through `include_deleted` lookups."""
        user = await self.get_user(user_id)
        await self.store.soft_delete(user)
        logger.info("[users] soft-deleted id=%s email=%s", user.id, user.email)

    async def get_stats(self) -> dict[str, int]:
        users = self.store.active_users()
        start_of_day = utc_now().replace(hour=0, minute=0, second=0, microsecond=0)
        return {
            "totalUsers": await users.count(),
            "activeUsers": await users.filter(is_active=True).count(),
            "inactiveUsers": await users.filter(is_active=False).count(),
            "adminUsers": await users.filter(role=Role.ADMIN).count(),
            "newUsersToday": await users.filter(created_at__gte=start_of_day).count(),
        }
