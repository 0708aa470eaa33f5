# app/api/v1/routers/users.py
from fastapi import APIRouter, Depends, Query

from app.api.v1.deps import (
    get_current_user,
    get_user_service,
    is_self,
    reject_self_target,
    require_admin,
)
from app.api.v1.responses import ok
from app.core.errors import BadRequest, SelfActionForbidden
from app.models.user import User
from app.schemas.user import UserRoleIn, UserUpdateIn
from app.services import UserService

router = APIRouter(prefix="/users", tags=["users"])


# ===== Authenticated users =====
@router.get("/search")
async def search_users(
    q: str | None = Query(default=None, description="Substring of first name, last name or email"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    _: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    if not q or not q.strip():
        raise BadRequest("Search query is required")
    result = await users.search_users(q, page, limit)
    return ok("Search completed successfully", result)


# ===== Admin only =====
@router.get("", dependencies=[Depends(require_admin)])
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str = Query("", description="Optional substring filter"),
    users: UserService = Depends(get_user_service),
):
    """
    Get paginated list of all non-deleted users (admin only), newest first.

    Returns `users`, `totalUsers`, `currentPage`, `totalPages`,
    `hasNextPage` and `hasPrevPage`.
    """
    result = await users.list_users(page, limit, search)
    return ok("Users retrieved successfully", result)


@router.get("/stats/overview", dependencies=[Depends(require_admin)])
async def user_stats(users: UserService = Depends(get_user_service)):
    stats = await users.get_stats()
    return ok("User statistics retrieved successfully", {"stats": stats})


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    _: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    user = await users.get_user(user_id)
    return ok("User retrieved successfully", {"user": user.to_public()})


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    body: UserUpdateIn,
    current: User = Depends(require_admin),
    users: UserService = Depends(get_user_service),
):
    """
    Update a user's profile fields and active flag (admin only).
    Role and email are not part of this endpoint.
    """
    data = body.to_update_data()
    if is_self(current, user_id) and data.get("is_active") is False:
        raise SelfActionForbidden("You cannot deactivate your own account")
    user = await users.update_user(user_id, data)
    return ok("User updated successfully", {"user": user.to_public()})


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    current: User = Depends(require_admin),
    users: UserService = Depends(get_user_service),
):
    if is_self(current, user_id):
        raise SelfActionForbidden("You cannot delete your own account")
    await users.delete_user(user_id)
    return ok("User deleted successfully", {"message": "User deleted successfully"})


@router.patch("/{user_id}/toggle-status")
async def toggle_user_status(
    user_id: str,
    current: User = Depends(require_admin),
    users: UserService = Depends(get_user_service),
):
    if is_self(current, user_id):
        raise SelfActionForbidden("You cannot deactivate your own account")
    user = await users.toggle_status(user_id)
    state = "activated" if user.is_active else "deactivated"
    return ok(f"User {state} successfully", {"user": user.to_public()})


@router.patch(
    "/{user_id}/role",
    # Self check runs before the admin gate: nobody may change their own role
    dependencies=[
        Depends(reject_self_target("You cannot update your own role")),
        Depends(require_admin),
    ],
)
async def update_user_role(
    user_id: str,
    body: UserRoleIn,
    users: UserService = Depends(get_user_service),
):
    user = await users.set_role(user_id, body.role)
    return ok("User role updated successfully", {"user": user.to_public()})
