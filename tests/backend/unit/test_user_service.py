"""
Unit tests for services.user_service: pagination, search, updates, stats.
"""
import uuid

import pytest

from app.core.errors import UserNotFound
from app.models.user import Role

pytestmark = pytest.mark.asyncio


async def test_list_users_paginates_newest_first(create_user, user_service):
    created = [(await create_user(email=f"member{i}@example.com"))[0] for i in range(5)]

    page1 = await user_service.list_users(page=1, limit=2)
    page3 = await user_service.list_users(page=3, limit=2)

    assert page1["totalUsers"] == 5
    assert page1["totalPages"] == 3
    assert page1["hasNextPage"] is True
    assert page1["hasPrevPage"] is False
    assert len(page1["users"]) == 2
    assert len(page3["users"]) == 1
    assert page3["hasNextPage"] is False
    assert page3["hasPrevPage"] is True
    listed = {u["id"] for u in page1["users"]} | {u["id"] for u in page3["users"]}
    assert listed <= {str(u.id) for u in created}


async def test_list_users_excludes_soft_deleted(create_user, user_service):
    keep, _ = await create_user(email="keep@example.com")
    gone, _ = await create_user(email="gone@example.com")
    await user_service.delete_user(gone.id)

    result = await user_service.list_users()

    assert [u["email"] for u in result["users"]] == ["keep@example.com"]
    assert result["totalUsers"] == 1


async def test_search_matches_names_and_email_case_insensitively(create_user, user_service):
    await create_user(first_name="Marie", last_name="Curie", email="marie@example.com")
    await create_user(first_name="Alan", last_name="Turing", email="alan@example.com")
    await create_user(first_name="Grace", last_name="Hopper", email="navy-curie-fan@example.com")

    by_name = await user_service.search_users("CURIE")
    by_email = await user_service.search_users("alan@")

    assert {u["email"] for u in by_name["users"]} == {"marie@example.com", "navy-curie-fan@example.com"}
    assert [u["firstName"] for u in by_email["users"]] == ["Alan"]


async def test_get_user_unknown_raises(db, user_service):
    with pytest.raises(UserNotFound):
        await user_service.get_user(uuid.uuid4())


async def test_update_user_ignores_privileged_fields(create_user, user_service):
    user, _ = await create_user(email="plain@example.com")

    updated = await user_service.update_user(
        user.id,
        {"first_name": "Renamed", "role": Role.ADMIN, "email": "hijack@example.com", "password_hash": "x"},
    )

    assert updated.first_name == "Renamed"
    assert updated.role == Role.USER
    assert updated.email == "plain@example.com"


async def test_set_role_and_toggle_status(create_user, user_service):
    user, _ = await create_user()

    promoted = await user_service.set_role(user.id, "moderator")
    assert promoted.role == Role.MODERATOR

    toggled = await user_service.toggle_status(user.id)
    assert toggled.is_active is False
    toggled = await user_service.toggle_status(user.id)
    assert toggled.is_active is True


async def test_stats_count_non_deleted_users(create_user, create_admin, user_service):
    await create_admin()
    await create_user(is_active=False)
    await create_user()
    removed, _ = await create_user()
    await user_service.delete_user(removed.id)

    stats = await user_service.get_stats()

    assert stats == {
        "totalUsers": 3,
        "activeUsers": 2,
        "inactiveUsers": 1,
        "adminUsers": 1,
        "newUsersToday": 3,
    }
