"""
Unit tests for the access-control dependencies in api.v1.deps.
"""
import uuid

import pytest

from app.api.v1.deps import _bearer_token, is_self, require_admin, require_moderator, require_roles
from app.core.errors import InsufficientPermissions
from app.models.user import Role, User


def _user(role: Role) -> User:
    return User(first_name="Gate", last_name="Keeper", email=f"{role.value}@example.com", role=role)


def test_bearer_token_parsing():
    assert _bearer_token("Bearer abc.def") == "abc.def"
    assert _bearer_token("bearer abc") == "abc"
    assert _bearer_token("Bearer ") is None
    assert _bearer_token("Basic abc") is None
    assert _bearer_token(None) is None


@pytest.mark.asyncio
async def test_require_admin_admits_only_admins(db):
    admin = _user(Role.ADMIN)
    assert await require_admin(current=admin) is admin

    for role in (Role.USER, Role.MODERATOR):
        with pytest.raises(InsufficientPermissions) as excinfo:
            await require_admin(current=_user(role))
        assert excinfo.value.message == "Admin access required"


@pytest.mark.asyncio
async def test_require_moderator_admits_admins_and_moderators(db):
    for role in (Role.ADMIN, Role.MODERATOR):
        user = _user(role)
        assert await require_moderator(current=user) is user

    with pytest.raises(InsufficientPermissions) as excinfo:
        await require_moderator(current=_user(Role.USER))
    assert excinfo.value.message == "Moderator access required"
    assert excinfo.value.status_code == 403


@pytest.mark.asyncio
async def test_require_roles_default_message(db):
    gate = require_roles(Role.USER)
    with pytest.raises(InsufficientPermissions) as excinfo:
        await gate(current=_user(Role.ADMIN))
    assert excinfo.value.message == "Insufficient permissions"


@pytest.mark.asyncio
async def test_is_self_compares_ids_as_uuids(db):
    user = _user(Role.ADMIN)
    own = str(user.id)

    for spelling in (own, own.upper(), user.id.hex, "{" + own + "}", f"urn:uuid:{own}"):
        assert is_self(user, spelling) is True
    assert is_self(user, str(uuid.uuid4())) is False
    assert is_self(user, "not-a-uuid") is False
